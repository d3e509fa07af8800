"""
OCR fallback 链。

按优先级依次尝试已配置的 provider，第一个拿到文字的直接返回；
全部失败（或一个都没配置）时返回 CLIENT_SIDE 结果，把原图交给前端本地识别。
provider 失败只记日志，永远不会阻塞下单流程。
"""

import logging

from django.conf import settings

from ..exceptions import InvalidInputError, PayloadTooLargeError, ProviderError
from .factory import get_ocr_providers
from .types import OCRMethod, OCRResult

logger = logging.getLogger(__name__)


def validate_image(size: int, mime_type: str) -> None:
    if not (mime_type or "").startswith("image/"):
        raise InvalidInputError(
            message="Only image files are allowed.",
            code="INVALID_FILE_TYPE",
            detail={"mime_type": mime_type},
        )

    limit = settings.OCR_MAX_UPLOAD_BYTES
    if size > limit:
        raise PayloadTooLargeError(
            message=f"File too large. Maximum size is {limit // (1024 * 1024)}MB.",
            detail={"size": size, "limit": limit},
        )


def extract_text(image_bytes: bytes, mime_type: str, providers=None) -> OCRResult:
    """
    图片 → OCRResult。

    Raises:
        InvalidInputError:    mime_type 不是 image/*
        PayloadTooLargeError: 超过 OCR_MAX_UPLOAD_BYTES（在任何网络调用之前）
    """
    validate_image(len(image_bytes), mime_type)

    if providers is None:
        providers = get_ocr_providers()

    errors = []
    for provider in providers:
        if not provider.is_configured():
            logger.debug("[OCR] %s 未配置，跳过", provider.name)
            continue

        logger.info("[OCR] 尝试 %s (%d bytes, %s)", provider.name, len(image_bytes), mime_type)
        try:
            result = provider.extract(image_bytes, mime_type)
        except ProviderError as exc:
            logger.warning("[OCR] %s 失败: %s", provider.name, exc.message)
            errors.append(exc)
            continue

        logger.info("[OCR] %s 成功，识别 %d 个字符", provider.name, len(result.text))
        return result

    if errors:
        logger.warning(
            "[OCR] 所有 provider 均失败 (%s)，回退到客户端识别",
            ", ".join(e.provider for e in errors),
        )
    else:
        logger.info("[OCR] 没有配置任何 provider，回退到客户端识别")

    return OCRResult(
        text="",
        confidence=0.0,
        method=OCRMethod.CLIENT_SIDE,
        raw_image=image_bytes,
    )
