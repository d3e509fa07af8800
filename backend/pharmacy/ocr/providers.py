"""
具体 OCR provider 实现。

新增 provider：在此文件添加一个类，然后在 factory.py 注册即可。

已注册 provider：
  ocr_space — OCRSpaceProvider     (base64 data URL, 固定置信度估计)
  azure     — AzureVisionProvider  (octet-stream, regions/lines/words)
"""

import base64
import logging

import requests
from django.conf import settings

from ..exceptions import ProviderError
from .base import BaseOCRProvider
from .types import OCRMethod, OCRResult

logger = logging.getLogger(__name__)


def _bad_response(provider, reason):
    return ProviderError(
        f"{provider.name} returned an unexpected body: {reason}",
        provider=provider.name,
        code='PROVIDER_BAD_RESPONSE',
    )


def _post(provider, url, **kwargs):
    """POST 并解析 JSON object；任何传输层问题或非 object 响应都转成 ProviderError。"""
    try:
        response = requests.post(url, timeout=provider.timeout, **kwargs)
        response.raise_for_status()
        data = response.json()
    except requests.Timeout as exc:
        raise ProviderError(
            f"{provider.name} timed out after {provider.timeout}s",
            provider=provider.name,
            code='PROVIDER_TIMEOUT',
        ) from exc
    except requests.RequestException as exc:
        raise ProviderError(
            f"{provider.name} request failed: {exc}",
            provider=provider.name,
        ) from exc
    except ValueError as exc:
        raise ProviderError(
            f"{provider.name} returned a non-JSON body",
            provider=provider.name,
            code='PROVIDER_BAD_RESPONSE',
        ) from exc

    if not isinstance(data, dict):
        raise _bad_response(provider, f"expected a JSON object, got {type(data).__name__}")
    return data


# ── OCRSpaceProvider ───────────────────────────────────────────────────────
#
# 响应示例：
# {
#   "ParsedResults": [{ "ParsedText": "Patient: Jane Roe\r\nRx: ...", ... }],
#   "IsErroredOnProcessing": false,
#   "ErrorMessage": null
# }
# 环境变量：OCR_SPACE_API_KEY

class OCRSpaceProvider(BaseOCRProvider):
    name = "ocr_space"

    def is_configured(self) -> bool:
        return bool(settings.OCR_SPACE_API_KEY)

    def parsed_text(self, data: dict) -> str:
        parsed = data.get("ParsedResults") or []
        if not isinstance(parsed, list):
            raise _bad_response(self, "ParsedResults is not a list")
        if not parsed:
            return ""

        first = parsed[0] or {}
        if not isinstance(first, dict):
            raise _bad_response(self, "ParsedResults[0] is not an object")

        text = first.get("ParsedText") or ""
        if not isinstance(text, str):
            raise _bad_response(self, "ParsedText is not a string")
        return text.strip()

    def extract(self, image_bytes: bytes, mime_type: str) -> OCRResult:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        data = _post(
            self,
            settings.OCR_SPACE_ENDPOINT,
            headers={"apikey": settings.OCR_SPACE_API_KEY},
            data={
                "base64Image": f"data:{mime_type};base64,{encoded}",
                "language": settings.OCR_LANGUAGE,
                "isOverlayRequired": "false",
                "detectOrientation": "false",
                "scale": "true",
                "OCREngine": settings.OCR_SPACE_ENGINE,
            },
        )

        text = self.parsed_text(data)
        if not text:
            reason = data.get("ErrorMessage") if data.get("IsErroredOnProcessing") else None
            raise ProviderError(
                f"{self.name} returned no text" + (f": {reason}" if reason else ""),
                provider=self.name,
                code='PROVIDER_EMPTY_RESULT',
            )

        return OCRResult(
            text=text,
            confidence=settings.OCR_SPACE_CONFIDENCE,
            method=OCRMethod.OCR_SPACE,
        )


# ── AzureVisionProvider ────────────────────────────────────────────────────
#
# 响应示例（v3.2 /ocr）：
# {
#   "regions": [
#     { "lines": [ { "words": [ {"text": "Rx:"}, {"text": "Amoxicillin"} ] } ] }
#   ]
# }
# 环境变量：AZURE_VISION_KEY + AZURE_VISION_ENDPOINT

class AzureVisionProvider(BaseOCRProvider):
    name = "azure"

    def is_configured(self) -> bool:
        return bool(settings.AZURE_VISION_KEY and settings.AZURE_VISION_ENDPOINT)

    @staticmethod
    def join_regions(regions) -> str:
        """region 之间、line 之间换行，word 之间空格；保持原顺序。"""
        return "\n".join(
            "\n".join(
                " ".join(word.get("text", "") for word in line.get("words") or [])
                for line in region.get("lines") or []
            )
            for region in regions
        )

    def extract(self, image_bytes: bytes, mime_type: str) -> OCRResult:
        endpoint = settings.AZURE_VISION_ENDPOINT.rstrip("/")
        data = _post(
            self,
            f"{endpoint}/vision/v3.2/ocr",
            params={"language": "en", "detectOrientation": "true"},
            headers={
                "Ocp-Apim-Subscription-Key": settings.AZURE_VISION_KEY,
                "Content-Type": "application/octet-stream",
            },
            data=image_bytes,
        )

        regions = data.get("regions") or []
        if not isinstance(regions, list):
            raise _bad_response(self, "regions is not a list")
        try:
            text = self.join_regions(regions)
        except (AttributeError, TypeError) as exc:
            # region / line / word 不是 object，或 text 不是字符串
            raise _bad_response(self, "malformed regions") from exc

        if not regions or not text.strip():
            raise ProviderError(
                f"{self.name} returned no text regions",
                provider=self.name,
                code='PROVIDER_EMPTY_RESULT',
            )

        return OCRResult(
            text=text,
            confidence=settings.OCR_HIGH_CONFIDENCE,
            method=OCRMethod.AZURE_VISION,
        )
