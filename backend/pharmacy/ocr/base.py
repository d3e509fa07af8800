"""
BaseOCRProvider — 所有 OCR provider 的抽象基类。

每个新 provider 只需：
1. 继承 BaseOCRProvider
2. 实现 is_configured() 和 extract()
3. 在 factory.py 的 _build_registry() 注册一行

chain.py 完全不知道背后用哪家 OCR。
"""

from abc import ABC, abstractmethod

from django.conf import settings

from .types import OCRResult


class BaseOCRProvider(ABC):

    # 与 factory 注册键一致，也用于日志
    name: str = ""

    @property
    def timeout(self) -> float:
        return settings.OCR_TIMEOUT_SECONDS

    @abstractmethod
    def is_configured(self) -> bool:
        """凭证（以及需要的 endpoint）是否齐全。未配置的 provider 直接跳过。"""

    @abstractmethod
    def extract(self, image_bytes: bytes, mime_type: str) -> OCRResult:
        """
        调用外部 OCR，返回标准 OCRResult。

        Args:
            image_bytes: 原始图片字节
            mime_type:   声明的 MIME 类型（image/png, image/jpeg ...）

        Returns:
            OCRResult(text=非空文字, confidence=..., method=本 provider)

        Raises:
            ProviderError: 网络错误、超时、非 2xx、结果为空。由 chain 吞掉并记录日志。
        """
