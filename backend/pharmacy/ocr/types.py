"""
OCR 层的标准结果结构。

所有 provider 的 extract() 都返回 OCRResult。
业务层（services.py / views.py）只认识这个格式，不知道背后是哪家 OCR。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OCRMethod(str, Enum):
    OCR_SPACE = "OCR.space API"
    AZURE_VISION = "Azure Computer Vision"
    CLIENT_SIDE = "client-side"


@dataclass(frozen=True)
class OCRResult:
    text: str                             # 识别出的文字，CLIENT_SIDE 时为空
    confidence: float                     # 0..1，provider 不给时用估计值
    method: OCRMethod
    raw_image: Optional[bytes] = None     # 仅 CLIENT_SIDE：交给前端本地识别

    @property
    def needs_client_side(self) -> bool:
        return self.method is OCRMethod.CLIENT_SIDE
