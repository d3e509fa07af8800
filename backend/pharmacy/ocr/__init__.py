from .chain import extract_text, validate_image
from .types import OCRMethod, OCRResult

__all__ = ["extract_text", "validate_image", "OCRMethod", "OCRResult"]
