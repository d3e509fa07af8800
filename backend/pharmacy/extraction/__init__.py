from .rules import extract_fields
from .types import DraftFields

__all__ = ["extract_fields", "DraftFields"]
