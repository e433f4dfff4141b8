from .extensions import SUPPORTED_EXTENSIONS, canonical_extension, classify_path
from .items import CaptionItem, ItemSet

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "CaptionItem",
    "ItemSet",
    "canonical_extension",
    "classify_path",
]
