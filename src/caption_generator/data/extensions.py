from __future__ import annotations

from pathlib import Path
from typing import Optional

# Canonical spellings are module constants so every item shares the same
# string objects instead of keeping a copy of whatever case the filename used.
JPG = ".jpg"
JPEG = ".jpeg"
PNG = ".png"
BMP = ".bmp"

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({JPG, JPEG, PNG, BMP})

_CANONICAL: dict[str, str] = {ext: ext for ext in SUPPORTED_EXTENSIONS}


def _ascii_lower(text: str) -> str:
    # str.lower() folds non-ASCII letters too ("İ" -> "i̇"); only ASCII may match.
    if not text.isascii():
        return ""
    return text.lower()


def canonical_extension(extension: str) -> Optional[str]:
    """Return the canonical form of ``extension`` or ``None`` if unsupported.

    ``extension`` includes the leading dot (``".JPG"`` -> ``".jpg"``).
    """
    if not 4 <= len(extension) <= 5 or extension[0] != ".":
        return None
    return _CANONICAL.get(_ascii_lower(extension))


def classify_path(path: Path) -> Optional[str]:
    return canonical_extension(path.suffix)


def is_supported(path: Path) -> bool:
    return classify_path(path) is not None
