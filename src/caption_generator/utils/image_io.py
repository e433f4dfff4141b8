from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

DEFAULT_MIME = "image/jpeg"


def read_image_bytes(path: Path) -> bytes:
    return Path(path).read_bytes()


def detect_mime(data: bytes) -> str:
    """Return the MIME type Pillow identifies for ``data``, JPEG when unknown."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError):
        return DEFAULT_MIME
    return Image.MIME.get(fmt or "", DEFAULT_MIME)
