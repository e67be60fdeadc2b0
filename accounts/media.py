"""Profile picture and banner storage."""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any, BinaryIO

from PIL import ExifTags, Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})

# Longest edge, in pixels, for each stored media kind.
MEDIA_MAX_EDGE = {
    "profile_pic": 512,
    "banner": 1600,
}

_ORIENTATION_TAG = next(k for k, v in ExifTags.TAGS.items() if v == 'Orientation')


class MediaError(ValueError):
    """Raised when an upload cannot be stored as profile media."""


def has_allowed_extension(filename: str | None) -> bool:
    if not filename:
        return False
    return os.path.splitext(filename)[1].lower() in ALLOWED_EXTENSIONS


def open_image_auto_rotate(source: Any) -> Image.Image:
    """Open image from path or file-like and auto-rotate using EXIF."""
    img = Image.open(source) if not isinstance(source, Image.Image) else source
    orientation = img.getexif().get(_ORIENTATION_TAG)
    if orientation == 3:
        img = img.rotate(180, expand=True)
    elif orientation == 6:
        img = img.rotate(270, expand=True)
    elif orientation == 8:
        img = img.rotate(90, expand=True)
    return img.convert('RGB')


def _bound_image(img: Image.Image, *, max_edge: int) -> Image.Image:
    width, height = img.size
    longest = max(width, height)
    if longest <= max_edge:
        return img
    scale = max_edge / float(longest)
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return img.resize(new_size, Image.LANCZOS)


def save_media_image(
    stream: BinaryIO,
    upload_dir: str,
    *,
    kind: str = "profile_pic",
    quality: int = 90,
) -> tuple[str, int, int]:
    """Store an uploaded image as JPEG and return ``(filename, width, height)``."""

    if kind not in MEDIA_MAX_EDGE:
        raise MediaError(f"unsupported media kind: {kind}")
    try:
        img = open_image_auto_rotate(stream)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise MediaError("invalid image") from exc

    prepared = _bound_image(img, max_edge=MEDIA_MAX_EDGE[kind])
    os.makedirs(upload_dir, exist_ok=True)
    filename = f"{uuid.uuid4().hex}.jpg"
    prepared.save(os.path.join(upload_dir, filename), format='JPEG', quality=quality)
    width, height = prepared.size
    logger.info("Stored %s upload %s (%sx%s)", kind, filename, width, height)
    return filename, width, height


__all__ = [
    "ALLOWED_EXTENSIONS",
    "MEDIA_MAX_EDGE",
    "MediaError",
    "has_allowed_extension",
    "open_image_auto_rotate",
    "save_media_image",
]
