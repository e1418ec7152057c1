"""Validation helpers for captured images and stored filenames."""

from __future__ import annotations

import re
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from src.main.textbook_ocr.errors import InvalidFormat, MissingField, TooLarge

_STORED_IMAGE_PATTERN = re.compile(r"^[0-9a-f]{32}\.(png|jpg|gif|webp)$")

# Pillow format name -> file extension used on disk.
FORMAT_EXTENSIONS = {
    "png": "png",
    "jpeg": "jpg",
    "gif": "gif",
    "webp": "webp",
}

CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


@dataclass
class ImageFrame:
    """One decoded capture that passed validation."""

    data: bytes
    format: str

    @property
    def extension(self) -> str:
        return FORMAT_EXTENSIONS[self.format]


def detect_image_format(data: bytes) -> str | None:
    """Return the Pillow format name, or ``None`` when ``data`` is not an image.

    Raises ``TooLarge`` when the declared dimensions exceed Pillow's
    decompression-bomb ceiling, however small the encoded bytes are.
    """
    try:
        with Image.open(BytesIO(data)) as image:
            image.verify()
            return (image.format or "").lower() or None
    except Image.DecompressionBombError as error:
        raise TooLarge("Image dimensions are too large.") from error
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return None


def validate_image_bytes(data: bytes, allowed_formats: set[str], max_bytes: int) -> ImageFrame:
    if not data:
        raise MissingField("Uploaded image is empty.")

    if len(data) >= max_bytes:
        raise TooLarge()

    image_format = detect_image_format(data)
    if image_format is None or image_format not in allowed_formats or image_format not in FORMAT_EXTENSIONS:
        raise InvalidFormat()

    return ImageFrame(data=data, format=image_format)


def is_stored_image_filename(filename: str) -> bool:
    return bool(_STORED_IMAGE_PATTERN.match(filename))


def content_type_for(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return CONTENT_TYPES.get(extension, "application/octet-stream")
