"""Server side of the camera capture: turn a submitted frame into bytes.

The browser grabs a still from the live preview and posts it either as a
``data:`` URL in JSON (``{"image_base64": ...}``) or as a multipart upload.
"""

from __future__ import annotations

import base64
import binascii
import re

from flask import Request

from src.main.textbook_ocr.errors import InvalidFormat, MissingField

DATA_URL_PATTERN = re.compile(r"^data:image/(png|jpeg|jpg|gif|webp);base64,")


def decode_data_url(value: str) -> bytes:
    match = DATA_URL_PATTERN.match(value)
    if match is None:
        raise InvalidFormat()

    payload = value[match.end():]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as error:
        raise InvalidFormat("Image data is not valid base64.") from error


def read_frame(request: Request) -> bytes:
    """Return the raw image bytes carried by ``request``."""
    upload = request.files.get("image") or request.files.get("file")
    if upload is not None and upload.filename:
        return upload.read()

    payload = request.get_json(silent=True)
    if isinstance(payload, dict) and payload.get("image_base64"):
        value = payload["image_base64"]
        if not isinstance(value, str):
            raise InvalidFormat()
        return decode_data_url(value)

    raise MissingField("Missing image_base64 in request body.")
