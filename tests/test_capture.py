from __future__ import annotations

import base64

import pytest

from src.main.textbook_ocr.errors import InvalidFormat
from src.main.textbook_ocr.services.capture import decode_data_url


def test_decode_data_url_returns_image_bytes(png_bytes):
    value = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")

    assert decode_data_url(value) == png_bytes


@pytest.mark.parametrize(
    "value",
    [
        "data:image/bmp;base64,Qk0=",
        "data:text/plain;base64,aGVsbG8=",
        "aGVsbG8=",
    ],
)
def test_decode_data_url_rejects_unsupported_prefixes(value):
    with pytest.raises(InvalidFormat):
        decode_data_url(value)


def test_decode_data_url_rejects_invalid_base64():
    with pytest.raises(InvalidFormat):
        decode_data_url("data:image/png;base64,not*base64!")
