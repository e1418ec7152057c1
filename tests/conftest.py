from __future__ import annotations

import sys
from io import BytesIO
from pathlib import Path

import bcrypt
import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.main.textbook_ocr.app import create_app  # noqa: E402

USERNAME = "alice"
PASSWORD = "correct horse battery staple"
JWT_SECRET = "test-secret-" + "x" * 52
PAGE_TEXT = "Chapter 1\n\nPhotosynthesis converts light energy into chemical energy in plants.\n• chlorophyll\n• sunlight\n"


class FakeOracle:
    """Stands in for the Vision client; returns canned text or raises."""

    def __init__(self, text: str | None = PAGE_TEXT, error: Exception | None = None, configured: bool = True):
        self.text = text
        self.error = error
        self.configured = configured
        self.calls = 0

    def detect_document_text(self, image_bytes: bytes) -> str | None:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


def make_image_bytes(image_format: str = "PNG", size: tuple[int, int] = (16, 16)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, "white").save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def password_hash() -> str:
    return bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture
def app_overrides(tmp_path, password_hash):
    return {
        "TESTING": True,
        "AUTH_USERNAME": USERNAME,
        "AUTH_PASSWORD": password_hash,
        "JWT_SECRET": JWT_SECRET,
        "AUTH_COOKIE_SECURE": False,
        "GOOGLE_CLOUD_VISION_API_KEY": "test-key",
        "IMAGE_DIR": str(tmp_path / "images"),
        "DATABASE_PATH": str(tmp_path / "app.db"),
        "RATE_LIMIT_PER_MINUTE": 1000,
        "REDIS_URL": "",
    }


@pytest.fixture
def fake_oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def app(app_overrides, fake_oracle):
    application = create_app(app_overrides)
    application.extensions["ocr_gateway"].oracle = fake_oracle
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(app):
    test_client = app.test_client()
    token = app.extensions["token_service"].issue(USERNAME)
    test_client.set_cookie(app.config["AUTH_COOKIE_NAME"], token)
    return test_client
