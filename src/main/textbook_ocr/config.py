"""Application configuration for local and production environments."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from src.main.textbook_ocr.errors import ConfigurationError

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
DEFAULT_STORAGE_DIR = Path(os.getenv("STORAGE_DIR", str(Path.cwd() / "storage")))


class BaseConfig:
    """Default secure configuration shared by all environments."""

    DEBUG = False
    TESTING = False

    JSON_SORT_KEYS = False
    JSON_AS_ASCII = False

    # Base64 inflates a payload by 4/3, so leave room for a maximum-size frame.
    MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", 10 * 1024 * 1024))  # 10 MiB
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 16 * 1024 * 1024))
    ALLOWED_IMAGE_FORMATS = {"png", "jpeg", "gif", "webp"}

    # Single operator account. See Credentials below.
    AUTH_USERNAME = os.getenv("AUTH_USERNAME", "")
    AUTH_PASSWORD = os.getenv("AUTH_PASSWORD", "")  # bcrypt hash
    JWT_SECRET = os.getenv("JWT_SECRET", "")
    TOKEN_TTL_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60))
    AUTH_COOKIE_NAME = "token"
    AUTH_COOKIE_SECURE = os.getenv("AUTH_COOKIE_SECURE", "true").lower() == "true"

    GOOGLE_CLOUD_VISION_API_KEY = os.getenv("GOOGLE_CLOUD_VISION_API_KEY", "")
    VISION_API_URL = os.getenv("VISION_API_URL", "https://vision.googleapis.com/v1/images:annotate")
    VISION_TIMEOUT_SECONDS = float(os.getenv("VISION_TIMEOUT_SECONDS", "60"))

    STORAGE_DIR = str(DEFAULT_STORAGE_DIR)
    IMAGE_DIR = os.getenv("IMAGE_DIR", str(DEFAULT_STORAGE_DIR / "images"))
    DATABASE_PATH = os.getenv("DATABASE_PATH", str(DEFAULT_STORAGE_DIR / "app.db"))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5000,http://127.0.0.1:5000",
        ).split(",")
        if origin.strip()
    ]

    RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "30"))
    REDIS_URL = os.getenv("REDIS_URL", "")
    # Number of reverse proxies in front of the app whose X-Forwarded-For is trusted.
    TRUSTED_PROXY_COUNT = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))


class DevelopmentConfig(BaseConfig):
    """Developer-friendly configuration."""

    DEBUG = True
    AUTH_COOKIE_SECURE = False


class TestingConfig(BaseConfig):
    """Configuration used by the test-suite."""

    TESTING = True
    AUTH_COOKIE_SECURE = False


class ProductionConfig(BaseConfig):
    """Production-ready secure configuration."""

    DEBUG = False


CONFIG_MAPPING = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": ProductionConfig,
}


@dataclass(frozen=True)
class Credentials:
    """The one operator allowed to use this deployment.

    The application is deliberately single-user: there is no user table, and
    the account is whatever the environment says it is when the process starts.
    """

    username: str
    password_hash: str
    jwt_secret: str

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Credentials":
        missing = [key for key in ("AUTH_USERNAME", "AUTH_PASSWORD", "JWT_SECRET") if not config.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
        return cls(
            username=config["AUTH_USERNAME"],
            password_hash=config["AUTH_PASSWORD"],
            jwt_secret=config["JWT_SECRET"],
        )
