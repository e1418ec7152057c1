"""Flask entrypoint wiring configuration, services and routes together."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from src.main.textbook_ocr.api.routes import api_bp
from src.main.textbook_ocr.auth import TokenService
from src.main.textbook_ocr.config import CONFIG_MAPPING, Credentials
from src.main.textbook_ocr.errors import AppError, TooLarge
from src.main.textbook_ocr.services.ocr_gateway import OCRGateway
from src.main.textbook_ocr.services.rate_limiter import RateLimiter
from src.main.textbook_ocr.services.result_store import ResultStore
from src.main.textbook_ocr.services.vision_client import VisionClient

LOGGER = logging.getLogger(__name__)


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    """Application factory for WSGI servers and tests.

    Raises ``ConfigurationError`` when the operator credentials are missing.
    """
    env_name = os.getenv("FLASK_ENV", "default")
    config_class = CONFIG_MAPPING.get(env_name, CONFIG_MAPPING["default"])

    app = Flask(__name__)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    proxy_count = int(app.config["TRUSTED_PROXY_COUNT"])
    if proxy_count > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxy_count, x_proto=proxy_count)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        supports_credentials=True,
    )

    credentials = Credentials.from_config(app.config)
    app.extensions["credentials"] = credentials
    app.extensions["token_service"] = TokenService(credentials.jwt_secret, app.config["TOKEN_TTL_SECONDS"])

    result_store = ResultStore(app.config["DATABASE_PATH"])
    result_store.init_schema()
    app.extensions["result_store"] = result_store

    vision_client = VisionClient(
        api_key=app.config["GOOGLE_CLOUD_VISION_API_KEY"],
        api_url=app.config["VISION_API_URL"],
        timeout=app.config["VISION_TIMEOUT_SECONDS"],
    )
    if not vision_client.configured:
        LOGGER.warning("GOOGLE_CLOUD_VISION_API_KEY is not set. OCR submissions will fail until it is configured.")

    app.extensions["ocr_gateway"] = OCRGateway(
        image_dir=Path(app.config["IMAGE_DIR"]).resolve(),
        store=result_store,
        oracle=vision_client,
        max_bytes=app.config["MAX_IMAGE_BYTES"],
        allowed_formats=set(app.config["ALLOWED_IMAGE_FORMATS"]),
    )
    app.extensions["rate_limiter"] = RateLimiter.from_config(app.config)

    app.register_blueprint(api_bp)

    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Turn every failure into one sanitized JSON message."""

    @app.errorhandler(AppError)
    def application_error(error: AppError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def payload_too_large(_: RequestEntityTooLarge):
        error = TooLarge()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(_: Exception):
        return jsonify({"error": "Endpoint not found."}), 404

    @app.errorhandler(405)
    def method_not_allowed(_: Exception):
        return jsonify({"error": "Method not allowed."}), 405

    @app.errorhandler(Exception)
    def unhandled_error(_: Exception):
        LOGGER.exception("Unhandled server error")
        return jsonify({"error": "Internal server error."}), 500


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=False)
