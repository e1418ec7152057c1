"""Lightweight schema contracts for API requests and responses."""

from __future__ import annotations

from typing import Any

from src.main.textbook_ocr.errors import MissingField, ResultNotFound, ValidationFailure
from src.main.textbook_ocr.services.result_store import MAX_RESULT_ID, MIN_RESULT_ID


class SchemaValidationError(ValidationFailure):
    pass


def _require_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise SchemaValidationError("Request body must be a JSON object.")
    return payload


def parse_login_request(payload: Any) -> tuple[str, str]:
    payload = _require_object(payload)
    username = payload.get("username")
    password = payload.get("password")
    if not username or not password:
        raise MissingField("Username and password are required.")
    if not isinstance(username, str) or not isinstance(password, str):
        raise SchemaValidationError("Username and password must be strings.")
    return username, password


def parse_export_request(payload: Any) -> tuple[int, str | None]:
    """Return ``(result_id, markdown)``; ``markdown`` is ``None`` when omitted."""
    payload = _require_object(payload)
    raw_id = payload.get("ocrResultId")
    if raw_id in (None, ""):
        raise MissingField("Missing OCR result ID.")
    if isinstance(raw_id, bool):
        raise SchemaValidationError("OCR result ID must be an integer.")
    try:
        result_id = int(raw_id)
    except (TypeError, ValueError) as error:
        raise SchemaValidationError("OCR result ID must be an integer.") from error
    if not MIN_RESULT_ID <= result_id <= MAX_RESULT_ID:
        raise ResultNotFound()

    markdown = payload.get("markdown")
    if markdown is not None and not isinstance(markdown, str):
        raise SchemaValidationError("Markdown must be a string.")
    return result_id, markdown or None


def parse_preview_request(payload: Any) -> str:
    payload = _require_object(payload)
    markdown = payload.get("markdown", "")
    if not isinstance(markdown, str):
        raise SchemaValidationError("Markdown must be a string.")
    return markdown


def validate_ocr_response(payload: dict[str, Any]) -> dict[str, Any]:
    required = {"markdown", "imageFilename", "resultId"}
    missing = required - set(payload.keys())
    if missing:
        raise RuntimeError(f"Invalid OCR response; missing keys: {sorted(missing)}")
    return payload
