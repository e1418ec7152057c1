"""Client for the Google Cloud Vision text-detection endpoint."""

from __future__ import annotations

import base64
import logging
from typing import Any

import requests

from src.main.textbook_ocr.errors import OracleAuthError, OracleQuotaExceeded, OracleUnavailable

LOGGER = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your_api_key_here"

_AUTH_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED", "7", "16"}
_QUOTA_STATUSES = {"RESOURCE_EXHAUSTED", "8"}


def _classify_error(status: str, message: str) -> OracleUnavailable:
    """Map a Vision error status (name or gRPC code) to an oracle failure."""
    lowered = message.lower()
    if status in _QUOTA_STATUSES or "quota" in lowered:
        return OracleQuotaExceeded()
    if status in _AUTH_STATUSES or "api key" in lowered:
        return OracleAuthError()
    return OracleUnavailable()


class VisionClient:
    """Sends one image to Vision and returns the full detected text."""

    def __init__(self, api_key: str, api_url: str, timeout: float = 60.0):
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    def detect_document_text(self, image_bytes: bytes) -> str | None:
        """Return the detected text, or ``None`` when Vision found none."""
        if not self.configured:
            LOGGER.error("Google Cloud Vision API key is not configured")
            raise OracleUnavailable("Google Cloud Vision API key not configured.")

        request_data = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION"}],
                }
            ]
        }

        try:
            response = requests.post(
                self.api_url,
                params={"key": self.api_key},
                json=request_data,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as error:
            LOGGER.error("Vision API request failed: %s", error)
            raise OracleUnavailable() from error

        body = self._parse_body(response)

        if response.status_code != 200:
            error = body.get("error")
            if not isinstance(error, dict):
                error = {}
            status = str(error.get("status", ""))
            message = str(error.get("message", ""))
            LOGGER.error("Vision API returned HTTP %s: %s %s", response.status_code, status, message)
            if response.status_code in (401, 403):
                raise OracleAuthError()
            if response.status_code == 429:
                raise OracleQuotaExceeded()
            raise _classify_error(status, message)

        return self._extract_text(body)

    @staticmethod
    def _parse_body(response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            if response.status_code == 200:
                LOGGER.error("Vision API returned a non-JSON body")
                raise OracleUnavailable() from None
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _extract_text(body: dict[str, Any]) -> str | None:
        responses = body.get("responses") or []
        if not isinstance(responses, list):
            LOGGER.error("Vision API returned malformed responses: %r", type(responses).__name__)
            raise OracleUnavailable()
        if not responses:
            return None

        first = responses[0] or {}
        if not isinstance(first, dict):
            LOGGER.error("Vision API returned a malformed image response")
            raise OracleUnavailable()

        error = first.get("error")
        if error:
            LOGGER.error("Vision API image error: %s", error)
            if not isinstance(error, dict):
                raise OracleUnavailable()
            status = error.get("status") or error.get("code") or ""
            raise _classify_error(str(status), str(error.get("message", "")))

        annotation = first.get("fullTextAnnotation") or {}
        if not isinstance(annotation, dict):
            LOGGER.error("Vision API returned a malformed text annotation")
            raise OracleUnavailable()
        text = annotation.get("text")
        return text if isinstance(text, str) else None
