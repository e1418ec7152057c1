"""Error taxonomy shared by services and the HTTP layer.

Every error a request can end in is an ``AppError`` subclass carrying the one
message shown to the user and the HTTP status it maps to. Root causes are
logged where they happen; only these classified messages leave the process.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing."""


class AppError(Exception):
    status_code = 500
    message = "Internal server error."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class AuthenticationFailure(AppError):
    status_code = 401
    message = "Authentication required."


class ValidationFailure(AppError):
    status_code = 400
    message = "Invalid request."


class InvalidFormat(ValidationFailure):
    message = "Invalid image format. Only PNG, JPEG, GIF, and WebP are supported."


class TooLarge(ValidationFailure):
    message = "Image too large. Maximum size is 10MB."


class MissingField(ValidationFailure):
    message = "Missing required field."


class UpstreamFailure(AppError):
    status_code = 502
    message = "OCR service failed."


class NoTextDetected(UpstreamFailure):
    status_code = 404
    message = "No text detected in the image. Please try a clearer image."


class OracleUnavailable(UpstreamFailure):
    status_code = 500
    message = "Failed to process OCR request."


class OracleAuthError(OracleUnavailable):
    status_code = 401
    message = "Invalid API key or API access denied."


class OracleQuotaExceeded(OracleUnavailable):
    status_code = 429
    message = "API quota exceeded. Please try again later."


class PersistenceFailure(AppError):
    status_code = 500
    message = "Failed to store data."


class StorageFailure(PersistenceFailure):
    message = "Failed to store OCR result."


class NotFound(AppError):
    status_code = 404
    message = "Not found."


class ResultNotFound(NotFound):
    message = "OCR result not found."


class SourceMissing(NotFound):
    message = "Image file not found."
