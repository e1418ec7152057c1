"""Image-to-Markdown pipeline: validate, store, recognize, format, record."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.main.textbook_ocr.errors import NoTextDetected, OracleUnavailable, SourceMissing, StorageFailure
from src.main.textbook_ocr.services.markdown_formatter import format_markdown
from src.main.textbook_ocr.services.result_store import ResultStore
from src.main.textbook_ocr.utils.validators import is_stored_image_filename, validate_image_bytes

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OCROutcome:
    markdown: str
    image_filename: str
    result_id: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "markdown": self.markdown,
            "imageFilename": self.image_filename,
            "resultId": self.result_id,
        }


class OCRGateway:
    """Runs one captured image through the OCR oracle and records the result.

    ``oracle`` is anything exposing ``configured`` and
    ``detect_document_text(bytes) -> str | None`` (see ``VisionClient``).
    """

    def __init__(
        self,
        image_dir: str | Path,
        store: ResultStore,
        oracle: Any,
        max_bytes: int,
        allowed_formats: set[str],
    ):
        self.image_dir = Path(image_dir)
        self.store = store
        self.oracle = oracle
        self.max_bytes = max_bytes
        self.allowed_formats = allowed_formats

    def process(self, image_bytes: bytes) -> OCROutcome:
        frame = validate_image_bytes(image_bytes, self.allowed_formats, self.max_bytes)

        # Refuse before touching the disk when the oracle cannot be reached at all.
        if not self.oracle.configured:
            raise OracleUnavailable("Google Cloud Vision API key not configured.")

        image_filename = f"{uuid.uuid4().hex}.{frame.extension}"
        self._write_image(image_filename, frame.data)

        # From here on a failure leaves the image file orphaned; it is not cleaned up.
        try:
            raw_text = self.oracle.detect_document_text(frame.data)
        except OracleUnavailable:
            LOGGER.warning("OCR failed for %s; image left on disk", image_filename)
            raise

        if raw_text is None or not raw_text.strip():
            LOGGER.info("No text detected in %s", image_filename)
            raise NoTextDetected()

        markdown = format_markdown(raw_text)
        result_id = self.store.insert(image_filename, markdown)
        return OCROutcome(markdown=markdown, image_filename=image_filename, result_id=result_id)

    def _write_image(self, image_filename: str, data: bytes) -> None:
        try:
            self.image_dir.mkdir(parents=True, exist_ok=True)
            (self.image_dir / image_filename).write_bytes(data)
        except OSError as error:
            LOGGER.exception("Failed to write image %s", image_filename)
            raise StorageFailure("Failed to store image.") from error

    def image_path(self, image_filename: str) -> Path:
        """Return the path of a stored image, or raise ``SourceMissing``."""
        if not is_stored_image_filename(image_filename):
            raise SourceMissing()
        path = self.image_dir / image_filename
        if not path.is_file():
            LOGGER.warning("Backing image missing: %s", path)
            raise SourceMissing()
        return path
