"""Bundle a Markdown document and its source image into a zip archive."""

from __future__ import annotations

import logging
import time
import zipfile
from io import BytesIO
from pathlib import Path

from src.main.textbook_ocr.errors import SourceMissing, StorageFailure

LOGGER = logging.getLogger(__name__)


def archive_name(result_id: int) -> str:
    return f"textbook-ocr-{result_id}-{int(time.time() * 1000)}.zip"


def pack(markdown_text: str, image_path: str | Path, result_id: int) -> bytes:
    """Return the complete archive bytes.

    The archive is assembled in memory, so a failure part way through never
    hands the caller a truncated file.
    """
    image_path = Path(image_path)
    try:
        image_bytes = image_path.read_bytes()
    except FileNotFoundError as error:
        LOGGER.warning("Export aborted; image missing: %s", image_path)
        raise SourceMissing() from error
    except OSError as error:
        LOGGER.exception("Export aborted; could not read %s", image_path)
        raise StorageFailure("Failed to create ZIP file.") from error

    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        archive.writestr(f"ocr-result-{result_id}.md", markdown_text.encode("utf-8"))
        archive.writestr(image_path.name, image_bytes)
    return buffer.getvalue()
