"""SQLite-backed store of OCR results."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.main.textbook_ocr.errors import StorageFailure

LOGGER = logging.getLogger(__name__)

# SQLite INTEGER PRIMARY KEY range; AUTOINCREMENT ids start at 1.
MIN_RESULT_ID = 1
MAX_RESULT_ID = 2**63 - 1


def _in_id_range(result_id: int) -> bool:
    return MIN_RESULT_ID <= result_id <= MAX_RESULT_ID


@dataclass(frozen=True)
class OCRResult:
    id: int
    image_filename: str
    markdown_text: str
    created_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "OCRResult":
        return cls(
            id=row["id"],
            image_filename=row["image_filename"],
            markdown_text=row["markdown_text"],
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ResultStore:
    """Append-only table of OCR outcomes.

    Every operation opens its own connection, so one store can be shared by
    all request threads without locking.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)

    def _get_connection(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _execute(self, sql: str, params: tuple[Any, ...] = (), fetch: str | None = None) -> Any:
        """Run one statement in its own transaction.

        ``fetch`` selects the return value: ``"one"`` / ``"all"`` for rows,
        otherwise the cursor (for ``lastrowid`` and ``rowcount``).
        """
        try:
            with closing(self._get_connection()) as conn, conn:
                cursor = conn.execute(sql, params)
                if fetch == "one":
                    return cursor.fetchone()
                if fetch == "all":
                    return cursor.fetchall()
                return cursor
        except sqlite3.Error as error:
            LOGGER.exception("Result store query failed")
            raise StorageFailure() from error

    def init_schema(self) -> None:
        """Ensure the results table exists."""
        self._execute(
            """
            CREATE TABLE IF NOT EXISTS ocr_results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                image_filename TEXT NOT NULL,
                markdown_text TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )

    def insert(self, image_filename: str, markdown_text: str) -> int:
        created_at = datetime.now(timezone.utc).isoformat()
        cursor = self._execute(
            "INSERT INTO ocr_results (image_filename, markdown_text, created_at) VALUES (?, ?, ?)",
            (image_filename, markdown_text, created_at),
        )
        LOGGER.info("Stored OCR result id=%s image=%s", cursor.lastrowid, image_filename)
        return int(cursor.lastrowid)

    def get_by_id(self, result_id: int) -> OCRResult | None:
        if not _in_id_range(result_id):
            return None
        row = self._execute("SELECT * FROM ocr_results WHERE id = ?", (result_id,), fetch="one")
        return OCRResult.from_row(row) if row is not None else None

    def get_by_filename(self, image_filename: str) -> OCRResult | None:
        row = self._execute(
            "SELECT * FROM ocr_results WHERE image_filename = ?",
            (image_filename,),
            fetch="one",
        )
        return OCRResult.from_row(row) if row is not None else None

    def list_all(self) -> list[OCRResult]:
        rows = self._execute("SELECT * FROM ocr_results ORDER BY created_at DESC, id DESC", fetch="all")
        return [OCRResult.from_row(row) for row in rows]

    def delete_by_id(self, result_id: int) -> bool:
        """Delete the metadata row only; the image file is left alone."""
        if not _in_id_range(result_id):
            return False
        cursor = self._execute("DELETE FROM ocr_results WHERE id = ?", (result_id,))
        return cursor.rowcount > 0
