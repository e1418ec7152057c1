from __future__ import annotations

import re

import pytest

from conftest import FakeOracle, make_image_bytes
from src.main.textbook_ocr.errors import (
    InvalidFormat,
    NoTextDetected,
    OracleQuotaExceeded,
    OracleUnavailable,
    SourceMissing,
    StorageFailure,
    TooLarge,
    ValidationFailure,
)
from src.main.textbook_ocr.services.ocr_gateway import OCRGateway
from src.main.textbook_ocr.services.result_store import ResultStore

ALLOWED = {"png", "jpeg", "gif", "webp"}


@pytest.fixture
def store(tmp_path):
    result_store = ResultStore(tmp_path / "app.db")
    result_store.init_schema()
    return result_store


def _gateway(tmp_path, store, oracle, max_bytes=10 * 1024 * 1024):
    return OCRGateway(tmp_path / "images", store, oracle, max_bytes=max_bytes, allowed_formats=ALLOWED)


def test_process_stores_image_and_one_row(tmp_path, store, png_bytes):
    gateway = _gateway(tmp_path, store, FakeOracle())

    outcome = gateway.process(png_bytes)

    assert outcome.markdown.startswith("# Chapter 1\n\n")
    assert re.fullmatch(r"[0-9a-f]{32}\.png", outcome.image_filename)
    assert (tmp_path / "images" / outcome.image_filename).read_bytes() == png_bytes
    rows = store.list_all()
    assert len(rows) == 1
    assert rows[0].id == outcome.result_id
    assert rows[0].markdown_text == outcome.markdown


def test_jpeg_is_stored_with_jpg_extension(tmp_path, store):
    outcome = _gateway(tmp_path, store, FakeOracle()).process(make_image_bytes("JPEG"))

    assert outcome.image_filename.endswith(".jpg")


def test_payload_at_size_ceiling_is_rejected_without_rows(tmp_path, store, png_bytes):
    oracle = FakeOracle()
    gateway = _gateway(tmp_path, store, oracle, max_bytes=len(png_bytes))

    with pytest.raises(TooLarge) as excinfo:
        gateway.process(png_bytes)

    assert isinstance(excinfo.value, ValidationFailure)
    assert store.list_all() == []
    assert oracle.calls == 0
    assert not (tmp_path / "images").exists()


def test_unsupported_payload_is_rejected(tmp_path, store):
    with pytest.raises(InvalidFormat):
        _gateway(tmp_path, store, FakeOracle()).process(b"definitely not an image")


def test_bmp_is_not_an_accepted_format(tmp_path, store):
    with pytest.raises(InvalidFormat):
        _gateway(tmp_path, store, FakeOracle()).process(make_image_bytes("BMP"))


@pytest.mark.parametrize("text", [None, "", "  \n "])
def test_no_detected_text_inserts_no_row(tmp_path, store, png_bytes, text):
    gateway = _gateway(tmp_path, store, FakeOracle(text=text))

    with pytest.raises(NoTextDetected):
        gateway.process(png_bytes)

    assert store.list_all() == []


def test_oracle_failure_propagates_and_leaves_no_row(tmp_path, store, png_bytes):
    gateway = _gateway(tmp_path, store, FakeOracle(error=OracleQuotaExceeded()))

    with pytest.raises(OracleQuotaExceeded):
        gateway.process(png_bytes)

    assert store.list_all() == []
    # The image written before the oracle call is left behind.
    assert len(list((tmp_path / "images").iterdir())) == 1


def test_unconfigured_oracle_fails_before_writing(tmp_path, store, png_bytes):
    oracle = FakeOracle(configured=False)

    with pytest.raises(OracleUnavailable):
        _gateway(tmp_path, store, oracle).process(png_bytes)

    assert oracle.calls == 0
    assert not (tmp_path / "images").exists()


def test_image_write_failure_is_storage_failure(tmp_path, store, png_bytes):
    (tmp_path / "images").write_text("not a directory")

    with pytest.raises(StorageFailure):
        _gateway(tmp_path, store, FakeOracle()).process(png_bytes)

    assert store.list_all() == []


def test_image_path_resolves_stored_images_only(tmp_path, store, png_bytes):
    gateway = _gateway(tmp_path, store, FakeOracle())
    outcome = gateway.process(png_bytes)

    assert gateway.image_path(outcome.image_filename) == tmp_path / "images" / outcome.image_filename

    with pytest.raises(SourceMissing):
        gateway.image_path("../app.db")

    (tmp_path / "images" / outcome.image_filename).unlink()
    with pytest.raises(SourceMissing):
        gateway.image_path(outcome.image_filename)
