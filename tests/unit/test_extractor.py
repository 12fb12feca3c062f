from __future__ import annotations

import pytest
from fakes import FakeAttachment, FakeConverter, FakeStore

from sheet_relay.errors import FileProcessingError, MissingParameters
from sheet_relay.models.config_models import RetrySettings
from sheet_relay.services.extractor import TabularExtractor

"""Unit tests for attachment -> rows extraction and its cleanup guarantees."""

HEADER = ["Date", "Region", "Amount"]


@pytest.fixture()
def fx(tmp_path):
    store = FakeStore()
    converter = FakeConverter(store)
    sleeps: list[float] = []
    extractor = TabularExtractor(
        converter,
        store,
        RetrySettings(max_retries=3, retry_delay=1.0, file_cleanup_delay=2.0),
        sleep=sleeps.append,
        temp_dir=tmp_path,
    )
    return store, converter, extractor, sleeps


def test_header_row_is_dropped(fx):
    store, converter, extractor, sleeps = fx
    converter.tables["a.xlsx"] = [HEADER, ["d1", "East", 1], ["d2", "West", 2]]
    assert extractor.extract(FakeAttachment("a.xlsx")) == [["d1", "East", 1], ["d2", "West", 2]]


@pytest.mark.parametrize("rows", [[], [HEADER]])
def test_header_only_or_empty_sheet_gives_no_rows(fx, rows):
    _, converter, extractor, _ = fx
    converter.tables["a.xlsx"] = rows
    assert extractor.extract(FakeAttachment("a.xlsx")) == []


def test_temp_file_and_converted_workbook_are_released(fx):
    store, converter, extractor, sleeps = fx
    converter.tables["a.xlsx"] = [HEADER, ["d1", "East", 1]]
    extractor.extract(FakeAttachment("a.xlsx"))

    assert converter.removed == converter.converted
    assert converter.converted[0] not in store.workbooks
    assert not converter.seen_paths[0].exists()
    # cleanup waits file_cleanup_delay before deleting
    assert sleeps == [2.0]


def test_cleanup_runs_when_extraction_fails(fx):
    store, converter, extractor, sleeps = fx
    converter.tables["a.xlsx"] = [HEADER, ["d1", "East", 1]]
    store.failing_opens = 10

    with pytest.raises(FileProcessingError, match="failed after 3 attempts"):
        extractor.extract(FakeAttachment("a.xlsx"), "cfg")

    assert converter.removed == converter.converted
    assert not converter.seen_paths[0].exists()
    # two retry pauses then the cleanup pause
    assert sleeps == [1.0, 1.0, 2.0]


def test_transient_read_failures_are_retried(fx):
    store, converter, extractor, sleeps = fx
    converter.tables["a.xlsx"] = [HEADER, ["d1", "East", 1]]
    store.failing_opens = 2
    assert extractor.extract(FakeAttachment("a.xlsx")) == [["d1", "East", 1]]
    assert sleeps == [1.0, 1.0, 2.0]


def test_conversion_failure_is_not_retried_and_temp_file_removed(fx):
    _, converter, extractor, sleeps = fx
    converter.fail_with = ValueError("corrupt workbook")

    with pytest.raises(FileProcessingError) as exc:
        extractor.extract(FakeAttachment("bad.xlsx"))

    assert exc.value.details["original_error"] == "corrupt workbook"
    assert converter.converted == []
    assert not converter.seen_paths[0].exists()
    assert sleeps == [2.0]


def test_cleanup_failures_are_only_logged(fx, caplog):
    _, converter, extractor, _ = fx
    converter.tables["a.xlsx"] = [HEADER, ["d1", "East", 1]]
    converter.fail_remove_with = PermissionError("locked")

    assert extractor.extract(FakeAttachment("a.xlsx")) == [["d1", "East", 1]]
    assert "Failed to cleanup converted workbook" in caplog.text


def test_attachment_bytes_reach_the_converter(fx):
    _, converter, extractor, _ = fx
    captured: list[bytes] = []
    original = converter.convert

    def spy(path, name):
        captured.append(path.read_bytes())
        return original(path, name)

    converter.convert = spy
    extractor.extract(FakeAttachment("a.xlsx", payload=b"raw-bytes"))
    assert captured == [b"raw-bytes"]


def test_missing_attachment(fx):
    _, _, extractor, sleeps = fx
    with pytest.raises(MissingParameters):
        extractor.extract(None)
    assert sleeps == []


class UnreadableAttachment(FakeAttachment):
    @property
    def data(self) -> bytes:
        raise OSError("disk full")


def test_temp_file_removed_when_write_fails(fx, tmp_path):
    _, converter, extractor, _ = fx
    with pytest.raises(FileProcessingError, match="Failed to create temporary file"):
        extractor.extract(UnreadableAttachment("a.xlsx"))

    assert list(tmp_path.glob("sheet-relay-*")) == []
    assert converter.converted == []
