from __future__ import annotations

from datetime import UTC, datetime

from filebuilders import write_eml, xlsx_bytes

from sheet_relay.backends.xlsx_store import XlsxWorkbookStore
from sheet_relay.config.loader import load_config
from sheet_relay.logging.error_log import ErrorLogBuffer
from sheet_relay.services.collaborators import Collaborators
from sheet_relay.services.orchestrator import process_all_configs, push_all_data
from sheet_relay.services.status import dry_run
from sheet_relay.services.validation import EXCEL_MIME_TYPE

"""End-to-end runs against real .xlsx workbooks and .eml messages."""

HEADER = ["Date", "Region", "Amount"]


def _rows(root, workbook_id, sheet):
    return XlsxWorkbookStore(root / "workbooks").open_by_id(workbook_id).sheet_by_name(sheet).data_range().get_values()


def _note(root, workbook_id, sheet):
    return XlsxWorkbookStore(root / "workbooks").open_by_id(workbook_id).sheet_by_name(sheet).range("A1").get_note()


def test_ingest_then_push(write_config, file_stores):
    cfg = load_config(write_config)
    collaborators = Collaborators.from_config(cfg)
    error_log = ErrorLogBuffer(file_stores / "logs")

    ingested = process_all_configs(cfg, collaborators, error_log=error_log)
    assert ingested.successful == 1
    assert _rows(file_stores, "main", "Sales") == [
        HEADER,
        ["2025-01-06", "East", 100],
        ["2025-01-06", "West", 200],
    ]
    assert _note(file_stores, "main", "Sales").startswith("Updated on: ")

    pushed = push_all_data(cfg, collaborators, error_log=error_log)
    assert pushed.successful == 1
    assert _rows(file_stores, "east", "Summary") == [
        HEADER,
        ["2025-01-01", "East", 10],
        ["2025-01-02", "West", 20],
    ]
    assert _note(file_stores, "east", "Summary").endswith(" by script")


def test_converted_workbooks_and_temp_files_are_removed(write_config, file_stores, tmp_path):
    cfg = load_config(write_config)
    temp_dir = tmp_path / "scratch"
    temp_dir.mkdir()
    collaborators = Collaborators.from_config(cfg)
    collaborators.temp_dir = temp_dir

    process_all_configs(cfg, collaborators, error_log=ErrorLogBuffer(file_stores / "logs"))

    assert sorted(p.name for p in (file_stores / "workbooks").iterdir()) == ["east.xlsx", "main.xlsx"]
    assert list(temp_dir.iterdir()) == []


def test_repeat_ingest_is_idempotent(write_config, file_stores):
    cfg = load_config(write_config)
    collaborators = Collaborators.from_config(cfg)
    error_log = ErrorLogBuffer(file_stores / "logs")

    process_all_configs(cfg, collaborators, error_log=error_log)
    first = _rows(file_stores, "main", "Sales")
    process_all_configs(cfg, collaborators, error_log=error_log)
    assert _rows(file_stores, "main", "Sales") == first


def test_newest_thread_attachment_is_ingested(write_config, file_stores):
    write_eml(
        file_stores / "mail" / "reports" / "sales",
        "2025-01-07.eml",
        "Daily sales export (Jan 7)",
        datetime(2025, 1, 7, 7, 30, tzinfo=UTC),
        [("sales.xlsx", EXCEL_MIME_TYPE, xlsx_bytes([HEADER, ["2025-01-07", "North", 300]]))],
    )
    cfg = load_config(write_config)
    process_all_configs(cfg, Collaborators.from_config(cfg), error_log=ErrorLogBuffer(file_stores / "logs"))

    assert _rows(file_stores, "main", "Sales") == [HEADER, ["2025-01-07", "North", 300]]


def test_header_only_attachment_clears_destination(write_config, file_stores):
    write_eml(
        file_stores / "mail" / "reports" / "sales",
        "2025-01-08.eml",
        "Empty export",
        datetime(2025, 1, 8, 7, 30, tzinfo=UTC),
        [("sales.xlsx", EXCEL_MIME_TYPE, xlsx_bytes([HEADER]))],
    )
    cfg = load_config(write_config)
    result = process_all_configs(cfg, Collaborators.from_config(cfg), error_log=ErrorLogBuffer(file_stores / "logs"))

    assert result.successful == 1
    assert result.rows_written == 0
    assert _rows(file_stores, "main", "Sales") == [HEADER]


def test_dry_run_leaves_files_untouched(write_config, file_stores):
    cfg = load_config(write_config)
    before = {p.name: p.read_bytes() for p in (file_stores / "workbooks").iterdir()}

    report = dry_run(cfg, Collaborators.from_config(cfg))

    assert report.valid is True
    assert {p.name: p.read_bytes() for p in (file_stores / "workbooks").iterdir()} == before
