# Shared pytest fixtures
from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest
from fakes import FakeConverter, FakeMailStore, FakeStore
from filebuilders import write_eml, xlsx_bytes

from sheet_relay.backends.xlsx_store import XlsxWorkbookStore
from sheet_relay.logging.init import reset_logging
from sheet_relay.models.config_models import (
    PushSourceConfig,
    PushTarget,
    RelayConfig,
    RetrySettings,
    Settings,
    SourceTargetConfig,
)
from sheet_relay.services.collaborators import Collaborators
from sheet_relay.services.validation import EXCEL_MIME_TYPE

HEADER = ["Date", "Region", "Amount"]


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "logs").mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SHEET_RELAY_MAIL_ROOT", raising=False)
    monkeypatch.delenv("SHEET_RELAY_WORKBOOK_ROOT", raising=False)
    return tmp_path


@pytest.fixture()
def store() -> FakeStore:
    s = FakeStore()
    s.add(
        "main",
        {
            "Sales": [HEADER, ["old", "old", 1], ["old", "old", 2]],
            "Inventory": [["Sku", "Qty"], ["old", 0]],
            "Summary": [HEADER, ["2025-01-01", "East", 10], ["2025-01-02", "West", 20]],
        },
        name="Main Workbook",
    )
    s.add("east", {"Summary": [HEADER, ["stale", "stale", 0]]}, name="East")
    s.add("west", {"Summary": [HEADER]}, name="West")
    return s


@pytest.fixture()
def mail() -> FakeMailStore:
    m = FakeMailStore()
    m.add_report("reports/sales", "sales.xlsx", day=2)
    m.add_report("reports/inventory", "inventory.xlsx", day=3)
    return m


@pytest.fixture()
def converter(store: FakeStore) -> FakeConverter:
    return FakeConverter(
        store,
        {
            "sales.xlsx": [HEADER, ["2025-01-06", "East", 100], ["2025-01-06", "West", 200]],
            "inventory.xlsx": [["Sku", "Qty"], ["A-1", 5]],
        },
    )


@pytest.fixture()
def sleeps() -> list[float]:
    """Recorded sleep durations (nothing actually sleeps in tests)."""
    return []


@pytest.fixture()
def collaborators(mail, store, converter, sleeps, tmp_path: Path) -> Collaborators:
    return Collaborators(mail=mail, workbooks=store, converter=converter, sleep=sleeps.append, temp_dir=tmp_path)


@pytest.fixture()
def relay_config() -> RelayConfig:
    return RelayConfig(
        main_spreadsheet_id="main",
        email_configs=(
            SourceTargetConfig("reports/sales", "Sales", "A2:C"),
            SourceTargetConfig("reports/inventory", "Inventory", "A2:B"),
        ),
        push_configs=(
            PushSourceConfig(
                "Summary",
                "A2:C",
                (PushTarget("east", "Summary"), PushTarget("west", "Summary")),
            ),
        ),
        retry=RetrySettings(max_retries=3, retry_delay=1.0, file_cleanup_delay=2.0),
        settings=Settings(timezone="UTC", item_pause=0.5),
    )


@pytest.fixture()
def sample_config_yaml() -> str:
    return """main_spreadsheet_id: main
email_configs:
  - label: reports/sales
    sheet_name: Sales
    range_to_clear: A2:C
push_configs:
  Summary:
    range: A2:C
    targets:
      - spreadsheet_id: east
        sheet_name: Summary
retry:
  max_retries: 2
  retry_delay: 0
  file_cleanup_delay: 0
settings:
  timezone: UTC
  item_pause: 0
stores:
  mail_root: ./mail
  workbook_root: ./workbooks
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "relay.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def file_stores(temp_workdir: Path) -> Path:
    """Real workbooks and .eml files under the working directory used by write_config."""
    workbooks = XlsxWorkbookStore(temp_workdir / "workbooks")
    workbooks.create(
        "main",
        {
            "Sales": [HEADER, ["old", "old", 1], ["old", "old", 2], ["old", "old", 3]],
            "Summary": [HEADER, ["2025-01-01", "East", 10], ["2025-01-02", "West", 20]],
        },
        title="Main Workbook",
    )
    workbooks.create("east", {"Summary": [HEADER, ["stale", "stale", 0]]}, title="East")

    payload = xlsx_bytes([HEADER, ["2025-01-06", "East", 100], ["2025-01-06", "West", 200]])
    write_eml(
        temp_workdir / "mail" / "reports" / "sales",
        "2025-01-06.eml",
        "Daily sales export",
        datetime(2025, 1, 6, 7, 30, tzinfo=UTC),
        [("sales.xlsx", EXCEL_MIME_TYPE, payload)],
    )
    return temp_workdir
