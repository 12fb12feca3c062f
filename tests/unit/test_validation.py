from __future__ import annotations

import logging

import pytest
from fakes import FakeAttachment

from sheet_relay.errors import AttachmentNotFound, ErrorCode, MissingParameters, SheetNotFound
from sheet_relay.models.config_models import PushSourceConfig, PushTarget, SourceTargetConfig
from sheet_relay.models.processing_result import ItemResult
from sheet_relay.services.validation import (
    validate_attachment,
    validate_batch_results,
    validate_config,
    validate_data_array,
    validate_push_config,
    validate_range,
    validate_sheet,
    validate_spreadsheet_id,
)

"""Unit tests for structural validation."""


def test_validate_config_accepts_complete_record():
    validate_config(SourceTargetConfig("reports/sales", "Sales", "A2:H"))


def test_validate_config_names_every_missing_field():
    with pytest.raises(MissingParameters) as exc:
        validate_config(SourceTargetConfig(None, "Sales", ""), "Config 3")
    assert exc.value.code is ErrorCode.MISSING_PARAMETERS
    assert exc.value.message == "Config 3: Missing required parameters: source_identifier, range_to_clear"
    assert exc.value.details["missing"] == ["source_identifier", "range_to_clear"]


def test_validate_config_rejects_none():
    with pytest.raises(MissingParameters, match="Configuration must be provided"):
        validate_config(None)


def test_validate_range_only_warns_on_odd_format(caplog):
    caplog.set_level(logging.WARNING)
    validate_range("Sheet1!A2:H", "ctx")
    assert "Range format may be invalid" in caplog.text


@pytest.mark.parametrize("value", [None, "", "   ", 42])
def test_validate_range_rejects_absent_values(value):
    with pytest.raises(MissingParameters, match="Invalid range"):
        validate_range(value)


def test_validate_spreadsheet_id_warns_on_unusual_characters(caplog):
    caplog.set_level(logging.WARNING)
    validate_spreadsheet_id("main workbook!")
    assert "format may be invalid" in caplog.text


def test_validate_data_array_empty_is_valid_but_warns(caplog):
    caplog.set_level(logging.WARNING)
    validate_data_array([], "rows")
    assert "Data array is empty" in caplog.text


def test_validate_data_array_ragged_rows_only_warn(caplog):
    caplog.set_level(logging.WARNING)
    validate_data_array([[1, 2], [3], [4, 5], [6, 7, 8]], "rows")
    assert "rows [1, 3]" in caplog.text


def test_validate_data_array_rejects_non_list():
    with pytest.raises(MissingParameters, match="Data must be a list of rows"):
        validate_data_array("a,b,c")


def test_validate_data_array_rejects_non_list_row():
    with pytest.raises(MissingParameters, match="Row 1 is not a list"):
        validate_data_array([[1], "x"])


def test_validate_push_config_requires_targets():
    with pytest.raises(MissingParameters, match="Targets must be a non-empty list"):
        validate_push_config(PushSourceConfig("Summary", "A2:C", ()))


def test_validate_push_config_reports_target_index():
    config = PushSourceConfig("Summary", "A2:C", (PushTarget("east", "Summary"), PushTarget("west", None)))
    with pytest.raises(MissingParameters) as exc:
        validate_push_config(config, "push")
    assert exc.value.message == "push.targets[1]: Missing required parameters: sheet_name"


def test_validate_attachment_requires_excel_type():
    validate_attachment(FakeAttachment("ok.xlsx"))
    with pytest.raises(AttachmentNotFound, match="Expected Excel file"):
        validate_attachment(FakeAttachment("notes.csv", content_type="text/csv"))


def test_validate_sheet_names_missing_sheet():
    with pytest.raises(SheetNotFound, match='Sheet "Sales" not found'):
        validate_sheet(None, "Sales", "ctx")


def test_validate_batch_results_checks_item_types():
    validate_batch_results([ItemResult(success=True, source_identifier="x")])
    with pytest.raises(MissingParameters, match="Result 0 must be an ItemResult"):
        validate_batch_results([{"success": True}])
