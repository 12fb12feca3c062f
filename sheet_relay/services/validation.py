from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from ..errors import AttachmentNotFound, MissingParameters, SheetNotFound
from ..models.config_models import PushSourceConfig, SourceTargetConfig
from ..models.processing_result import ItemResult

"""Structural validation for configs, ranges and tabular data.

Every function takes the value and a context label used as message prefix,
returns None on success and raises on a structural defect. Format checks are
advisory: a range or workbook id that looks odd is logged as a warning and
processing goes on; only absent values are fatal.
"""

__all__ = [
    "EXCEL_MIME_TYPE",
    "validate_config",
    "validate_range",
    "validate_data_array",
    "validate_targets",
    "validate_push_config",
    "validate_spreadsheet_id",
    "validate_sheet_name",
    "validate_label",
    "validate_attachment",
    "validate_sheet",
    "validate_batch_results",
]

logger = logging.getLogger(__name__)

EXCEL_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

RANGE_PATTERN = re.compile(r"^[A-Z]+\d*:[A-Z]+\d*$")
SPREADSHEET_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _require(record: Any, fields: Sequence[str], context: str) -> None:
    missing = [f for f in fields if _is_missing(getattr(record, f, None))]
    if missing:
        raise MissingParameters(
            f"{context}: Missing required parameters: {', '.join(missing)}",
            {"missing": missing},
        )


def _require_text(value: Any, what: str, context: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise MissingParameters(
            f"{context}: Invalid {what} provided",
            {"provided": value, "type": type(value).__name__},
        )


def validate_spreadsheet_id(spreadsheet_id: Any, context: str = "Spreadsheet ID") -> None:
    _require_text(spreadsheet_id, "spreadsheet ID", context)
    if not SPREADSHEET_ID_PATTERN.match(spreadsheet_id):
        logger.warning("%s: Spreadsheet ID format may be invalid (%s)", context, spreadsheet_id)


def validate_sheet_name(name: Any, context: str = "Sheet name") -> None:
    _require_text(name, "sheet name", context)


def validate_label(label: Any, context: str = "Mail label") -> None:
    _require_text(label, "mail label", context)


def validate_range(range_a1: Any, context: str = "Range") -> None:
    """Fail on an absent range; only warn when it does not look like ``A2:H``."""
    _require_text(range_a1, "range", context)
    if not RANGE_PATTERN.match(range_a1):
        logger.warning("%s: Range format may be invalid (%s)", context, range_a1)


def validate_config(config: SourceTargetConfig | None, context: str = "Email configuration") -> None:
    """Validate one email-ingestion config record."""
    if config is None:
        raise MissingParameters(f"{context}: Configuration must be provided")
    _require(config, ("source_identifier", "destination_sheet", "range_to_clear"), context)
    validate_sheet_name(config.destination_sheet, f"{context}.destination_sheet")
    validate_range(config.range_to_clear, f"{context}.range_to_clear")
    validate_label(config.source_identifier, f"{context}.source_identifier")


def validate_targets(config: PushSourceConfig, context: str = "Push targets") -> None:
    """Validate the push targets of a source sheet; the first defect aborts."""
    if not config.targets:
        raise MissingParameters(f"{context}: Targets must be a non-empty list")
    for index, target in enumerate(config.targets):
        target_context = f"{context}.targets[{index}]"
        _require(target, ("spreadsheet_id", "sheet_name"), target_context)
        validate_spreadsheet_id(target.spreadsheet_id, f"{target_context}.spreadsheet_id")
        validate_sheet_name(target.sheet_name, f"{target_context}.sheet_name")


def validate_push_config(config: PushSourceConfig | None, context: str = "Push data configuration") -> None:
    if config is None:
        raise MissingParameters(f"{context}: Configuration must be provided")
    _require(config, ("source_sheet", "range"), context)
    validate_sheet_name(config.source_sheet, f"{context}.source_sheet")
    validate_range(config.range, f"{context}.range")
    validate_targets(config, context)


def validate_data_array(data: Any, context: str = "Data array") -> None:
    """Check that data is a list of row lists.

    Ragged rows are only reported: the writers size their range from the first
    row, so a ragged array will still fail later at write time.
    """
    if not isinstance(data, (list, tuple)):
        raise MissingParameters(
            f"{context}: Data must be a list of rows", {"provided": type(data).__name__}
        )
    if not data:
        logger.warning("%s: Data array is empty", context)
        return

    expected_columns = None
    mismatched: list[int] = []
    for index, row in enumerate(data):
        if not isinstance(row, (list, tuple)):
            raise MissingParameters(
                f"{context}: Row {index} is not a list",
                {"row_index": index, "row_type": type(row).__name__},
            )
        if expected_columns is None:
            expected_columns = len(row)
        elif len(row) != expected_columns:
            mismatched.append(index)

    if mismatched:
        logger.warning(
            "%s: Inconsistent row lengths detected (expected %d columns, rows %s)",
            context,
            expected_columns,
            mismatched,
        )


def validate_attachment(attachment: Any, context: str = "Email attachment") -> None:
    if attachment is None:
        raise AttachmentNotFound(f"{context}: No attachment provided")
    if attachment.content_type != EXCEL_MIME_TYPE:
        raise AttachmentNotFound(
            f"{context}: Invalid attachment type. Expected Excel file.",
            {
                "provided_type": attachment.content_type,
                "expected_type": EXCEL_MIME_TYPE,
                "file_name": attachment.name,
            },
        )


def validate_sheet(sheet: Any, expected_name: str | None = None, context: str = "Sheet") -> None:
    if sheet is None:
        if expected_name:
            raise SheetNotFound(f'{context}: Sheet "{expected_name}" not found', {"expected_name": expected_name})
        raise SheetNotFound(f"{context}: Sheet not found")
    if expected_name and sheet.name != expected_name:
        raise SheetNotFound(
            f"{context}: Sheet name mismatch",
            {"expected_name": expected_name, "actual_name": sheet.name},
        )


def validate_batch_results(results: Any, context: str = "Batch results") -> None:
    if not isinstance(results, (list, tuple)):
        raise MissingParameters(f"{context}: Results must be a list")
    for index, result in enumerate(results):
        if not isinstance(result, ItemResult):
            raise MissingParameters(f"{context}: Result {index} must be an ItemResult", {"result_index": index})
        if not isinstance(result.success, bool):
            raise MissingParameters(
                f"{context}: Result {index} must have a boolean 'success' field", {"result_index": index}
            )
