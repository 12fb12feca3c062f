from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..backends.protocols import Sheet, TabularStore, Workbook
from ..errors import SheetNotFound, SpreadsheetNotFound
from .validation import validate_sheet, validate_spreadsheet_id

"""Workbook/sheet resolution shared by readers, writers and status checks."""

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkbookMetadata:
    id: str
    name: str
    sheet_count: int
    sheet_names: tuple[str, ...]


def open_workbook(store: TabularStore, workbook_id: str, context: str) -> Workbook:
    """Open a workbook, mapping any store failure to SpreadsheetNotFound."""
    try:
        return store.open_by_id(workbook_id)
    except Exception as e:
        raise SpreadsheetNotFound(
            f"{context}: Failed to open spreadsheet {workbook_id}",
            {"spreadsheet_id": workbook_id, "original_error": str(e)},
        ) from e


def get_sheet(workbook: Workbook, sheet_name: str, context: str) -> Sheet:
    sheet = workbook.sheet_by_name(sheet_name)
    validate_sheet(sheet, sheet_name, context)
    return sheet


def spreadsheet_metadata(store: TabularStore, workbook_id: str) -> WorkbookMetadata:
    validate_spreadsheet_id(workbook_id, "spreadsheet_metadata")
    workbook = open_workbook(store, workbook_id, "spreadsheet_metadata")
    names = tuple(s.name for s in workbook.sheets())
    return WorkbookMetadata(id=workbook.id, name=workbook.name, sheet_count=len(names), sheet_names=names)


def validate_required_sheets(
    store: TabularStore, workbook_id: str, required: list[str], context: str = "Sheet validation"
) -> None:
    """Raise SheetNotFound naming every required sheet missing from the workbook."""
    workbook = open_workbook(store, workbook_id, context)
    existing = [s.name for s in workbook.sheets()]
    missing = [name for name in required if name not in existing]
    if missing:
        details: dict[str, Any] = {
            "spreadsheet_id": workbook_id,
            "missing_sheets": missing,
            "existing_sheets": existing,
        }
        raise SheetNotFound(f"{context}: Missing required sheets: {', '.join(missing)}", details)
    logger.info("Required sheets validation passed (%s): %s", context, required)
