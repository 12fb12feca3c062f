from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..backends.protocols import Sheet, TabularStore
from ..errors import GeneralError, RelayError
from ..models.config_models import Settings
from ..models.processing_result import WriteResult, utc_timestamp
from . import dates
from .validation import validate_data_array, validate_range, validate_sheet_name, validate_spreadsheet_id
from .workbooks import get_sheet, open_workbook

"""Destination writers.

Both strategies clear first, then write the rows starting at row 2, column 1
(row 1 holds the headers) and finally stamp a note on A1. They differ in what
they clear, which matters on sparse sheets:

- RangeClearWriter clears exactly the configured A1 range (email ingestion).
- BodyClearWriter clears every used column from row 2 down to the sheet's
  last row (data push).

The write range is sized from the first row, so ragged data fails at write
time; validate_data_array only warns about it beforehand.
"""

__all__ = [
    "DATA_START_ROW",
    "DATA_START_COLUMN",
    "RangeClearWriter",
    "BodyClearWriter",
]

logger = logging.getLogger(__name__)

DATA_START_ROW = 2
DATA_START_COLUMN = 1
NOTE_CELL = "A1"


class _Writer:
    def __init__(
        self,
        store: TabularStore,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock

    def _now(self) -> datetime | None:
        return self.clock() if self.clock is not None else None

    def _date_kwargs(self) -> dict[str, str]:
        return {"fmt": self.settings.date_format, "timezone": self.settings.timezone}

    def _insert(self, sheet: Sheet, data: list[list[Any]], context: str) -> int:
        if not data:
            return 0
        num_rows = len(data)
        num_columns = len(data[0])
        try:
            sheet.range_at(DATA_START_ROW, DATA_START_COLUMN, num_rows, num_columns).set_values(
                [list(row) for row in data]
            )
        except Exception as e:
            raise GeneralError(
                f"{context}: Failed to insert data into sheet",
                {
                    "sheet_name": sheet.name,
                    "data_rows": num_rows,
                    "data_columns": num_columns,
                    "original_error": str(e),
                },
            ) from e
        logger.info(
            "Data inserted into sheet %s: rows=%d columns=%d start_row=%d",
            sheet.name,
            num_rows,
            num_columns,
            DATA_START_ROW,
        )
        return num_rows

    def _stamp(self, sheet: Sheet, note: str, context: str) -> None:
        try:
            sheet.range(NOTE_CELL).set_note(note)
            logger.debug("Timestamp note added sheet=%s note=%r", sheet.name, note)
        except Exception as e:
            logger.warning("%s: Failed to add timestamp note on %s: %s", context, sheet.name, e)


class RangeClearWriter(_Writer):
    """Bounded-range clear, then write at row 2, then an "Updated on" note."""

    def write(
        self,
        destination_id: str,
        sheet_name: str,
        range_to_clear: str,
        data: list[list[Any]],
        context: str = "Sheet update",
    ) -> WriteResult:
        validate_spreadsheet_id(destination_id, f"{context}.spreadsheet_id")
        validate_sheet_name(sheet_name, f"{context}.sheet_name")
        validate_range(range_to_clear, f"{context}.range_to_clear")
        validate_data_array(data, f"{context}.data")

        workbook = open_workbook(self.store, destination_id, context)
        sheet = get_sheet(workbook, sheet_name, context)

        self._clear_range(sheet, range_to_clear, context)
        inserted = self._insert(sheet, data, context)
        self._stamp(sheet, dates.timestamp_note("Updated", self._now(), **self._date_kwargs()), context)

        result = WriteResult(
            destination_id=destination_id,
            sheet_name=sheet_name,
            rows_inserted=inserted,
            columns_inserted=len(data[0]) if data else 0,
            range_to_clear=range_to_clear,
            timestamp=utc_timestamp(),
        )
        logger.info(
            "Sheet updated: %s!%s cleared, rows=%d columns=%d",
            sheet_name,
            range_to_clear,
            result.rows_inserted,
            result.columns_inserted,
        )
        return result

    def _clear_range(self, sheet: Sheet, range_to_clear: str, context: str) -> None:
        try:
            sheet.range(range_to_clear).clear_content()
        except Exception as e:
            raise GeneralError(
                f"{context}: Failed to clear range {range_to_clear}",
                {"sheet_name": sheet.name, "range_to_clear": range_to_clear, "original_error": str(e)},
            ) from e
        logger.debug("Range cleared sheet=%s range=%s", sheet.name, range_to_clear)


class BodyClearWriter(_Writer):
    """Clear row 2 to the last row across all used columns, write, stamp a script note."""

    def write(
        self,
        destination_id: str,
        sheet_name: str,
        data: list[list[Any]],
        context: str = "Push target",
    ) -> WriteResult:
        try:
            validate_spreadsheet_id(destination_id, f"{context}.spreadsheet_id")
            validate_sheet_name(sheet_name, f"{context}.sheet_name")
            validate_data_array(data, f"{context}.data")

            workbook = open_workbook(self.store, destination_id, context)
            sheet = get_sheet(workbook, sheet_name, context)

            last_row = sheet.last_row
            if last_row > 1:
                sheet.range_at(DATA_START_ROW, DATA_START_COLUMN, last_row - 1, max(sheet.max_column, 1)).clear_content()
                logger.debug("Target sheet cleared sheet=%s cleared_rows=%d", sheet_name, last_row - 1)

            inserted = self._insert(sheet, data, context)
            self._stamp(sheet, dates.script_timestamp_note(self._now(), **self._date_kwargs()), context)
        except RelayError as e:
            raise GeneralError(
                f"Failed to push data to target: {e.message}",
                {
                    "target_spreadsheet_id": destination_id,
                    "target_sheet_name": sheet_name,
                    "data_rows": len(data) if isinstance(data, list) else None,
                    "original_code": e.code.value,
                    "original_error": e.message,
                },
            ) from e
        except Exception as e:
            raise GeneralError(
                f"Failed to push data to target: {e}",
                {"target_spreadsheet_id": destination_id, "target_sheet_name": sheet_name, "original_error": str(e)},
            ) from e

        return WriteResult(
            destination_id=destination_id,
            sheet_name=sheet_name,
            rows_inserted=inserted,
            columns_inserted=len(data[0]) if data else 0,
            range_to_clear=None,
            timestamp=utc_timestamp(),
        )
