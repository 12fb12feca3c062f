from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import openpyxl
from openpyxl.cell.cell import MergedCell
from openpyxl.comments import Comment
from openpyxl.utils.cell import column_index_from_string
from openpyxl.worksheet.worksheet import Worksheet

"""Directory of .xlsx files acting as the tabular store.

A workbook id is the file stem under the store root (``<root>/<id>.xlsx``).
Ranges use A1 notation; an open-ended range such as ``A2:H`` runs down to the
sheet's current last row. Notes are stored as cell comments. Every mutation
saves the file immediately, so a reader opening the workbook afterwards sees
the change.
"""

__all__ = [
    "XlsxWorkbookStore",
    "XlsxWorkbook",
    "XlsxSheet",
    "XlsxRange",
    "parse_a1",
]

logger = logging.getLogger(__name__)

NOTE_AUTHOR = "sheet-relay"

A1_PATTERN = re.compile(r"^([A-Z]+)(\d*)(?::([A-Z]+)(\d*))?$")


def parse_a1(a1: str) -> tuple[int, int, int, int | None]:
    """Parse an A1 range into (min_col, min_row, max_col, max_row).

    max_row is None for open-ended ranges (``A2:H``). A missing start row
    means row 1 (``A:H``).
    """
    m = A1_PATTERN.match(a1.strip().upper().replace("$", ""))
    if not m:
        raise ValueError(f"{a1!r} is not a valid A1 range")
    c1, r1, c2, r2 = m.groups()
    min_col = column_index_from_string(c1)
    min_row = int(r1) if r1 else 1
    if c2 is None:
        return (min_col, min_row, min_col, min_row)
    max_col = column_index_from_string(c2)
    max_row = int(r2) if r2 else None
    if max_col < min_col:
        min_col, max_col = max_col, min_col
    if max_row is not None and max_row < min_row:
        min_row, max_row = max_row, min_row
    return (min_col, min_row, max_col, max_row)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


class XlsxRange:
    def __init__(
        self, sheet: XlsxSheet, min_row: int, min_col: int, max_row: int | None, max_col: int
    ) -> None:
        self.sheet = sheet
        self.min_row = min_row
        self.min_col = min_col
        self.max_row = max_row
        self.max_col = max_col

    @property
    def _ws(self) -> Worksheet:
        return self.sheet.worksheet

    def _effective_max_row(self) -> int:
        if self.max_row is not None:
            return self.max_row
        return max(self._ws.max_row, self.min_row)

    def get_values(self) -> list[list[Any]]:
        rows = self._ws.iter_rows(
            min_row=self.min_row,
            max_row=self._effective_max_row(),
            min_col=self.min_col,
            max_col=self.max_col,
            values_only=True,
        )
        return [["" if v is None else v for v in row] for row in rows]

    def set_values(self, values: list[list[Any]]) -> None:
        width = self.max_col - self.min_col + 1
        if self.max_row is not None:
            height = self.max_row - self.min_row + 1
            if len(values) != height:
                raise ValueError(f"data has {len(values)} rows but the range has {height}")
        for offset, row in enumerate(values):
            if len(row) != width:
                raise ValueError(
                    f"data row {offset} has {len(row)} columns but the range has {width}"
                )
        for r_off, row in enumerate(values):
            for c_off, value in enumerate(row):
                # ws.cell(value=None) leaves an existing value in place, assign explicitly
                cell = self._ws.cell(row=self.min_row + r_off, column=self.min_col + c_off)
                cell.value = None if _is_blank(value) else value
        self.sheet.workbook.save()

    def clear_content(self) -> None:
        for row in self._ws.iter_rows(
            min_row=self.min_row,
            max_row=self._effective_max_row(),
            min_col=self.min_col,
            max_col=self.max_col,
        ):
            for cell in row:
                if isinstance(cell, MergedCell):
                    continue
                cell.value = None
        self.sheet.workbook.save()

    def set_note(self, note: str) -> None:
        cell = self._ws.cell(row=self.min_row, column=self.min_col)
        cell.comment = Comment(note, NOTE_AUTHOR)
        self.sheet.workbook.save()

    def get_note(self) -> str:
        cell = self._ws.cell(row=self.min_row, column=self.min_col)
        return cell.comment.text if cell.comment is not None else ""


class XlsxSheet:
    def __init__(self, workbook: XlsxWorkbook, worksheet: Worksheet) -> None:
        self.workbook = workbook
        self.worksheet = worksheet

    @property
    def name(self) -> str:
        return self.worksheet.title

    def range(self, a1: str) -> XlsxRange:
        min_col, min_row, max_col, max_row = parse_a1(a1)
        return XlsxRange(self, min_row, min_col, max_row, max_col)

    def range_at(self, row: int, column: int, num_rows: int, num_columns: int) -> XlsxRange:
        if row < 1 or column < 1 or num_rows < 1 or num_columns < 1:
            raise ValueError(
                f"invalid range: row={row} column={column} rows={num_rows} columns={num_columns}"
            )
        return XlsxRange(self, row, column, row + num_rows - 1, column + num_columns - 1)

    def data_range(self) -> XlsxRange:
        return self.range_at(1, 1, max(self.last_row, 1), max(self.max_column, 1))

    @property
    def last_row(self) -> int:
        """Last row holding a non-empty value (0 for an empty sheet)."""
        last = 0
        ws = self.worksheet
        for idx, row in enumerate(ws.iter_rows(min_row=1, max_row=ws.max_row, values_only=True), start=1):
            if any(not _is_blank(v) for v in row):
                last = idx
        return last

    @property
    def max_column(self) -> int:
        return self.worksheet.max_column


class XlsxWorkbook:
    def __init__(self, workbook_id: str, path: Path, book: openpyxl.Workbook) -> None:
        self.id = workbook_id
        self.path = path
        self._book = book

    @property
    def name(self) -> str:
        return self._book.properties.title or self.id

    def sheet_by_name(self, name: str) -> XlsxSheet | None:
        if name not in self._book.sheetnames:
            return None
        return XlsxSheet(self, self._book[name])

    def sheets(self) -> list[XlsxSheet]:
        return [XlsxSheet(self, ws) for ws in self._book.worksheets]

    def save(self) -> None:
        self._book.save(self.path)


class XlsxWorkbookStore:
    """Tabular store rooted at a directory of .xlsx workbooks."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def path_for(self, workbook_id: str) -> Path:
        return self.root / f"{workbook_id}.xlsx"

    def exists(self, workbook_id: str) -> bool:
        return self.path_for(workbook_id).is_file()

    def open_by_id(self, workbook_id: str) -> XlsxWorkbook:
        path = self.path_for(workbook_id)
        if not path.is_file():
            raise FileNotFoundError(f"workbook not found: {workbook_id} ({path})")
        return XlsxWorkbook(workbook_id, path, openpyxl.load_workbook(path))

    def create(
        self, workbook_id: str, sheets: Mapping[str, Iterable[Iterable[Any]]], *, title: str | None = None
    ) -> XlsxWorkbook:
        """Create (or overwrite) a workbook with the given sheets and rows."""
        self.root.mkdir(parents=True, exist_ok=True)
        book = openpyxl.Workbook()
        book.remove(book.active)
        for sheet_name, rows in sheets.items():
            ws = book.create_sheet(title=sheet_name)
            for row in rows:
                ws.append([None if _is_blank(v) else v for v in row])
        if not book.worksheets:
            book.create_sheet(title="Sheet1")
        if title:
            book.properties.title = title
        path = self.path_for(workbook_id)
        book.save(path)
        logger.debug("workbook created id=%s sheets=%s", workbook_id, list(sheets))
        return XlsxWorkbook(workbook_id, path, book)

    def remove(self, workbook_id: str) -> None:
        self.path_for(workbook_id).unlink()
