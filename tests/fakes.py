"""In-memory doubles of the mail store, tabular store and converter.

Every mutation of a FakeStore sheet is appended to ``store.journal`` as
``(operation, workbook_id, sheet_name)`` so tests can assert ordering, e.g.
that nothing was written before pre-flight validation failed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sheet_relay.backends.xlsx_store import parse_a1
from sheet_relay.services.validation import EXCEL_MIME_TYPE


@dataclass
class FakeAttachment:
    name: str
    content_type: str = EXCEL_MIME_TYPE
    payload: bytes = b"PK\x03\x04fake-xlsx"

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def data(self) -> bytes:
        return self.payload


@dataclass
class FakeMessage:
    subject: str
    date: datetime
    _attachments: list[FakeAttachment] = field(default_factory=list)

    def attachments(self) -> list[FakeAttachment]:
        return list(self._attachments)


class FakeThread:
    def __init__(self, messages: list[FakeMessage]) -> None:
        self._messages = sorted(messages, key=lambda m: m.date)

    def messages(self) -> list[FakeMessage]:
        return list(self._messages)

    def message_count(self) -> int:
        return len(self._messages)


class FakeLabel:
    def __init__(self, name: str, threads: list[FakeThread] | None = None) -> None:
        self.name = name
        self.threads = threads or []

    def recent_threads(self, n: int | None = None) -> list[FakeThread]:
        ordered = sorted(self.threads, key=lambda t: t.messages()[-1].date, reverse=True)
        return ordered if n is None else ordered[:n]


class FakeMailStore:
    def __init__(self) -> None:
        self._labels: dict[str, FakeLabel] = {}

    def add_label(self, name: str, *threads: list[FakeMessage]) -> FakeLabel:
        label = FakeLabel(name, [FakeThread(list(msgs)) for msgs in threads])
        self._labels[name] = label
        return label

    def add_report(self, label: str, attachment_name: str, *, day: int = 1, subject: str | None = None) -> FakeMessage:
        """Add a single-message thread carrying one Excel attachment."""
        message = FakeMessage(
            subject=subject or f"{label} report {day}",
            date=datetime(2025, 1, day, 9, 0, tzinfo=UTC),
            _attachments=[FakeAttachment(attachment_name)],
        )
        existing = self._labels.get(label)
        if existing is None:
            self.add_label(label, [message])
        else:
            existing.threads.append(FakeThread([message]))
        return message

    def find_label(self, name: str) -> FakeLabel | None:
        return self._labels.get(name)

    def labels(self) -> list[str]:
        return sorted(self._labels)


def _blank(value: Any) -> bool:
    return value is None or value == ""


class FakeRange:
    def __init__(self, sheet: FakeSheet, min_row: int, min_col: int, max_row: int | None, max_col: int) -> None:
        self.sheet = sheet
        self.min_row = min_row
        self.min_col = min_col
        self.max_row = max_row
        self.max_col = max_col

    def _rows(self) -> range:
        last = self.max_row if self.max_row is not None else max(self.sheet.last_row, self.min_row)
        return range(self.min_row, last + 1)

    def get_values(self) -> list[list[Any]]:
        return [
            [self.sheet.cells.get((r, c), "") for c in range(self.min_col, self.max_col + 1)]
            for r in self._rows()
        ]

    def set_values(self, values: list[list[Any]]) -> None:
        width = self.max_col - self.min_col + 1
        for offset, row in enumerate(values):
            if len(row) != width:
                raise ValueError(f"data row {offset} has {len(row)} columns but the range has {width}")
        for r_off, row in enumerate(values):
            for c_off, value in enumerate(row):
                key = (self.min_row + r_off, self.min_col + c_off)
                if _blank(value):
                    self.sheet.cells.pop(key, None)
                else:
                    self.sheet.cells[key] = value
        self.sheet.record("set_values")

    def clear_content(self) -> None:
        for r in self._rows():
            for c in range(self.min_col, self.max_col + 1):
                self.sheet.cells.pop((r, c), None)
        self.sheet.record("clear")

    def set_note(self, note: str) -> None:
        self.sheet.notes[(self.min_row, self.min_col)] = note
        self.sheet.record("note")

    def get_note(self) -> str:
        return self.sheet.notes.get((self.min_row, self.min_col), "")


class FakeSheet:
    def __init__(self, workbook: FakeWorkbook, name: str, rows: list[list[Any]] | None = None) -> None:
        self.workbook = workbook
        self.name = name
        self.cells: dict[tuple[int, int], Any] = {}
        self.notes: dict[tuple[int, int], str] = {}
        for r, row in enumerate(rows or [], start=1):
            for c, value in enumerate(row, start=1):
                if not _blank(value):
                    self.cells[(r, c)] = value

    def record(self, operation: str) -> None:
        self.workbook.store.journal.append((operation, self.workbook.id, self.name))

    def rows(self) -> list[list[Any]]:
        """Full grid from A1 to the last used cell."""
        return self.range_at(1, 1, max(self.last_row, 1), max(self.max_column, 1)).get_values()

    def range(self, a1: str) -> FakeRange:
        min_col, min_row, max_col, max_row = parse_a1(a1)
        return FakeRange(self, min_row, min_col, max_row, max_col)

    def range_at(self, row: int, column: int, num_rows: int, num_columns: int) -> FakeRange:
        return FakeRange(self, row, column, row + num_rows - 1, column + num_columns - 1)

    def data_range(self) -> FakeRange:
        return self.range_at(1, 1, max(self.last_row, 1), max(self.max_column, 1))

    @property
    def last_row(self) -> int:
        return max((r for r, _ in self.cells), default=0)

    @property
    def max_column(self) -> int:
        return max((c for _, c in self.cells), default=0)


class FakeWorkbook:
    def __init__(self, store: FakeStore, workbook_id: str, name: str | None = None) -> None:
        self.store = store
        self.id = workbook_id
        self.name = name or workbook_id
        self._sheets: dict[str, FakeSheet] = {}

    def add_sheet(self, name: str, rows: list[list[Any]] | None = None) -> FakeSheet:
        sheet = FakeSheet(self, name, rows)
        self._sheets[name] = sheet
        return sheet

    def sheet_by_name(self, name: str) -> FakeSheet | None:
        return self._sheets.get(name)

    def sheets(self) -> list[FakeSheet]:
        return list(self._sheets.values())


class FakeStore:
    def __init__(self) -> None:
        self.workbooks: dict[str, FakeWorkbook] = {}
        self.journal: list[tuple[str, str, str]] = []
        self.failing_opens = 0

    def add(self, workbook_id: str, sheets: dict[str, list[list[Any]]], *, name: str | None = None) -> FakeWorkbook:
        workbook = FakeWorkbook(self, workbook_id, name)
        for sheet_name, rows in sheets.items():
            workbook.add_sheet(sheet_name, rows)
        self.workbooks[workbook_id] = workbook
        return workbook

    def sheet(self, workbook_id: str, sheet_name: str) -> FakeSheet:
        sheet = self.workbooks[workbook_id].sheet_by_name(sheet_name)
        assert sheet is not None
        return sheet

    def open_by_id(self, workbook_id: str) -> FakeWorkbook:
        if self.failing_opens > 0:
            self.failing_opens -= 1
            raise OSError(f"workbook {workbook_id} not ready")
        try:
            return self.workbooks[workbook_id]
        except KeyError:
            raise FileNotFoundError(f"workbook not found: {workbook_id}") from None

    def writes(self) -> list[tuple[str, str, str]]:
        return [entry for entry in self.journal if entry[0] in ("set_values", "clear")]


class FakeConverter:
    """Turns an attachment into a one-sheet workbook using canned tables.

    ``tables`` maps attachment names to the rows (header included) that the
    converted workbook's first sheet will hold.
    """

    def __init__(self, store: FakeStore, tables: dict[str, list[list[Any]]] | None = None) -> None:
        self.store = store
        self.tables = tables or {}
        self.converted: list[str] = []
        self.removed: list[str] = []
        self.seen_paths: list[Path] = []
        self.fail_with: Exception | None = None
        self.fail_remove_with: Exception | None = None

    def convert(self, path: Path, name: str) -> str:
        self.seen_paths.append(path)
        assert path.exists()
        if self.fail_with is not None:
            raise self.fail_with
        workbook_id = f"{Path(name).stem}_converted-{len(self.converted)}"
        self.store.add(workbook_id, {"Sheet1": self.tables.get(name, [])})
        self.converted.append(workbook_id)
        return workbook_id

    def remove(self, workbook_id: str) -> None:
        if self.fail_remove_with is not None:
            raise self.fail_remove_with
        self.store.workbooks.pop(workbook_id, None)
        self.removed.append(workbook_id)
