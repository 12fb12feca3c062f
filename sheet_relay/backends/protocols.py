from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

"""Interfaces of the external collaborators the pipeline calls.

The pipeline only talks to these protocols; the concrete file-backed
implementations live next to this module and tests substitute in-memory
doubles.

Cell values: empty cells read back as "" and a row is "empty" when every
cell is None or "".
"""

__all__ = [
    "Attachment",
    "Message",
    "Thread",
    "Label",
    "MailStore",
    "Range",
    "Sheet",
    "Workbook",
    "TabularStore",
    "Converter",
]

Rows = list[list[Any]]


class Attachment(Protocol):
    name: str
    content_type: str

    @property
    def size(self) -> int: ...

    @property
    def data(self) -> bytes: ...


class Message(Protocol):
    subject: str
    date: datetime

    def attachments(self) -> list[Attachment]: ...


class Thread(Protocol):
    def messages(self) -> list[Message]:
        """Messages oldest first."""
        ...

    def message_count(self) -> int: ...


class Label(Protocol):
    name: str

    def recent_threads(self, n: int | None = None) -> list[Thread]:
        """Threads ordered by most recent activity first (all when n is None)."""
        ...


class MailStore(Protocol):
    def find_label(self, name: str) -> Label | None: ...

    def labels(self) -> list[str]: ...


class Range(Protocol):
    def get_values(self) -> Rows: ...

    def set_values(self, values: Rows) -> None: ...

    def clear_content(self) -> None:
        """Clear values only; formatting and notes are kept."""
        ...

    def set_note(self, note: str) -> None: ...

    def get_note(self) -> str: ...


class Sheet(Protocol):
    name: str

    def range(self, a1: str) -> Range: ...

    def range_at(self, row: int, column: int, num_rows: int, num_columns: int) -> Range: ...

    def data_range(self) -> Range:
        """Range spanning A1 to the last row/column holding content."""
        ...

    @property
    def last_row(self) -> int: ...

    @property
    def max_column(self) -> int: ...


class Workbook(Protocol):
    id: str
    name: str

    def sheet_by_name(self, name: str) -> Sheet | None: ...

    def sheets(self) -> list[Sheet]: ...


class TabularStore(Protocol):
    def open_by_id(self, workbook_id: str) -> Workbook:
        """Open a workbook; raises when it does not exist or is unreadable."""
        ...


class Converter(Protocol):
    def convert(self, path: Path, name: str) -> str:
        """Convert a binary spreadsheet file into a store workbook; return its id."""
        ...

    def remove(self, workbook_id: str) -> None: ...
