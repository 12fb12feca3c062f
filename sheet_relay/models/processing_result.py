from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

"""Processing result models for the relay batches.

WriteResult is produced by a destination writer, TargetResult wraps one push
target outcome, ItemResult is the per-config outcome recorded by the batch
orchestrator and BatchResult aggregates one batch call. None of them are
persisted; they live for the duration of a run.
"""


def utc_timestamp() -> str:
    """Current UTC time as ISO8601 with a 'Z' suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a clear-then-write on one destination sheet."""
    destination_id: str  # Workbook id
    sheet_name: str
    rows_inserted: int
    columns_inserted: int
    range_to_clear: str | None  # None for whole-body clears
    timestamp: str


@dataclass(frozen=True)
class TargetResult:
    """Outcome of pushing source rows to one push target."""
    spreadsheet_id: str
    sheet_name: str
    success: bool
    write: WriteResult | None = None
    error: str | None = None


@dataclass(frozen=True)
class ItemResult:
    """Per-item outcome of a batch (one per config, created once, never mutated)."""
    success: bool
    source_identifier: str  # Label or source sheet name
    destination_sheet: str | None = None
    rows_written: int | None = None
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)
    details: dict[str, Any] = field(default_factory=dict)  # Email subject, attachment name, ...
    target_results: tuple[TargetResult, ...] = ()  # Push only


@dataclass(frozen=True)
class BatchResult:
    """Ordered per-item results plus derived counts for one batch call."""
    operation: str
    items: tuple[ItemResult, ...]
    start_time: datetime
    end_time: datetime

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def successful(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    @property
    def rows_written(self) -> int:
        return sum(item.rows_written or 0 for item in self.items if item.success)

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success_rate(self) -> float:
        """Percentage of successful items (0.0 for an empty batch)."""
        if not self.items:
            return 0.0
        return round(self.successful / self.total * 100, 1)

    def failures(self) -> list[ItemResult]:
        return [item for item in self.items if not item.success]
