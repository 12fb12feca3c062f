from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Status and dry-run report models.

These are read-only views over the configured items: they describe
reachability and counts, never the result of a mutation.
"""


class CheckStatus(Enum):
    """Outcome of a single dry-run check.

    WARN is advisory (e.g. a label with zero emails) and does not make a
    configuration invalid; FAIL does.
    """
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class ConfigStatus:
    """Reachability of one email-ingestion config."""
    index: int
    destination_sheet: str
    label: str
    label_exists: bool = False
    email_count: int = 0
    latest_email_date: datetime | None = None
    range_to_clear: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class TargetStatus:
    index: int
    spreadsheet_id: str
    sheet_name: str
    accessible: bool
    spreadsheet_name: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class PushSheetStatus:
    """Current shape of a push source sheet and the reachability of its targets."""
    sheet_name: str
    range: str | None = None
    current_row_count: int = 0
    current_column_count: int = 0
    targets: tuple[TargetStatus, ...] = ()
    error: str | None = None


@dataclass
class DryRunEntry:
    index: int
    destination_sheet: str
    label: str
    valid: bool = True
    checks: dict[str, CheckStatus] = field(default_factory=dict)
    error: str | None = None


@dataclass
class DryRunReport:
    """Aggregated dry-run outcome. Built incrementally, returned to the caller."""
    timestamp: str
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    configurations: list[DryRunEntry] = field(default_factory=list)
