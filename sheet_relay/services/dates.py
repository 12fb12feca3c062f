from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

"""Date helpers for the timestamp notes stamped on A1."""

logger = logging.getLogger(__name__)


def format_date(date: datetime | None = None, fmt: str = "%m/%d/%Y", timezone: str = "America/Chicago") -> str:
    """Format ``date`` (default: now) in the configured timezone.

    An unknown timezone falls back to the date's own offset (or local time).
    """
    date = date or datetime.now().astimezone()
    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown timezone %r, formatting without conversion", timezone)
        return date.strftime(fmt)
    if date.tzinfo is None:
        date = date.astimezone()
    return date.astimezone(tz).strftime(fmt)


def timestamp_note(action: str = "Updated", date: datetime | None = None, **fmt_kwargs: str) -> str:
    """``Updated on: 10/17/2026`` style note used by the range-clear writer."""
    return f"{action} on: {format_date(date, **fmt_kwargs)}"


def script_timestamp_note(date: datetime | None = None, **fmt_kwargs: str) -> str:
    """``10/17/2026 by script`` style note used by the push writer."""
    return f"{format_date(date, **fmt_kwargs)} by script"
