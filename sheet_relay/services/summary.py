from __future__ import annotations

from ..models.processing_result import BatchResult

"""SUMMARY line rendering for batch results."""


def _format_number(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        # Avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BatchResult) -> str:
    """Render the SUMMARY line of a batch.

    Format:
    SUMMARY operation={op} items={total} success={ok} failed={failed}
    rows={rows} success_rate={pct} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2025, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> render_summary_line(BatchResult("push_all_data", (), start, end))
        'SUMMARY operation=push_all_data items=0 success=0 failed=0 rows=0 success_rate=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY operation={result.operation} "
        f"items={result.total} "
        f"success={result.successful} "
        f"failed={result.failed} "
        f"rows={result.rows_written} "
        f"success_rate={_format_number(result.success_rate)} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)}"
    )
