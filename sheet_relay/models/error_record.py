from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the per-batch error log.

Each failed batch item (and each failed push target) is recorded as one JSON
line with a fixed set of keys so the log can be grepped and loaded back
without a schema negotiation.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        operation: Batch operation name (process_all_configs, push_all_data, ...)
        source: Label or source sheet the item reads from
        destination: Destination sheet, "<PRE_FLIGHT>" for batch-level failures
        error_type: Taxonomy code in UPPER_SNAKE_CASE (LABEL_NOT_FOUND, ...)
        message: Human readable error message
    """
    timestamp: str  # ISO8601 UTC
    operation: str
    source: str
    destination: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(
        operation: str, source: str, destination: str, error_type: str, message: str
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            operation=operation,
            source=source,
            destination=destination,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # dataclass -> dict keeps the key set fixed
        return json.dumps(asdict(self), ensure_ascii=False, default=str)
