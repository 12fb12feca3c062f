"""Domain models for the sheet relay.

Configuration records, per-item and batch results, status reports and the
error log record.
"""

from .config_models import (
    PushSourceConfig,
    PushTarget,
    RelayConfig,
    RetrySettings,
    Settings,
    SourceTargetConfig,
    StoreSettings,
)
from .error_record import ErrorRecord
from .processing_result import BatchResult, ItemResult, TargetResult, WriteResult
from .status import CheckStatus, ConfigStatus, DryRunEntry, DryRunReport, PushSheetStatus, TargetStatus

__all__ = [
    # Configuration models
    "PushSourceConfig",
    "PushTarget",
    "RelayConfig",
    "RetrySettings",
    "Settings",
    "SourceTargetConfig",
    "StoreSettings",
    # Results
    "BatchResult",
    "ItemResult",
    "TargetResult",
    "WriteResult",
    "ErrorRecord",
    # Status
    "CheckStatus",
    "ConfigStatus",
    "DryRunEntry",
    "DryRunReport",
    "PushSheetStatus",
    "TargetStatus",
]
