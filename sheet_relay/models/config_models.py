from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the sheet relay.

These are the declarative units of work and the run-wide settings. All of them
are frozen: a config is defined once when the YAML file is loaded and is never
mutated by the pipeline.
"""


@dataclass(frozen=True)
class SourceTargetConfig:
    """One email-ingestion unit: mail label -> sheet of the main workbook.

    range_to_clear is an A1 range such as ``A2:O``. By convention it starts
    at row 2 so the header row is never cleared.
    """
    source_identifier: str  # Mail label name (``/`` separated for nested labels)
    destination_sheet: str  # Sheet name in the main workbook
    range_to_clear: str  # A1 range cleared before the write


@dataclass(frozen=True)
class PushTarget:
    """A destination sheet of a push: workbook id + sheet name."""
    spreadsheet_id: str
    sheet_name: str


@dataclass(frozen=True)
class PushSourceConfig:
    """One push unit: a source sheet of the main workbook fanned out to targets."""
    source_sheet: str  # Sheet name in the main workbook
    range: str  # A1 range read from the source sheet
    targets: tuple[PushTarget, ...] = ()


@dataclass(frozen=True)
class RetrySettings:
    """Retry knobs for the extraction step (seconds, constant delay)."""
    max_retries: int = 5
    retry_delay: float = 1.0
    file_cleanup_delay: float = 2.0


@dataclass(frozen=True)
class Settings:
    timezone: str = "America/Chicago"
    date_format: str = "%m/%d/%Y"
    log_level: str = "INFO"
    item_pause: float = 0.5  # Pause between batch items (rate-limit backpressure)


@dataclass(frozen=True)
class StoreSettings:
    """Where the file-backed collaborators live."""
    mail_root: str = "./mail"
    workbook_root: str = "./workbooks"


@dataclass(frozen=True)
class RelayConfig:
    """Root configuration object passed explicitly into every entry point."""
    main_spreadsheet_id: str
    email_configs: tuple[SourceTargetConfig, ...] = ()
    push_configs: tuple[PushSourceConfig, ...] = ()
    retry: RetrySettings = field(default_factory=RetrySettings)
    settings: Settings = field(default_factory=Settings)
    stores: StoreSettings = field(default_factory=StoreSettings)

    def find_email_config(self, label: str) -> SourceTargetConfig | None:
        for cfg in self.email_configs:
            if cfg.source_identifier == label:
                return cfg
        return None

    def find_push_config(self, source_sheet: str) -> PushSourceConfig | None:
        for cfg in self.push_configs:
            if cfg.source_sheet == source_sheet:
                return cfg
        return None
