from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from sheet_relay.models.config_models import (
    PushSourceConfig,
    PushTarget,
    RelayConfig,
    RetrySettings,
    Settings,
    SourceTargetConfig,
    StoreSettings,
)

"""Config loader.

Responsibilities:
- Load the YAML config (``config/relay.yml`` by default)
- Validate its shape against config_schema.json
- Apply defaults for retry/settings/stores
- Apply environment overrides for the store roots

Empty or null label/sheet/range values pass the schema on purpose: they are
reported by the pre-flight validation as MISSING_PARAMETERS so that a bad item
is named by index rather than rejected as an unreadable file.
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/relay.yml")

ENV_MAIL_ROOT = "SHEET_RELAY_MAIL_ROOT"
ENV_WORKBOOK_ROOT = "SHEET_RELAY_WORKBOOK_ROOT"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data violates it (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_email_configs(raw: list[dict[str, Any]]) -> tuple[SourceTargetConfig, ...]:
    return tuple(
        SourceTargetConfig(
            source_identifier=item.get("label"),
            destination_sheet=item.get("sheet_name"),
            range_to_clear=item.get("range_to_clear"),
        )
        for item in raw
    )


def _build_push_configs(raw: dict[str, dict[str, Any]]) -> tuple[PushSourceConfig, ...]:
    # YAML mappings keep insertion order, so push order follows the file
    configs = []
    for sheet_name, item in raw.items():
        targets = tuple(
            PushTarget(spreadsheet_id=t.get("spreadsheet_id"), sheet_name=t.get("sheet_name"))
            for t in item.get("targets") or []
        )
        configs.append(PushSourceConfig(source_sheet=sheet_name, range=item.get("range"), targets=targets))
    return tuple(configs)


def config_from_dict(data: dict[str, Any]) -> RelayConfig:
    """Build a RelayConfig from already parsed (and validated) data."""
    _validate_config_schema(data)

    retry = RetrySettings(**(data.get("retry") or {}))
    settings = Settings(**(data.get("settings") or {}))
    stores_raw = dict(data.get("stores") or {})
    if os.getenv(ENV_MAIL_ROOT):
        stores_raw["mail_root"] = os.environ[ENV_MAIL_ROOT]
    if os.getenv(ENV_WORKBOOK_ROOT):
        stores_raw["workbook_root"] = os.environ[ENV_WORKBOOK_ROOT]

    return RelayConfig(
        main_spreadsheet_id=data["main_spreadsheet_id"],
        email_configs=_build_email_configs(data.get("email_configs") or []),
        push_configs=_build_push_configs(data.get("push_configs") or {}),
        retry=retry,
        settings=settings,
        stores=StoreSettings(**stores_raw),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> RelayConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return config_from_dict(data)
