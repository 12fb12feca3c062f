from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from sheet_relay.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from sheet_relay.errors import MissingParameters, RelayError, handle_error
from sheet_relay.logging.init import set_level, setup_logging
from sheet_relay.models.processing_result import BatchResult
from sheet_relay.services.collaborators import Collaborators
from sheet_relay.services.orchestrator import (
    process_all_configs,
    process_specific_label,
    push_all_data,
    push_specific_sheet,
)
from sheet_relay.services.sources import MailLabelSource
from sheet_relay.services.status import check_connectivity, dry_run, get_processing_status, get_push_data_status

"""CLI entrypoint.

Flow:
- Load ``.env`` (store roots can be overridden there)
- Load and validate the YAML config
- Run one sub-command against file-backed collaborators

Batch commands log a SUMMARY line; report commands print JSON on stdout.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; a broken file only produces a warning."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except Exception as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sheet-relay", description="Mail attachment and sheet-to-sheet relay")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to the YAML config")
    p.add_argument("--env", type=Path, default=Path(".env"), help="Path to the .env file")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("process", help="Ingest the latest attachment of every configured label")
    label = sub.add_parser("process-label", help="Ingest a single configured label")
    label.add_argument("label")
    sub.add_parser("push", help="Push every configured source sheet to its targets")
    sheet = sub.add_parser("push-sheet", help="Push a single configured source sheet")
    sheet.add_argument("sheet")
    sub.add_parser("status", help="Show label status for the email configs")
    sub.add_parser("push-status", help="Show source sheet and target status for the push configs")
    sub.add_parser("dry-run", help="Validate every email config without writing")
    sub.add_parser("labels", help="List the labels of the mail store")
    sub.add_parser("test", help="Check that every collaborator is reachable")
    return p.parse_args(argv)


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return str(value)


def _print_json(payload: Any) -> None:
    if is_dataclass(payload) and not isinstance(payload, type):
        payload = asdict(payload)
    elif isinstance(payload, list):
        payload = [asdict(p) if is_dataclass(p) and not isinstance(p, type) else p for p in payload]
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=_json_default))


def _batch_exit_code(result: BatchResult) -> int:
    return EXIT_PARTIAL_FAILURE if result.failed > 0 else EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] must not fall back to sys.argv (pytest arguments would leak in)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(args.env, override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_level("DEBUG")
        logger.debug("debug mode enabled")
    else:
        set_level(cfg.settings.log_level)

    collaborators = Collaborators.from_config(cfg)
    command = args.command

    try:
        if command == "process":
            return _batch_exit_code(process_all_configs(cfg, collaborators))
        if command == "push":
            return _batch_exit_code(push_all_data(cfg, collaborators))
        if command == "status":
            _print_json(get_processing_status(cfg, collaborators))
            return EXIT_SUCCESS_ALL
        if command == "push-status":
            _print_json(get_push_data_status(cfg, collaborators))
            return EXIT_SUCCESS_ALL
        if command == "dry-run":
            report = dry_run(cfg, collaborators)
            _print_json(report)
            return EXIT_SUCCESS_ALL if report.valid else EXIT_PARTIAL_FAILURE
        if command == "labels":
            _print_json(MailLabelSource(collaborators.mail).list_labels())
            return EXIT_SUCCESS_ALL
        if command == "test":
            _print_json(check_connectivity(cfg, collaborators))
            return EXIT_SUCCESS_ALL
    except RelayError as e:
        # pre-flight failure: nothing was written
        logger.error(f"{command}: {e.message}")
        return EXIT_FATAL

    if command == "process-label":
        try:
            result = process_specific_label(cfg, collaborators, args.label)
        except MissingParameters as e:
            logger.error(f"{command}: {e.message}")
            return EXIT_FATAL
        except Exception as e:
            handle_error(e, f"Processing label {args.label}")
            return EXIT_PARTIAL_FAILURE
        logger.info(f"label={args.label} rows={result.rows_written}")
        return EXIT_SUCCESS_ALL

    if command == "push-sheet":
        try:
            result = push_specific_sheet(cfg, collaborators, args.sheet)
        except MissingParameters as e:
            logger.error(f"{command}: {e.message}")
            return EXIT_FATAL
        except Exception as e:
            handle_error(e, f"Pushing sheet {args.sheet}")
            return EXIT_PARTIAL_FAILURE
        if not result.success:
            logger.error(f"push-sheet {args.sheet}: {result.error}")
            return EXIT_PARTIAL_FAILURE
        return EXIT_SUCCESS_ALL

    logger.error(f"unknown command: {command}")  # pragma: no cover
    return EXIT_FATAL  # pragma: no cover


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
