from __future__ import annotations

import logging
from typing import Any

from ..errors import RelayError
from ..models.config_models import RelayConfig
from ..models.processing_result import utc_timestamp
from ..models.status import (
    CheckStatus,
    ConfigStatus,
    DryRunEntry,
    DryRunReport,
    PushSheetStatus,
    TargetStatus,
)
from .collaborators import Collaborators
from .sources import MailLabelSource, SheetRangeSource
from .validation import RANGE_PATTERN, validate_config
from .workbooks import spreadsheet_metadata

"""Read-only reporting: status, dry-run and connectivity checks.

Nothing in this module clears or writes a sheet, stamps a note or touches the
mail store beyond listing and reading.
"""

__all__ = [
    "get_processing_status",
    "get_push_data_status",
    "dry_run",
    "check_connectivity",
]

logger = logging.getLogger(__name__)


def _describe_error(error: Exception) -> str:
    return error.message if isinstance(error, RelayError) else str(error)


def get_processing_status(config: RelayConfig, collaborators: Collaborators) -> list[ConfigStatus]:
    """Per email config: label existence, message count, latest message date."""
    source = MailLabelSource(collaborators.mail)
    statuses: list[ConfigStatus] = []
    for index, item in enumerate(config.email_configs):
        label = item.source_identifier or ""
        try:
            exists = source.label_exists(label)
            statuses.append(
                ConfigStatus(
                    index=index,
                    destination_sheet=item.destination_sheet or "",
                    label=label,
                    label_exists=exists,
                    email_count=source.email_count(label) if exists else 0,
                    latest_email_date=source.latest_email_date(label) if exists else None,
                    range_to_clear=item.range_to_clear,
                )
            )
        except Exception as e:
            statuses.append(
                ConfigStatus(
                    index=index,
                    destination_sheet=item.destination_sheet or "",
                    label=label,
                    range_to_clear=item.range_to_clear,
                    error=_describe_error(e),
                )
            )
    logger.info("Processing status retrieved (configs=%d)", len(statuses))
    return statuses


def _target_status(collaborators: Collaborators, index: int, spreadsheet_id: str, sheet_name: str) -> TargetStatus:
    try:
        meta = spreadsheet_metadata(collaborators.workbooks, spreadsheet_id)
        return TargetStatus(
            index=index,
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
            accessible=True,
            spreadsheet_name=meta.name,
        )
    except Exception as e:
        return TargetStatus(
            index=index,
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
            accessible=False,
            error=_describe_error(e),
        )


def get_push_data_status(config: RelayConfig, collaborators: Collaborators) -> list[PushSheetStatus]:
    """Per push source sheet: the shape of the data a push would send and each target's reachability."""
    statuses: list[PushSheetStatus] = []
    for item in config.push_configs:
        try:
            rows = SheetRangeSource(collaborators.workbooks, config.main_spreadsheet_id).fetch(
                item.source_sheet, "push_status", range_a1=item.range
            )
            targets = tuple(
                _target_status(collaborators, index, t.spreadsheet_id, t.sheet_name)
                for index, t in enumerate(item.targets)
            )
            statuses.append(
                PushSheetStatus(
                    sheet_name=item.source_sheet,
                    range=item.range,
                    current_row_count=len(rows),
                    current_column_count=len(rows[0]) if rows else 0,
                    targets=targets,
                )
            )
        except Exception as e:
            statuses.append(PushSheetStatus(sheet_name=item.source_sheet, range=item.range, error=_describe_error(e)))
    logger.info("Push data status retrieved (sheets=%d)", len(statuses))
    return statuses


def dry_run(config: RelayConfig, collaborators: Collaborators) -> DryRunReport:
    """Run every pre-flight style check without mutating anything.

    Checks per email config:
        config_structure  PASS | FAIL (remaining checks are skipped on FAIL)
        label_exists      PASS | FAIL
        has_emails        PASS | WARN (zero messages is advisory)
        range_format      PASS | WARN
        destination_sheet PASS | FAIL
    """
    logger.info("Starting dry run validation")
    report = DryRunReport(timestamp=utc_timestamp())
    source = MailLabelSource(collaborators.mail)

    main_sheets: set[str] | None = None
    try:
        meta = spreadsheet_metadata(collaborators.workbooks, config.main_spreadsheet_id)
        main_sheets = set(meta.sheet_names)
    except Exception as e:
        report.valid = False
        report.errors.append(f"Main spreadsheet not accessible: {_describe_error(e)}")

    for index, item in enumerate(config.email_configs):
        entry = DryRunEntry(
            index=index,
            destination_sheet=item.destination_sheet or "",
            label=item.source_identifier or "",
        )
        report.configurations.append(entry)

        try:
            validate_config(item, f"Config {index}")
        except RelayError as e:
            entry.valid = False
            entry.error = e.message
            entry.checks["config_structure"] = CheckStatus.FAIL
            report.valid = False
            report.errors.append(f"Config {index}: {e.message}")
            continue
        entry.checks["config_structure"] = CheckStatus.PASS

        if source.label_exists(item.source_identifier):
            entry.checks["label_exists"] = CheckStatus.PASS
            count = source.email_count(item.source_identifier)
            if count > 0:
                entry.checks["has_emails"] = CheckStatus.PASS
            else:
                entry.checks["has_emails"] = CheckStatus.WARN
                report.warnings.append(f'Config {index}: No emails found for label "{item.source_identifier}"')
        else:
            entry.valid = False
            entry.checks["label_exists"] = CheckStatus.FAIL
            report.valid = False
            report.errors.append(f'Config {index}: Label "{item.source_identifier}" does not exist')

        if RANGE_PATTERN.match(item.range_to_clear):
            entry.checks["range_format"] = CheckStatus.PASS
        else:
            entry.checks["range_format"] = CheckStatus.WARN
            report.warnings.append(f"Config {index}: Unusual range format: {item.range_to_clear}")

        if main_sheets is not None:
            if item.destination_sheet in main_sheets:
                entry.checks["destination_sheet"] = CheckStatus.PASS
            else:
                entry.valid = False
                entry.checks["destination_sheet"] = CheckStatus.FAIL
                report.valid = False
                report.errors.append(f'Config {index}: Sheet "{item.destination_sheet}" does not exist')

    logger.info(
        "Dry run completed: valid=%s errors=%d warnings=%d",
        report.valid,
        len(report.errors),
        len(report.warnings),
    )
    return report


def check_connectivity(config: RelayConfig, collaborators: Collaborators) -> dict[str, Any]:
    """Reach every collaborator once and report what answered.

    The result is a plain mapping meant for JSON output:
    ``mail``, ``main_spreadsheet``, ``configured_labels`` and ``push_targets``.
    """
    results: dict[str, Any] = {"timestamp": utc_timestamp()}
    source = MailLabelSource(collaborators.mail)

    try:
        labels = source.list_labels()
        results["mail"] = {"status": "OK", "label_count": len(labels)}
    except Exception as e:
        results["mail"] = {"status": "ERROR", "error": _describe_error(e)}

    try:
        meta = spreadsheet_metadata(collaborators.workbooks, config.main_spreadsheet_id)
        results["main_spreadsheet"] = {"status": "OK", "name": meta.name, "sheet_count": meta.sheet_count}
    except Exception as e:
        results["main_spreadsheet"] = {"status": "ERROR", "error": _describe_error(e)}

    configured: dict[str, Any] = {}
    for item in config.email_configs:
        label = item.source_identifier or ""
        exists = source.label_exists(label)
        configured[item.destination_sheet or f"<unnamed:{label}>"] = {
            "status": "OK" if exists else "MISSING",
            "label": label,
            "exists": exists,
            "email_count": source.email_count(label) if exists else 0,
        }
    results["configured_labels"] = configured

    push_targets: dict[str, Any] = {}
    for item in config.push_configs:
        push_targets[item.source_sheet] = [
            {
                "spreadsheet_id": t.spreadsheet_id,
                "sheet_name": t.sheet_name,
                "status": "OK" if t.accessible else "ERROR",
                **({"name": t.spreadsheet_name} if t.accessible else {"error": t.error}),
            }
            for t in (
                _target_status(collaborators, index, target.spreadsheet_id, target.sheet_name)
                for index, target in enumerate(item.targets)
            )
        ]
    results["push_targets"] = push_targets

    logger.info("Connectivity check completed")
    return results
