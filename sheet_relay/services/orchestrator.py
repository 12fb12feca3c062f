from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from ..errors import MissingParameters, RelayError, SpreadsheetNotFound, error_code_of, handle_error
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary
from ..models.config_models import PushSourceConfig, RelayConfig, SourceTargetConfig
from ..models.error_record import ErrorRecord
from ..models.processing_result import BatchResult, ItemResult, TargetResult
from .collaborators import Collaborators
from .extractor import TabularExtractor
from .progress import ProgressTracker
from .sources import MailLabelSource, SheetRangeSource
from .summary import render_summary_line
from .validation import validate_batch_results, validate_config, validate_push_config
from .workbooks import spreadsheet_metadata, validate_required_sheets
from .writers import BodyClearWriter, RangeClearWriter

"""Batch orchestration for both relay workflows.

run_all() drives a pipeline through its whole config list:

1. Pre-flight: every item is validated (structure + destination reachability)
   before anything is fetched or written. A pre-flight failure raises and the
   batch never starts.
2. Items run sequentially with a fixed pause between them (none after the
   last one) to stay under the collaborators' rate limits.
3. Each item runs Source -> Extractor (email only) -> Writer. Any exception is
   caught at the item level, recorded as a failed ItemResult and the loop goes
   on with the next item.
4. A SUMMARY line is logged and the failures are flushed to the error log.

Only the extraction step is retried (inside TabularExtractor). Fetch and
write are not retried.

Per-item states: pending -> validating -> fetching -> extracting (email only)
-> writing -> succeeded | failed.
"""

__all__ = [
    "BatchPipeline",
    "EmailIngestion",
    "DataPush",
    "run_all",
    "run_batch",
    "process_all_configs",
    "process_single_config",
    "process_specific_label",
    "push_all_data",
    "push_single_sheet",
    "push_specific_sheet",
]

logger = logging.getLogger(__name__)

PRE_FLIGHT = "<PRE_FLIGHT>"


class BatchPipeline(Protocol):
    operation: str

    def items(self) -> Sequence[Any]: ...

    def describe(self, item: Any) -> tuple[str, str | None]:
        """(source identifier, destination) used for logs and failed results."""
        ...

    def preflight(self, items: Sequence[Any]) -> None: ...

    def run_item(self, item: Any, index: int) -> ItemResult: ...


def run_batch(
    operation: str,
    items: Sequence[Any],
    run_item: Callable[[Any, int], ItemResult],
    describe: Callable[[Any], tuple[str, str | None]],
    *,
    pause_seconds: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    error_log: ErrorLogBuffer | None = None,
) -> BatchResult:
    """Run items one after another, isolating failures per item."""
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    start_time = datetime.now(UTC)
    results: list[ItemResult] = []

    with ProgressTracker(len(items), description=operation) as progress:
        for index, item in enumerate(items):
            source, destination = describe(item)
            progress.start_item(source)
            logger.info("Processing item %d/%d: %s -> %s", index + 1, len(items), source, destination)
            try:
                result = run_item(item, index)
            except Exception as e:
                message = handle_error(e, f"Processing {destination or source}", item_index=index)
                result = ItemResult(
                    success=False,
                    source_identifier=source,
                    destination_sheet=destination,
                    error=message,
                )
                error_log.append(
                    ErrorRecord.create(operation, source, destination or "", error_code_of(e), str(e))
                )
            else:
                if not result.success:
                    error_log.append(
                        ErrorRecord.create(operation, source, destination or "", "GENERAL_ERROR", result.error or "")
                    )
            results.append(result)

            progress.finish_item(success=result.success)

            if index < len(items) - 1 and pause_seconds > 0:
                sleep(pause_seconds)

    validate_batch_results(results, f"{operation} results")
    batch = BatchResult(
        operation=operation,
        items=tuple(results),
        start_time=start_time,
        end_time=datetime.now(UTC),
    )
    _log_batch_summary(batch)
    _flush_error_log(error_log)
    return batch


def run_all(
    pipeline: BatchPipeline,
    *,
    pause_seconds: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    error_log: ErrorLogBuffer | None = None,
) -> BatchResult:
    """Pre-flight every item of the pipeline, then run the batch.

    Raises:
        RelayError: When pre-flight validation fails; nothing has been
            fetched or written at that point.
    """
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    items = list(pipeline.items())
    logger.info("Starting operation: %s (items=%d)", pipeline.operation, len(items))

    try:
        pipeline.preflight(items)
    except RelayError as e:
        logger.error("Operation failed: %s pre-flight: %s", pipeline.operation, e.message)
        error_log.append(ErrorRecord.create(pipeline.operation, PRE_FLIGHT, PRE_FLIGHT, e.code.value, e.message))
        _flush_error_log(error_log)
        raise

    return run_batch(
        pipeline.operation,
        items,
        pipeline.run_item,
        pipeline.describe,
        pause_seconds=pause_seconds,
        sleep=sleep,
        error_log=error_log,
    )


def _log_batch_summary(batch: BatchResult) -> None:
    logger.info(
        "Batch operation completed: %s total=%d successful=%d failed=%d success_rate=%s%%",
        batch.operation,
        batch.total,
        batch.successful,
        batch.failed,
        batch.success_rate,
    )
    for item in batch.failures():
        logger.error("Batch item failed: %s item=%s error=%s", batch.operation, item.source_identifier, item.error)
    summary_line = render_summary_line(batch)
    # log_summary adds the SUMMARY label itself
    log_summary(summary_line[len("SUMMARY "):])


def _flush_error_log(error_log: ErrorLogBuffer) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning("failed to write error log: %s", e)
        return
    if path is not None:
        logger.info("error log written: %s", path)


class EmailIngestion:
    """Mail label -> Excel attachment -> rows -> bounded-range write on the main workbook."""

    operation = "process_all_configs"

    def __init__(self, config: RelayConfig, collaborators: Collaborators) -> None:
        self.config = config
        self.workbooks = collaborators.workbooks
        self.source = MailLabelSource(collaborators.mail)
        self.extractor = TabularExtractor(
            collaborators.converter,
            collaborators.workbooks,
            config.retry,
            sleep=collaborators.sleep,
            temp_dir=collaborators.temp_dir,
        )
        self.writer = RangeClearWriter(collaborators.workbooks, config.settings)

    def items(self) -> Sequence[SourceTargetConfig]:
        return self.config.email_configs

    def describe(self, item: SourceTargetConfig) -> tuple[str, str | None]:
        return (item.source_identifier or "", item.destination_sheet)

    def preflight(self, items: Sequence[SourceTargetConfig]) -> None:
        logger.info("Validating all email configurations")
        if not items:
            raise MissingParameters("No email configurations found")

        main_id = self.config.main_spreadsheet_id
        spreadsheet_metadata(self.workbooks, main_id)

        for index, item in enumerate(items):
            try:
                validate_config(item, f"email_configs[{index}]")
            except RelayError as e:
                raise MissingParameters(
                    f"Configuration validation failed at index {index}: {e.message}",
                    {"config_index": index, "config": item, "original_error": e.message},
                ) from e

        required = [item.destination_sheet for item in items]
        validate_required_sheets(self.workbooks, main_id, required, "Email processor validation")
        logger.info("All email configurations validated successfully (count=%d)", len(items))

    def run_item(self, item: SourceTargetConfig, index: int) -> ItemResult:
        return self.process_single(item, f"config[{index}]_{item.destination_sheet}")

    def process_single(self, item: SourceTargetConfig, context: str = "Single config processing") -> ItemResult:
        """Run one config end to end. Raises on failure."""
        validate_config(item, context)
        artifact = self.source.fetch(item.source_identifier, context)
        data = self.extractor.extract(artifact.attachment, context)
        write = self.writer.write(
            self.config.main_spreadsheet_id,
            item.destination_sheet,
            item.range_to_clear,
            data,
            context,
        )
        return ItemResult(
            success=True,
            source_identifier=item.source_identifier,
            destination_sheet=item.destination_sheet,
            rows_written=write.rows_inserted,
            details={
                "columns_inserted": write.columns_inserted,
                "range_to_clear": write.range_to_clear,
                "email_subject": artifact.message.subject,
                "email_date": artifact.message.date,
                "attachment_name": artifact.attachment.name,
                "attachment_size": artifact.attachment.size,
            },
        )


class DataPush:
    """Main workbook source sheet -> every configured target, whole-body clear."""

    operation = "push_all_data"

    def __init__(self, config: RelayConfig, collaborators: Collaborators) -> None:
        self.config = config
        self.workbooks = collaborators.workbooks
        self.source = SheetRangeSource(collaborators.workbooks, config.main_spreadsheet_id)
        self.writer = BodyClearWriter(collaborators.workbooks, config.settings)

    def items(self) -> Sequence[PushSourceConfig]:
        return self.config.push_configs

    def describe(self, item: PushSourceConfig) -> tuple[str, str | None]:
        targets = ", ".join(t.sheet_name or "?" for t in item.targets)
        return (item.source_sheet or "", targets or None)

    def preflight(self, items: Sequence[PushSourceConfig]) -> None:
        logger.info("Validating push data configurations")
        if not items:
            raise MissingParameters("No source sheets configured")

        main_id = self.config.main_spreadsheet_id
        spreadsheet_metadata(self.workbooks, main_id)

        for item in items:
            try:
                validate_push_config(item, f"push_configs.{item.source_sheet}")
                for index, target in enumerate(item.targets):
                    try:
                        spreadsheet_metadata(self.workbooks, target.spreadsheet_id)
                    except RelayError as e:
                        raise SpreadsheetNotFound(
                            f"Target spreadsheet not accessible: {target.spreadsheet_id}",
                            {"target_index": index, "original_error": e.message},
                        ) from e
            except RelayError as e:
                raise MissingParameters(
                    f"Push configuration validation failed for sheet {item.source_sheet}: {e.message}",
                    {"source_sheet": item.source_sheet, "original_code": e.code.value, "original_error": e.message},
                ) from e

        required = [item.source_sheet for item in items]
        validate_required_sheets(self.workbooks, main_id, required, "Push data validation")
        logger.info("Push data configurations validated successfully: %s", required)

    def run_item(self, item: PushSourceConfig, index: int) -> ItemResult:
        return self.push_single(item, f"push[{index}]_{item.source_sheet}")

    def push_single(self, item: PushSourceConfig, context: str = "Single sheet push") -> ItemResult:
        """Read the source range once and push it to every target.

        A failing target does not stop the remaining targets; the item is
        reported as failed when at least one target failed.
        """
        validate_push_config(item, context)
        data = self.source.fetch(item.source_sheet, f"{context}.read_source", range_a1=item.range)

        target_results: list[TargetResult] = []
        for index, target in enumerate(item.targets):
            target_context = f"{context}.target[{index}]"
            try:
                write = self.writer.write(target.spreadsheet_id, target.sheet_name, data, target_context)
                target_results.append(
                    TargetResult(
                        spreadsheet_id=target.spreadsheet_id,
                        sheet_name=target.sheet_name,
                        success=True,
                        write=write,
                    )
                )
            except Exception as e:
                target_results.append(
                    TargetResult(
                        spreadsheet_id=target.spreadsheet_id,
                        sheet_name=target.sheet_name,
                        success=False,
                        error=handle_error(e, target_context),
                    )
                )

        failed = [t for t in target_results if not t.success]
        _, destination = self.describe(item)
        return ItemResult(
            success=not failed,
            source_identifier=item.source_sheet,
            destination_sheet=destination,
            rows_written=sum(t.write.rows_inserted for t in target_results if t.write is not None),
            error=(
                f"{len(failed)} of {len(target_results)} targets failed: " + "; ".join(t.error or "" for t in failed)
                if failed
                else None
            ),
            details={
                "source_range": item.range,
                "source_row_count": len(data),
                "source_column_count": len(data[0]) if data else 0,
            },
            target_results=tuple(target_results),
        )


def process_all_configs(
    config: RelayConfig, collaborators: Collaborators, *, error_log: ErrorLogBuffer | None = None
) -> BatchResult:
    """Email ingestion over every configured label."""
    return run_all(
        EmailIngestion(config, collaborators),
        pause_seconds=config.settings.item_pause,
        sleep=collaborators.sleep,
        error_log=error_log,
    )


def push_all_data(
    config: RelayConfig, collaborators: Collaborators, *, error_log: ErrorLogBuffer | None = None
) -> BatchResult:
    """Data push over every configured source sheet."""
    return run_all(
        DataPush(config, collaborators),
        pause_seconds=config.settings.item_pause,
        sleep=collaborators.sleep,
        error_log=error_log,
    )


def process_specific_label(config: RelayConfig, collaborators: Collaborators, label: str) -> ItemResult:
    """Run the email pipeline for the config of one label. Raises on failure."""
    item = config.find_email_config(label)
    if item is None:
        raise MissingParameters(
            f"No configuration found for label: {label}",
            {"label": label, "available_labels": [c.source_identifier for c in config.email_configs]},
        )
    result = process_single_config(config, collaborators, item, f"process_specific_label_{label}")
    logger.info("Operation completed successfully: process_specific_label (%s)", label)
    return result


def push_specific_sheet(config: RelayConfig, collaborators: Collaborators, source_sheet: str) -> ItemResult:
    """Push one configured source sheet. Raises when the sheet is not configured."""
    item = config.find_push_config(source_sheet)
    if item is None:
        raise MissingParameters(
            f"No configuration found for source sheet: {source_sheet}",
            {"source_sheet": source_sheet, "available_sheets": [c.source_sheet for c in config.push_configs]},
        )
    result = push_single_sheet(config, collaborators, item, f"push_specific_sheet_{source_sheet}")
    logger.info("Operation completed: push_specific_sheet (%s) success=%s", source_sheet, result.success)
    return result


def process_single_config(
    config: RelayConfig, collaborators: Collaborators, item: SourceTargetConfig, context: str = "Single config processing"
) -> ItemResult:
    """Run one email config outside a batch (no pre-flight, no pause). Raises on failure."""
    return EmailIngestion(config, collaborators).process_single(item, context)


def push_single_sheet(
    config: RelayConfig, collaborators: Collaborators, item: PushSourceConfig, context: str = "Single sheet push"
) -> ItemResult:
    """Push one source sheet outside a batch; target failures are reported in the result."""
    return DataPush(config, collaborators).push_single(item, context)
