from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..backends.protocols import Attachment, Converter, TabularStore
from ..errors import FileProcessingError, MissingParameters, RelayError, SpreadsheetNotFound
from ..models.config_models import RetrySettings
from .retry import with_retry

"""Tabular extraction of an Excel attachment.

Flow for one attachment:
1. write the attachment bytes into a temporary file
2. convert it into a store workbook (external, may not be readable at once)
3. read every value of the converted workbook's first sheet, with retry
4. drop the header row

The temporary file and the converted workbook belong to the extract() call
that created them and are always released before it returns, on success and
on failure. Release is best effort: problems are logged and never raised.
"""

__all__ = [
    "TabularExtractor",
]

logger = logging.getLogger(__name__)


class TabularExtractor:
    def __init__(
        self,
        converter: Converter,
        store: TabularStore,
        retry: RetrySettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        temp_dir: Path | None = None,
    ) -> None:
        self.converter = converter
        self.store = store
        self.retry = retry or RetrySettings()
        self.sleep = sleep
        self.temp_dir = temp_dir

    def extract(self, attachment: Attachment | None, context: str = "Excel data processing") -> list[list[Any]]:
        """Convert an Excel attachment into rows without its header row.

        Returns:
            Data rows; an empty list when the converted sheet has zero or one
            rows in total.

        Raises:
            MissingParameters: No attachment given.
            FileProcessingError: Temp file, conversion or (after retries)
                extraction failed.
        """
        if attachment is None:
            raise MissingParameters(f"{context}: No file attachment provided")

        temp_path: Path | None = None
        converted_id: str | None = None
        try:
            logger.info("Extracting %s (%d bytes) [%s]", attachment.name, attachment.size, context)
            temp_path = self._create_temp_file(attachment)
            converted_id = self._convert(temp_path, attachment.name)
            data = with_retry(
                lambda: self._read_first_sheet(converted_id),
                self.retry.max_retries,
                self.retry.retry_delay,
                f"{context}: extract data from converted sheet",
                sleep=self.sleep,
            )
            logger.info(
                "Excel data extracted: rows=%d columns=%d file=%s",
                len(data),
                len(data[0]) if data else 0,
                attachment.name,
            )
            return data
        finally:
            self._cleanup(temp_path, converted_id)

    def _create_temp_file(self, attachment: Attachment) -> Path:
        suffix = Path(attachment.name).suffix or ".xlsx"
        path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                prefix="sheet-relay-", suffix=suffix, dir=self.temp_dir, delete=False
            ) as f:
                path = Path(f.name)
                f.write(attachment.data)
            logger.debug("temporary file created path=%s", path)
            return path
        except OSError as e:
            if path is not None:
                path.unlink(missing_ok=True)
            raise FileProcessingError(
                "Failed to create temporary file", {"file_name": attachment.name, "original_error": str(e)}
            ) from e

    def _convert(self, path: Path, name: str) -> str:
        try:
            converted_id = self.converter.convert(path, name)
        except Exception as e:
            raise FileProcessingError(
                f"Failed to convert {name} to a tabular workbook",
                {"file_name": name, "original_error": str(e)},
            ) from e
        logger.debug("file converted name=%s converted_id=%s", name, converted_id)
        return converted_id

    def _read_first_sheet(self, workbook_id: str) -> list[list[Any]]:
        try:
            workbook = self.store.open_by_id(workbook_id)
        except Exception as e:
            raise SpreadsheetNotFound(
                "Converted spreadsheet not found or not accessible",
                {"spreadsheet_id": workbook_id, "original_error": str(e)},
            ) from e
        sheets = workbook.sheets()
        if not sheets:
            raise RelayError("No sheets found in the converted file", {"spreadsheet_id": workbook_id})
        values = sheets[0].data_range().get_values()
        without_header = values[1:] if len(values) > 1 else []
        logger.debug("data read total_rows=%d data_rows=%d", len(values), len(without_header))
        return without_header

    def _cleanup(self, temp_path: Path | None, converted_id: str | None) -> None:
        if temp_path is None and converted_id is None:
            return
        # Give the backend time to settle before deleting what it just produced
        if self.retry.file_cleanup_delay > 0:
            self.sleep(self.retry.file_cleanup_delay)

        if temp_path is not None:
            try:
                temp_path.unlink()
                logger.debug("temporary file removed path=%s", temp_path)
            except Exception as e:
                logger.warning("Failed to cleanup temporary file %s: %s", temp_path, e)
        if converted_id is not None:
            try:
                self.converter.remove(converted_id)
                logger.debug("converted workbook removed id=%s", converted_id)
            except Exception as e:
                logger.warning("Failed to cleanup converted workbook %s: %s", converted_id, e)
        logger.info("Temporary file cleanup completed")
