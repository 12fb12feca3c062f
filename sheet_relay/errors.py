from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

"""Error taxonomy for the relay pipeline.

Every failure raised by the pipeline is a RelayError carrying a code from
ErrorCode and a free-form details dict. The orchestrator relies on the kind
to decide propagation:

- MISSING_PARAMETERS: structural config defect (pre-flight, fatal for batch)
- LABEL_NOT_FOUND / EMAIL_NOT_FOUND / ATTACHMENT_NOT_FOUND: source unavailable
- SPREADSHEET_NOT_FOUND / SHEET_NOT_FOUND: destination unavailable
- FILE_PROCESSING_ERROR: extraction/conversion failure (retryable)
- GENERAL_ERROR: catch-all clear/write failure
"""

__all__ = [
    "ErrorCode",
    "RelayError",
    "MissingParameters",
    "LabelNotFound",
    "EmailNotFound",
    "AttachmentNotFound",
    "SpreadsheetNotFound",
    "SheetNotFound",
    "FileProcessingError",
    "GeneralError",
    "error_code_of",
    "handle_error",
]

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    MISSING_PARAMETERS = "MISSING_PARAMETERS"
    LABEL_NOT_FOUND = "LABEL_NOT_FOUND"
    EMAIL_NOT_FOUND = "EMAIL_NOT_FOUND"
    ATTACHMENT_NOT_FOUND = "ATTACHMENT_NOT_FOUND"
    SPREADSHEET_NOT_FOUND = "SPREADSHEET_NOT_FOUND"
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"
    FILE_PROCESSING_ERROR = "FILE_PROCESSING_ERROR"
    GENERAL_ERROR = "GENERAL_ERROR"


class RelayError(Exception):
    """Base exception for pipeline failures."""

    code: ErrorCode = ErrorCode.GENERAL_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})
        self.timestamp = datetime.now(UTC).isoformat().replace("+00:00", "Z")


class MissingParameters(RelayError):
    code = ErrorCode.MISSING_PARAMETERS


class LabelNotFound(RelayError):
    code = ErrorCode.LABEL_NOT_FOUND


class EmailNotFound(RelayError):
    code = ErrorCode.EMAIL_NOT_FOUND


class AttachmentNotFound(RelayError):
    code = ErrorCode.ATTACHMENT_NOT_FOUND


class SpreadsheetNotFound(RelayError):
    code = ErrorCode.SPREADSHEET_NOT_FOUND


class SheetNotFound(RelayError):
    code = ErrorCode.SHEET_NOT_FOUND


class FileProcessingError(RelayError):
    code = ErrorCode.FILE_PROCESSING_ERROR


class GeneralError(RelayError):
    code = ErrorCode.GENERAL_ERROR


def error_code_of(error: BaseException) -> str:
    """Return the taxonomy code for any exception (GENERAL_ERROR for foreign ones)."""
    if isinstance(error, RelayError):
        return error.code.value
    return ErrorCode.GENERAL_ERROR.value


def handle_error(error: BaseException, context: str, **additional_info: Any) -> str:
    """Log an error with its context and return the rendered message.

    The returned string has the form ``[<utc iso>] <context>: <message>`` and is
    what per-item batch results carry in their ``error`` field.
    """
    ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
    message = error.message if isinstance(error, RelayError) else str(error)
    rendered = f"[{ts}] {context}: {message}"
    logger.error(rendered)
    details = dict(getattr(error, "details", {}) or {})
    details.update(additional_info)
    if details:
        logger.debug("additional info: %s", details)
    return rendered
