from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from ..backends.protocols import Attachment, MailStore, Message, TabularStore
from ..errors import AttachmentNotFound, EmailNotFound, LabelNotFound, MissingParameters
from .validation import (
    EXCEL_MIME_TYPE,
    validate_attachment,
    validate_label,
    validate_range,
    validate_sheet_name,
    validate_spreadsheet_id,
)
from .workbooks import get_sheet, open_workbook

"""Source readers.

Two implementations of one contract: given a named source, return either a
raw artifact (MailLabelSource -> FetchedArtifact holding an Excel attachment)
or rows that are already tabular (SheetRangeSource -> list of rows).
"""

__all__ = [
    "FetchedArtifact",
    "Source",
    "MailLabelSource",
    "SheetRangeSource",
    "drop_empty_rows",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedArtifact:
    """A binary attachment plus the message it came from."""
    message: Message
    attachment: Attachment


class Source(Protocol):
    def fetch(self, identifier: str, context: str) -> Any: ...


def _is_empty_cell(value: Any) -> bool:
    return value is None or value == ""


def drop_empty_rows(rows: list[list[Any]]) -> list[list[Any]]:
    """Remove rows where every cell is None or the empty string."""
    return [list(row) for row in rows if not all(_is_empty_cell(v) for v in row)]


class MailLabelSource:
    """Resolves a mail label to the Excel attachment of its latest message."""

    def __init__(self, mail: MailStore) -> None:
        self.mail = mail

    def fetch(self, identifier: str, context: str = "Mail source") -> FetchedArtifact:
        message = self.latest_message(identifier)
        attachment = self.excel_attachment(message, context)
        return FetchedArtifact(message=message, attachment=attachment)

    def latest_message(self, label_name: str) -> Message:
        """Return the last message of the most recent thread under the label.

        Only the most recent thread is inspected: a newer message sitting in
        another thread is not considered.
        """
        validate_label(label_name, "latest_message")
        label = self.mail.find_label(label_name)
        if label is None:
            raise LabelNotFound(f'Label "{label_name}" does not exist', {"label_name": label_name})

        threads = label.recent_threads(1)
        if not threads:
            raise EmailNotFound(f'No emails found under label "{label_name}"', {"label_name": label_name})

        messages = threads[0].messages()
        if not messages:
            raise EmailNotFound(f'Latest thread under label "{label_name}" is empty', {"label_name": label_name})
        latest = messages[-1]
        logger.info(
            "Latest email under %s: subject=%r date=%s (thread messages=%d)",
            label_name,
            latest.subject,
            latest.date,
            len(messages),
        )
        return latest

    def excel_attachment(self, message: Message | None, context: str = "Email attachment extraction") -> Attachment:
        if message is None:
            raise MissingParameters(f"{context}: No email message provided")

        attachments = message.attachments()
        logger.debug(
            "%s: attachments=%s",
            context,
            [(a.name, a.content_type) for a in attachments],
        )
        if not attachments:
            raise AttachmentNotFound(
                f"{context}: No attachments found in the email",
                {"message_subject": message.subject, "message_date": str(message.date)},
            )

        excel = next((a for a in attachments if a.content_type == EXCEL_MIME_TYPE), None)
        if excel is None:
            raise AttachmentNotFound(
                f"{context}: No Excel attachment found in the email",
                {
                    "attachment_types": [a.content_type for a in attachments],
                    "expected_type": EXCEL_MIME_TYPE,
                    "message_subject": message.subject,
                },
            )
        validate_attachment(excel, context)
        return excel

    def label_exists(self, label_name: str) -> bool:
        try:
            validate_label(label_name, "label_exists")
            return self.mail.find_label(label_name) is not None
        except Exception as e:
            logger.error("Error checking if label exists (%s): %s", label_name, e)
            return False

    def email_count(self, label_name: str) -> int:
        """Total messages across all threads of the label (0 when missing)."""
        try:
            validate_label(label_name, "email_count")
            label = self.mail.find_label(label_name)
            if label is None:
                return 0
            return sum(t.message_count() for t in label.recent_threads())
        except Exception as e:
            logger.error("Error getting email count (%s): %s", label_name, e)
            return 0

    def latest_email_date(self, label_name: str) -> datetime | None:
        try:
            return self.latest_message(label_name).date
        except Exception as e:
            logger.warning("Could not get latest email date (%s): %s", label_name, e)
            return None

    def list_labels(self) -> list[str]:
        labels = self.mail.labels()
        if not labels:
            logger.warning("No labels found in the mail store")
        else:
            logger.info("Mail labels retrieved: %d", len(labels))
        return labels


class SheetRangeSource:
    """Reads a declared range from a sheet of one workbook, dropping empty rows."""

    def __init__(self, store: TabularStore, spreadsheet_id: str) -> None:
        self.store = store
        self.spreadsheet_id = spreadsheet_id

    def fetch(self, identifier: str, context: str = "Sheet read", range_a1: str | None = None) -> list[list[Any]]:
        validate_spreadsheet_id(self.spreadsheet_id, f"{context}.spreadsheet_id")
        validate_sheet_name(identifier, f"{context}.sheet_name")
        validate_range(range_a1, f"{context}.range")

        workbook = open_workbook(self.store, self.spreadsheet_id, context)
        sheet = get_sheet(workbook, identifier, context)
        data = sheet.range(range_a1).get_values()
        non_empty = drop_empty_rows(data)
        logger.info(
            "Source data read: sheet=%s range=%s total_rows=%d non_empty_rows=%d",
            identifier,
            range_a1,
            len(data),
            len(non_empty),
        )
        return non_empty
