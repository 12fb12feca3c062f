from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parsedate_to_datetime
from pathlib import Path

"""Mail store backed by a directory tree of .eml files.

Layout::

    <mail_root>/
      Campuses/NAHS/Schedules/        <- label "Campuses/NAHS/Schedules"
        2025-01-06-report.eml
        2025-01-13-report.eml

A label is a directory path relative to the root; nested labels map to nested
directories. Every ``*.eml`` file directly inside the directory is a message
of that label. Messages are grouped into threads by subject with reply and
forward prefixes stripped; a thread's recency is the date of its newest
message.
"""

__all__ = [
    "EmlMailStore",
    "EmlLabel",
    "EmlThread",
    "EmlMessage",
    "EmlAttachment",
    "normalize_subject",
]

logger = logging.getLogger(__name__)

_REPLY_PREFIX = re.compile(r"^\s*((re|fw|fwd)\s*:\s*)+", re.IGNORECASE)


def normalize_subject(subject: str) -> str:
    return _REPLY_PREFIX.sub("", subject or "").strip().lower()


@dataclass(frozen=True)
class EmlAttachment:
    name: str
    content_type: str
    payload: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def data(self) -> bytes:
        return self.payload


class EmlMessage:
    def __init__(self, path: Path, message: EmailMessage) -> None:
        self.path = path
        self._message = message
        self.subject = str(message.get("Subject", "") or "")
        self.date = self._parse_date(message.get("Date"))

    def _parse_date(self, raw: str | None) -> datetime:
        if raw:
            try:
                parsed = parsedate_to_datetime(str(raw))
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=UTC)
                return parsed
            except (TypeError, ValueError):
                logger.warning("unparsable Date header in %s: %r", self.path.name, raw)
        return datetime.fromtimestamp(self.path.stat().st_mtime, tz=UTC)

    @classmethod
    def from_file(cls, path: Path) -> EmlMessage:
        with path.open("rb") as f:
            message = BytesParser(policy=policy.default).parse(f)
        return cls(path, message)

    def attachments(self) -> list[EmlAttachment]:
        found = []
        for part in self._message.iter_attachments():
            payload = part.get_payload(decode=True) or b""
            found.append(
                EmlAttachment(
                    name=part.get_filename() or "attachment",
                    content_type=part.get_content_type(),
                    payload=payload,
                )
            )
        return found


class EmlThread:
    def __init__(self, messages: list[EmlMessage]) -> None:
        self._messages = sorted(messages, key=lambda m: m.date)

    @property
    def last_date(self) -> datetime:
        return self._messages[-1].date

    def messages(self) -> list[EmlMessage]:
        return list(self._messages)

    def message_count(self) -> int:
        return len(self._messages)


class EmlLabel:
    def __init__(self, name: str, directory: Path) -> None:
        self.name = name
        self.directory = directory

    def _load_messages(self) -> list[EmlMessage]:
        return [EmlMessage.from_file(p) for p in sorted(self.directory.glob("*.eml")) if p.is_file()]

    def recent_threads(self, n: int | None = None) -> list[EmlThread]:
        grouped: dict[str, list[EmlMessage]] = {}
        for message in self._load_messages():
            grouped.setdefault(normalize_subject(message.subject), []).append(message)
        threads = sorted((EmlThread(msgs) for msgs in grouped.values()), key=lambda t: t.last_date, reverse=True)
        return threads if n is None else threads[:n]


class EmlMailStore:
    """Mail store rooted at a directory; labels are sub-directories."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def find_label(self, name: str) -> EmlLabel | None:
        if not name:
            return None
        directory = self.root.joinpath(*name.split("/"))
        try:
            directory.resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        if not directory.is_dir():
            return None
        return EmlLabel(name, directory)

    def labels(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_dir()
        )
