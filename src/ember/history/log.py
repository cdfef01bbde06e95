"""JSON conversation log.

The log is a single UTF-8 JSON array of exchanges, oldest first, pretty-printed
with 2-space indentation. Every append rewrites the whole file; there is no
locking, so two processes appending at once can lose an entry.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles

from ember.llm.types import Message

logger = logging.getLogger(__name__)


class ConversationLogError(Exception):
    """The log file exists but is not a valid list of entries."""


def format_timestamp(value: datetime | None = None) -> str:
    """Local, human-readable timestamp stored with each entry."""
    return (value or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class LogEntry:
    """One completed exchange."""

    messages: list[Message]
    timestamp: str = field(default_factory=format_timestamp)
    token_count: int = 0
    cost: str = ""
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "time": self.timestamp,
            "tokens": self.token_count,
            "cost": self.cost,
            "duration": self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LogEntry:
        return cls(
            messages=[Message.from_dict(m) for m in data["messages"]],
            timestamp=data.get("time", ""),
            token_count=data.get("tokens", 0),
            cost=data.get("cost", ""),
            duration_seconds=data.get("duration", 0.0),
        )


class ConversationLog:
    """Append-only record of exchanges backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    async def _read_raw(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []

        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConversationLogError(
                f"Conversation log {self.path} could not be read: {e}"
            ) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConversationLogError(
                f"Conversation log {self.path} is not valid JSON: {e}"
            ) from e
        if not isinstance(data, list):
            raise ConversationLogError(
                f"Conversation log {self.path} must contain a JSON array"
            )
        return data

    async def entries(self) -> list[LogEntry]:
        """Load every entry, oldest first.

        Raises:
            ConversationLogError: If the file is corrupt.
        """
        raw = await self._read_raw()
        try:
            return [LogEntry.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise ConversationLogError(
                f"Conversation log {self.path} has a malformed entry: {e}"
            ) from e

    async def last_conversation(self) -> list[Message]:
        """Messages of the most recent entry, or an empty list.

        Only the last entry is replayed; older entries are never consulted.
        """
        raw = await self._read_raw()
        if not raw:
            return []
        try:
            return LogEntry.from_dict(raw[-1]).messages
        except (KeyError, TypeError, ValueError) as e:
            raise ConversationLogError(
                f"Conversation log {self.path} has a malformed last entry: {e}"
            ) from e

    async def append(self, entry: LogEntry) -> None:
        """Append an entry by rewriting the whole file.

        The new content goes to a sibling temp file that then replaces the log,
        so a failed write leaves the previous entries intact.

        Raises:
            ConversationLogError: If the existing file is corrupt or the new
                content cannot be written. The file is left untouched.
        """
        raw = await self._read_raw()
        raw.append(entry.to_dict())
        content = json.dumps(raw, indent=2, ensure_ascii=False) + "\n"

        temp_file = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(temp_file, "w", encoding="utf-8") as f:
                await f.write(content)
            temp_file.replace(self.path)
        except OSError as e:
            temp_file.unlink(missing_ok=True)
            raise ConversationLogError(
                f"Conversation log {self.path} could not be written: {e}"
            ) from e

        logger.debug(
            "log_entry_appended",
            extra={"path": str(self.path), "entries": len(raw)},
        )
