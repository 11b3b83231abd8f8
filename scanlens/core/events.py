"""Activity log entries emitted by the scanning agent, and their classification."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from ..utils import parse_iso, to_iso

logger = logging.getLogger(__name__)

LogLevel = Literal["info", "error", "success"]
EntryKind = Literal["tool-invocation", "tool-update"]
EventTag = Literal["plain-message", "tool-invocation", "tool-update"]

PLAIN_MESSAGE: EventTag = "plain-message"
TOOL_INVOCATION: EventTag = "tool-invocation"
TOOL_UPDATE: EventTag = "tool-update"

LOG_LEVELS = ("info", "error", "success")

# Wire names used by the dashboard backend for the same two kinds.
_KIND_ALIASES: dict[str, EntryKind] = {
    "tool-invocation": "tool-invocation",
    "tool_use": "tool-invocation",
    "tool-update": "tool-update",
    "tool_use_updated": "tool-update",
}


@dataclass(frozen=True)
class ToolPayload:
    """Tool call details attached to an invocation or update entry."""

    invocation_id: str = ""
    tool_name: str = ""
    emitted_at: datetime | None = None
    input: dict = field(default_factory=dict)
    output: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.invocation_id and not self.tool_name

    @classmethod
    def from_dict(cls, data: Any) -> ToolPayload | None:
        """Create a ToolPayload from a dictionary, or None if it is not one."""
        if not isinstance(data, dict):
            return None
        raw_input = data.get("input")
        output = data.get("output")
        return cls(
            invocation_id=_text(data.get("invocation_id", data.get("invocationId", data.get("id")))),
            tool_name=_text(data.get("tool_name", data.get("toolName", data.get("name")))),
            emitted_at=parse_iso(data.get("emitted_at", data.get("emittedAt", data.get("timestamp")))),
            input=raw_input if isinstance(raw_input, dict) else {},
            output=output if isinstance(output, str) else None,
        )

    def to_dict(self) -> dict:
        return {
            "invocationId": self.invocation_id,
            "toolName": self.tool_name,
            "emittedAt": to_iso(self.emitted_at),
            "input": self.input,
            "output": self.output,
        }


@dataclass(frozen=True)
class LogEntry:
    """A single immutable entry of the activity log."""

    timestamp: datetime | None
    level: LogLevel = "info"
    message: str | None = None
    kind: EntryKind | None = None
    tool_payload: ToolPayload | None = None

    @property
    def has_message(self) -> bool:
        return bool(self.message and self.message.strip())

    @classmethod
    def from_dict(cls, data: dict) -> LogEntry:
        """Create a LogEntry from either the engine or the backend wire shape.

        Backend entries look like ``{"type": "tool_use", "data": {"id": ...,
        "name": ..., "input": ...}}``; engine entries use ``kind`` and
        ``toolPayload``. Missing or malformed fields degrade to defaults.
        """
        raw_kind = data.get("kind", data.get("type"))
        kind = _KIND_ALIASES.get(raw_kind) if isinstance(raw_kind, str) else None

        raw_payload = data.get("tool_payload", data.get("toolPayload", data.get("data")))
        payload = ToolPayload.from_dict(raw_payload)

        level = data.get("level")
        if level not in LOG_LEVELS:
            level = "info"

        message = data.get("message")
        return cls(
            timestamp=parse_iso(data.get("timestamp")),
            level=level,
            message=message if isinstance(message, str) else None,
            kind=kind,
            tool_payload=payload,
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": to_iso(self.timestamp),
            "level": self.level,
            "message": self.message,
            "kind": self.kind,
            "toolPayload": self.tool_payload.to_dict() if self.tool_payload else None,
        }


@dataclass(frozen=True)
class ClassifiedEvent:
    """A log entry tagged with its role in the reconciliation pipeline."""

    tag: EventTag
    entry: LogEntry
    index: int = 0

    @property
    def payload(self) -> ToolPayload | None:
        return self.entry.tool_payload


def classify_event(entry: LogEntry, index: int = 0) -> ClassifiedEvent | None:
    """Tag one entry as tool-invocation, tool-update or plain-message.

    Returns None for entries with neither a usable tool payload nor a message.
    """
    payload = entry.tool_payload
    if entry.kind == "tool-invocation" and payload is not None and not payload.is_empty:
        return ClassifiedEvent(TOOL_INVOCATION, entry, index)
    if entry.kind == "tool-update" and payload is not None and payload.invocation_id:
        return ClassifiedEvent(TOOL_UPDATE, entry, index)
    if entry.has_message:
        return ClassifiedEvent(PLAIN_MESSAGE, entry, index)
    return None


def classify_events(entries: Iterable[LogEntry]) -> list[ClassifiedEvent]:
    """Classify entries in arrival order, dropping the ones with no view impact."""
    classified = []
    for index, entry in enumerate(entries):
        event = classify_event(entry, index)
        if event is None:
            logger.debug("Dropping log entry %d with no message or tool payload", index)
            continue
        classified.append(event)
    return classified


def coerce_entries(entries: Iterable[LogEntry | dict]) -> list[LogEntry]:
    """Accept LogEntry objects or raw dictionaries; skip anything else."""
    coerced = []
    for entry in entries:
        if isinstance(entry, LogEntry):
            coerced.append(entry)
        elif isinstance(entry, dict):
            coerced.append(LogEntry.from_dict(entry))
        else:
            logger.debug("Skipping log entry of type %s", type(entry).__name__)
    return coerced


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
