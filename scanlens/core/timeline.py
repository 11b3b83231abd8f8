"""Unified execution timeline: shell commands interleaved with agent commentary."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from .commands import BashCommand, command_text
from .events import PLAIN_MESSAGE, TOOL_INVOCATION, ClassifiedEvent, LogEntry
from .settings import DEFAULT_SETTINGS, EngineSettings
from .todos import plan_items
from ..utils import to_iso

logger = logging.getLogger(__name__)

TimelineKind = Literal["command", "message"]


@dataclass(frozen=True)
class TimelineItem:
    """One row of the execution timeline."""

    kind: TimelineKind
    timestamp: datetime | None
    payload: BashCommand | LogEntry

    @property
    def is_command(self) -> bool:
        return self.kind == "command"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "timestamp": to_iso(self.timestamp),
            "payload": self.payload.to_dict(),
        }


def _sort_key(item: TimelineItem) -> tuple[bool, datetime]:
    # Undated rows go first; sorted() is stable so ties keep arrival order.
    return (item.timestamp is not None, item.timestamp or datetime.min)


def sort_timeline(items: Iterable[TimelineItem]) -> list[TimelineItem]:
    """Stable ascending sort by timestamp."""
    return sorted(items, key=_sort_key)


def merge_timeline(
    commands: Iterable[BashCommand],
    messages: Iterable[LogEntry],
) -> list[TimelineItem]:
    """Merge commands and commentary into one chronological sequence.

    Messages are placed ahead of commands before the stable sort, so a
    message and a command sharing a timestamp list the message first.
    """
    items = [TimelineItem("message", entry.timestamp, entry) for entry in messages]
    items.extend(TimelineItem("command", command.timestamp, command) for command in commands)
    return sort_timeline(items)


def is_commentary(event: ClassifiedEvent, settings: EngineSettings = DEFAULT_SETTINGS) -> bool:
    """Whether an event shows up in the timeline as a message.

    Plain messages always do. Tool invocations the engine does not consume
    (other tools, or plan/shell calls missing their input) pass through when
    they carry a message.
    """
    if event.tag == PLAIN_MESSAGE:
        return True
    if event.tag != TOOL_INVOCATION or not event.entry.has_message:
        return False
    return plan_items(event, settings) is None and command_text(event, settings) is None


def build_timeline(
    events: Iterable[ClassifiedEvent],
    commands: Mapping[str, BashCommand],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[TimelineItem]:
    """Lay out correlated commands and commentary in arrival order, then sort.

    Each command is placed at the position of its first invocation, carrying
    whatever output correlation resolved for it.
    """
    items: list[TimelineItem] = []
    placed: set[str] = set()
    for event in events:
        if is_commentary(event, settings):
            items.append(TimelineItem("message", event.entry.timestamp, event.entry))
            continue
        if event.tag != TOOL_INVOCATION or event.payload is None:
            continue
        invocation_id = event.payload.invocation_id
        command = commands.get(invocation_id)
        if command is None or invocation_id in placed:
            continue
        placed.add(invocation_id)
        items.append(TimelineItem("command", command.timestamp, command))
    return sort_timeline(items)


def filter_timeline(timeline: Iterable[TimelineItem], show_context: bool) -> list[TimelineItem]:
    """Return the whole timeline, or only its commands when context is hidden."""
    if show_context:
        return list(timeline)
    return [item for item in timeline if item.is_command]
