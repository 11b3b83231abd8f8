"""Live task plan derived from the agent's plan-writing tool calls."""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Literal

from .events import TOOL_INVOCATION, ClassifiedEvent, LogEntry, classify_events
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)

TodoStatus = Literal["todo", "in-progress", "completed"]
TodoPriority = Literal["high", "medium", "low"]

_STATUS_ALIASES: dict[str, TodoStatus] = {
    "todo": "todo",
    "pending": "todo",
    "in-progress": "in-progress",
    "in_progress": "in-progress",
    "completed": "completed",
}
_PRIORITIES = ("high", "medium", "low")


@dataclass(frozen=True)
class TodoItem:
    """A single item of the agent's current plan."""

    key: str
    content: str
    status: TodoStatus = "todo"
    priority: TodoPriority = "medium"
    order: int = 0
    active_form: str | None = None  # Present continuous form

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_pending(self) -> bool:
        return self.status == "todo"

    @property
    def is_in_progress(self) -> bool:
        return self.status == "in-progress"

    @classmethod
    def from_raw(cls, raw: object, order: int) -> "TodoItem":
        """Create a TodoItem from one element of a plan-writing call.

        Never raises: non-dict elements still get a key from their serialized form.
        """
        data = raw if isinstance(raw, dict) else {}
        content = _non_empty(data.get("content"))
        active_form = _non_empty(data.get("activeForm", data.get("active_form")))
        key = content or active_form or _stable_key(raw)

        status = _STATUS_ALIASES.get(str(data.get("status", "")).strip().lower(), "todo")
        priority = data.get("priority")
        if priority not in _PRIORITIES:
            priority = "medium"

        return cls(
            key=key,
            content=content or active_form or "",
            status=status,
            priority=priority,
            order=order,
            active_form=active_form,
        )

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "content": self.content,
            "status": self.status,
            "priority": self.priority,
            "order": self.order,
            "activeForm": self.active_form,
        }


def reduce_todo_plan(
    events: Iterable[ClassifiedEvent],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[TodoItem]:
    """Return the plan as of the most recent plan-writing invocation.

    Every snapshot replaces the previous one wholesale. Items are ordered by
    their position within that snapshot.
    """
    working: dict[str, TodoItem] = {}
    for event in events:
        items = plan_items(event, settings)
        if items is None:
            continue
        working.clear()
        for index, raw in enumerate(items):
            item = TodoItem.from_raw(raw, index)
            # Repeated keys keep their first slot but take the later values.
            previous = working.get(item.key)
            if previous is not None:
                item = replace(item, order=previous.order)
            working[item.key] = item
    return sorted(working.values(), key=lambda item: item.order)


def plan_items(event: ClassifiedEvent, settings: EngineSettings = DEFAULT_SETTINGS) -> list | None:
    """Return the todo list carried by a plan-writing invocation, else None."""
    if event.tag != TOOL_INVOCATION or event.payload is None:
        return None
    if event.payload.tool_name != settings.plan_tool:
        return None
    items = event.payload.input.get(settings.plan_items_field)
    if not isinstance(items, list):
        logger.debug(
            "Ignoring %s call %s without a %r list",
            settings.plan_tool,
            event.payload.invocation_id,
            settings.plan_items_field,
        )
        return None
    return items


def todo_plan_from_entries(
    entries: Iterable[LogEntry],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[TodoItem]:
    """Classify raw entries and reduce them to the latest plan."""
    return reduce_todo_plan(classify_events(entries), settings)


def _non_empty(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _stable_key(raw: object) -> str:
    return json.dumps(raw, sort_keys=True, default=str)
