"""Derived views over the activity log.

Every function here re-derives its result from the full event list it is
given. Callers re-run them whenever new events arrive; nothing is cached or
mutated between calls, so the same list always yields the same views.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from .commands import BashCommand, correlate_commands
from .events import LogEntry, classify_events, coerce_entries
from .settings import DEFAULT_SETTINGS, EngineSettings
from .timeline import TimelineItem, build_timeline, filter_timeline
from .todos import TodoItem, reduce_todo_plan


@dataclass(frozen=True)
class ActivityViews:
    """The plan and timeline derived from one event list."""

    todos: list[TodoItem] = field(default_factory=list)
    timeline: list[TimelineItem] = field(default_factory=list)
    commands: dict[str, BashCommand] = field(default_factory=dict)

    @property
    def pending_commands(self) -> list[BashCommand]:
        return [command for command in self.commands.values() if not command.has_output]

    def filtered_timeline(self, show_context: bool) -> list[TimelineItem]:
        return filter_timeline(self.timeline, show_context)


def derive_todo_plan(
    events: Iterable[LogEntry | dict],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[TodoItem]:
    """Return the latest task plan."""
    classified = classify_events(coerce_entries(events))
    return reduce_todo_plan(classified, settings)


def derive_timeline(
    events: Iterable[LogEntry | dict],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[TimelineItem]:
    """Return commands (with any resolved output) and commentary in time order."""
    classified = classify_events(coerce_entries(events))
    commands = correlate_commands(classified, settings)
    return build_timeline(classified, commands, settings)


def derive_activity_views(
    events: Iterable[LogEntry | dict],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ActivityViews:
    """Classify once and derive the plan, the commands and the timeline."""
    classified = classify_events(coerce_entries(events))
    commands = correlate_commands(classified, settings)
    return ActivityViews(
        todos=reduce_todo_plan(classified, settings),
        timeline=build_timeline(classified, commands, settings),
        commands=commands,
    )


__all__ = [
    "ActivityViews",
    "derive_activity_views",
    "derive_timeline",
    "derive_todo_plan",
    "filter_timeline",
]
