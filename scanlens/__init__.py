"""scanlens - derive render-ready views from a scanning agent's activity log.

Basic usage:
    from scanlens import derive_todo_plan, derive_timeline, filter_timeline

    plan = derive_todo_plan(events)
    timeline = filter_timeline(derive_timeline(events), show_context=False)

Issue workflow:
    from scanlens import apply_verification_transition

    issue = apply_verification_transition(issue, "confirmed", notes="Reproduced on staging")
"""

__version__ = "0.1.0"

from .core import (
    ActivityViews,
    Issue,
    IssueLifecycleStore,
    LogEntry,
    TimelineItem,
    TodoItem,
    apply_remediation_transition,
    apply_verification_transition,
    derive_activity_views,
    derive_timeline,
    derive_todo_plan,
    filter_timeline,
    record_session,
)

__all__ = [
    "ActivityViews",
    "Issue",
    "IssueLifecycleStore",
    "LogEntry",
    "TimelineItem",
    "TodoItem",
    "apply_remediation_transition",
    "apply_verification_transition",
    "derive_activity_views",
    "derive_timeline",
    "derive_todo_plan",
    "filter_timeline",
    "record_session",
]
