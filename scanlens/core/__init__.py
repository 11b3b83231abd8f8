"""Core reconciliation logic for scanlens."""

from .activity import ActivityViews, derive_activity_views, derive_timeline, derive_todo_plan
from .commands import BashCommand, correlate_commands
from .events import ClassifiedEvent, LogEntry, ToolPayload, classify_event, classify_events
from .issue_status import to_backend_status, to_frontend_status
from .issue_store import ActionExecutor, IssueLifecycleStore
from .issues import (
    Issue,
    RemediationSession,
    ReproductionSession,
    ReviewHistoryEntry,
    add_review_note,
    apply_remediation_transition,
    apply_verification_transition,
    record_session,
    remediation_successor,
    update_sections,
    verification_successor,
)
from .settings import EngineSettings
from .timeline import TimelineItem, filter_timeline, merge_timeline
from .todos import TodoItem, reduce_todo_plan

__all__ = [
    "ActivityViews",
    "derive_activity_views",
    "derive_timeline",
    "derive_todo_plan",
    "BashCommand",
    "correlate_commands",
    "ClassifiedEvent",
    "LogEntry",
    "ToolPayload",
    "classify_event",
    "classify_events",
    "to_backend_status",
    "to_frontend_status",
    "ActionExecutor",
    "IssueLifecycleStore",
    "Issue",
    "RemediationSession",
    "ReproductionSession",
    "ReviewHistoryEntry",
    "add_review_note",
    "apply_remediation_transition",
    "apply_verification_transition",
    "record_session",
    "remediation_successor",
    "update_sections",
    "verification_successor",
    "EngineSettings",
    "TimelineItem",
    "filter_timeline",
    "merge_timeline",
    "TodoItem",
    "reduce_todo_plan",
]
