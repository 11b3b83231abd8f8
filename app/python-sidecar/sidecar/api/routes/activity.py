"""
Activity API routes - task plan and execution timeline derived from agent logs
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from scanlens.core.activity import derive_activity_views
from scanlens.core.presentation import count_badge, default_tab, todo_status_label
from scanlens.core.timeline import TimelineItem
from scanlens.core.todos import TodoItem

router = APIRouter()
logger = logging.getLogger(__name__)


class ActivityRequest(BaseModel):
    """The full activity log received so far for one scan step."""

    events: list[dict[str, Any]] = Field(default_factory=list)
    issueCount: int = 0


class TodoItemResponse(BaseModel):
    """One item of the live task plan."""

    key: str
    content: str
    status: str
    statusLabel: str
    priority: str
    order: int
    activeForm: Optional[str] = None


class PlanResponse(BaseModel):
    """Latest task plan snapshot."""

    todos: list[TodoItemResponse]
    total: int
    badge: str


class TimelineItemResponse(BaseModel):
    """A command or commentary row of the execution timeline."""

    kind: str
    timestamp: Optional[str] = None
    payload: dict[str, Any]


class TimelineResponse(BaseModel):
    """Execution timeline, optionally without commentary."""

    items: list[TimelineItemResponse]
    total: int
    unfilteredTotal: int
    badge: str
    showContext: bool


class ActivityViewsResponse(BaseModel):
    """Plan and timeline in one payload, plus the tab to open first."""

    plan: PlanResponse
    timeline: TimelineResponse
    defaultTab: str
    pendingCommands: int


def _todo_response(item: TodoItem) -> TodoItemResponse:
    return TodoItemResponse(
        key=item.key,
        content=item.content,
        status=item.status,
        statusLabel=todo_status_label(item),
        priority=item.priority,
        order=item.order,
        activeForm=item.active_form,
    )


def _plan_response(todos: list[TodoItem]) -> PlanResponse:
    return PlanResponse(
        todos=[_todo_response(item) for item in todos],
        total=len(todos),
        badge=count_badge(len(todos), "item"),
    )


def _timeline_response(timeline: list[TimelineItem], filtered: list[TimelineItem], show_context: bool) -> TimelineResponse:
    return TimelineResponse(
        items=[TimelineItemResponse(**item.to_dict()) for item in filtered],
        total=len(filtered),
        unfilteredTotal=len(timeline),
        badge=count_badge(len(timeline), "entry"),
        showContext=show_context,
    )


@router.post("/plan")
def get_plan(body: ActivityRequest, request: Request) -> PlanResponse:
    """Latest task plan for an event log"""
    views = derive_activity_views(body.events, request.app.state.settings)
    return _plan_response(views.todos)


@router.post("/timeline")
def get_timeline(
    body: ActivityRequest,
    request: Request,
    showContext: bool = Query(True),
) -> TimelineResponse:
    """Execution timeline for an event log"""
    views = derive_activity_views(body.events, request.app.state.settings)
    filtered = views.filtered_timeline(showContext)
    return _timeline_response(views.timeline, filtered, showContext)


@router.post("/views")
def get_views(
    body: ActivityRequest,
    request: Request,
    showContext: bool = Query(True),
) -> ActivityViewsResponse:
    """Plan, timeline and default tab for an event log"""
    views = derive_activity_views(body.events, request.app.state.settings)
    filtered = views.filtered_timeline(showContext)
    logger.debug(
        "Derived %d todos and %d timeline rows from %d events",
        len(views.todos),
        len(views.timeline),
        len(body.events),
    )
    return ActivityViewsResponse(
        plan=_plan_response(views.todos),
        timeline=_timeline_response(views.timeline, filtered, showContext),
        defaultTab=default_tab(len(views.todos), len(views.timeline), body.issueCount),
        pendingCommands=len(views.pending_commands),
    )
