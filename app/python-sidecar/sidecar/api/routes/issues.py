"""
Issue review API routes - verification decisions, notes, reproduction and remediation
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from scanlens.core.issue_status import to_backend_status
from scanlens.core.issue_store import IssueLifecycleStore
from scanlens.core.issues import Issue
from scanlens.core.presentation import (
    filter_issues,
    remediation_label,
    review_activity,
    severity_counts,
    verification_label,
)
from scanlens.utils import format_time_ago

router = APIRouter()
logger = logging.getLogger(__name__)


class IssueListRequest(BaseModel):
    """Issues as fetched from the scan backend."""

    issues: list[dict[str, Any]] = Field(default_factory=list)


class IssueResponse(BaseModel):
    """An issue with its workflow state and display labels."""

    issue: dict[str, Any]
    backendStatus: str
    verificationLabel: str
    remediationLabel: str
    inFlight: bool
    reviewActivity: list[dict[str, Any]] = Field(default_factory=list)


class IssueListResponse(BaseModel):
    """Filtered issues with per-severity counts over the whole ledger."""

    issues: list[IssueResponse]
    total: int
    severityCounts: dict[str, int]


class ReviewRequest(BaseModel):
    """A reviewer verification decision."""

    status: str
    notes: Optional[str] = None


class NotesRequest(BaseModel):
    """Free-text reviewer notes."""

    notes: str


class SectionsRequest(BaseModel):
    """Editable issue sections; omitted fields are left alone."""

    description: Optional[str] = None
    impact: Optional[str] = None
    reproductionSteps: Optional[list[str]] = None
    remediationSteps: Optional[str] = None


class RemediationStatusRequest(BaseModel):
    """A remediation status reported by an outside system."""

    status: str


class ActionRequest(BaseModel):
    """Reproduction or remediation method."""

    type: str


def _store(request: Request) -> IssueLifecycleStore:
    return request.app.state.issue_store


def _response(store: IssueLifecycleStore, issue: Issue) -> IssueResponse:
    return IssueResponse(
        issue=issue.to_dict(),
        backendStatus=to_backend_status(issue.verification_status),
        verificationLabel=verification_label(issue.verification_status),
        remediationLabel=remediation_label(issue.remediation_status),
        inFlight=store.is_in_flight(issue.id),
        reviewActivity=[
            {**entry.to_dict(), "ago": format_time_ago(entry.timestamp, now_text="Just now")}
            for entry in review_activity(issue)
        ],
    )


def _get_issue(store: IssueLifecycleStore, issue_id: str) -> Issue:
    try:
        return store.get(issue_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Issue not found")


@router.put("")
def load_issues(body: IssueListRequest, request: Request) -> IssueListResponse:
    """Replace the issue ledger with a freshly fetched list"""
    store = _store(request)
    issues = store.load(body.issues)
    logger.info("Loaded %d issues", len(issues))
    return IssueListResponse(
        issues=[_response(store, issue) for issue in issues],
        total=len(issues),
        severityCounts=severity_counts(issues),
    )


@router.get("")
def list_issues(
    request: Request,
    search: str = Query(""),
    severity: str = Query("all"),
) -> IssueListResponse:
    """List issues matching a search string and severity"""
    store = _store(request)
    issues = store.list_issues()
    matches = filter_issues(issues, search=search, severity=severity)
    return IssueListResponse(
        issues=[_response(store, issue) for issue in matches],
        total=len(matches),
        severityCounts=severity_counts(issues),
    )


@router.get("/{issue_id}")
def get_issue(issue_id: str, request: Request) -> IssueResponse:
    """Get a single issue"""
    store = _store(request)
    return _response(store, _get_issue(store, issue_id))


@router.post("/{issue_id}/review")
def review_issue(issue_id: str, body: ReviewRequest, request: Request) -> IssueResponse:
    """Confirm, dismiss, request info on, or reopen an issue"""
    store = _store(request)
    if _get_issue(store, issue_id).is_reproducing:
        raise HTTPException(status_code=409, detail="Reproduction is still running for this issue")
    try:
        issue = store.review(issue_id, body.status, notes=body.notes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _response(store, issue)


@router.post("/{issue_id}/notes")
def save_notes(issue_id: str, body: NotesRequest, request: Request) -> IssueResponse:
    """Save reviewer notes"""
    store = _store(request)
    _get_issue(store, issue_id)
    return _response(store, store.save_notes(issue_id, body.notes))


@router.patch("/{issue_id}/sections")
def edit_sections(issue_id: str, body: SectionsRequest, request: Request) -> IssueResponse:
    """Edit description, impact, reproduction steps or remediation steps"""
    store = _store(request)
    _get_issue(store, issue_id)
    sections = {
        "description": body.description,
        "impact": body.impact,
        "reproduction_steps": body.reproductionSteps,
        "remediation_steps": body.remediationSteps,
    }
    updates = {name: value for name, value in sections.items() if value is not None}
    return _response(store, store.edit_sections(issue_id, **updates))


@router.post("/{issue_id}/remediation-status")
def set_remediation_status(
    issue_id: str,
    body: RemediationStatusRequest,
    request: Request,
) -> IssueResponse:
    """Record a remediation status such as an external verification"""
    store = _store(request)
    _get_issue(store, issue_id)
    try:
        issue = store.set_remediation_status(issue_id, body.status)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _response(store, issue)


def _check_dispatchable(store: IssueLifecycleStore, issue_id: str) -> None:
    _get_issue(store, issue_id)
    if store.executor is None:
        raise HTTPException(status_code=503, detail="No automation backend configured")
    if store.is_in_flight(issue_id):
        raise HTTPException(status_code=409, detail="An action is already running for this issue")


@router.post("/{issue_id}/reproduce")
async def reproduce_issue(issue_id: str, body: ActionRequest, request: Request) -> IssueResponse:
    """Start reproducing an issue; returns while the attempt is in flight"""
    store = _store(request)
    _check_dispatchable(store, issue_id)
    try:
        store.dispatch_reproduction(issue_id, body.type)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _response(store, store.get(issue_id))


@router.post("/{issue_id}/remediate")
async def remediate_issue(issue_id: str, body: ActionRequest, request: Request) -> IssueResponse:
    """Start remediating an issue; returns while the attempt is in flight"""
    store = _store(request)
    _check_dispatchable(store, issue_id)
    try:
        store.dispatch_remediation(issue_id, body.type)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _response(store, store.get(issue_id))
