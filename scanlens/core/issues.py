"""Issue records and their verification/remediation state machine.

Issues are created by the scan backend. The functions in this module never
mutate an issue; each transition returns a new ``Issue`` with the successor
status and its side effects (timestamps, reviewer notes, history entries,
session ledgers) applied.

Verification axis::

    pending --start_reproduction--> reproducing --finish_reproduction--> pending
    any --confirm|dismiss|request_info|reopen--> confirmed|dismissed|needs_info|pending

Remediation axis::

    none|not_started|failed|applied --start--> in_progress
    in_progress --succeed|fail--> applied|failed
    applied --verify--> verified (terminal)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import ClassVar, Literal

from .issue_status import VERIFICATION_STATUSES, VerificationStatus, to_frontend_status
from .settings import DEFAULT_REVIEWER
from ..utils import parse_iso, to_iso, utcnow

logger = logging.getLogger(__name__)

Severity = Literal["critical", "high", "medium", "low", "info"]
RemediationStatus = Literal["not_started", "in_progress", "applied", "failed", "verified"]
SessionStatus = Literal["running", "completed", "failed"]
SessionKind = Literal["reproduction", "remediation"]
ReproductionType = Literal["scriptreplay", "browser", "manual"]
RemediationType = Literal["automated", "manual"]
VerificationAction = Literal[
    "start_reproduction",
    "finish_reproduction",
    "confirm",
    "dismiss",
    "request_info",
    "reopen",
]
RemediationAction = Literal["start", "succeed", "fail", "verify"]

SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low", "info")
REMEDIATION_STATUSES: tuple[str, ...] = ("not_started", "in_progress", "applied", "failed", "verified")
SESSION_STATUSES: tuple[str, ...] = ("running", "completed", "failed")
REPRODUCTION_TYPES: tuple[str, ...] = ("scriptreplay", "browser", "manual")
REMEDIATION_TYPES: tuple[str, ...] = ("automated", "manual")
VERIFICATION_ACTIONS: tuple[str, ...] = (
    "start_reproduction",
    "finish_reproduction",
    "confirm",
    "dismiss",
    "request_info",
    "reopen",
)
REMEDIATION_ACTIONS: tuple[str, ...] = ("start", "succeed", "fail", "verify")

# Actions a reviewer takes explicitly; these land in the review history.
REVIEWER_ACTIONS: dict[str, VerificationStatus] = {
    "confirm": "confirmed",
    "dismiss": "dismissed",
    "request_info": "needs_info",
    "reopen": "pending",
}


@dataclass(frozen=True)
class ActionSession:
    """An immutable record of one reproduction or remediation attempt."""

    kind: ClassVar[SessionKind]
    id_prefix: ClassVar[str]
    types: ClassVar[tuple[str, ...]]

    id: str
    timestamp: datetime
    status: SessionStatus
    type: str
    notes: str | None = None
    artifacts: dict = field(default_factory=dict)
    changes_made: tuple[str, ...] = ()

    @classmethod
    def new(
        cls,
        session_type: str,
        status: SessionStatus,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> ActionSession:
        """Create a session with a fresh id."""
        if session_type not in cls.types:
            raise ValueError(f"Unknown {cls.kind} type: {session_type!r}")
        if status not in SESSION_STATUSES:
            raise ValueError(f"Unknown session status: {status!r}")
        return cls(
            id=f"{cls.id_prefix}-{uuid.uuid4().hex[:12]}",
            timestamp=now or utcnow(),
            status=status,
            type=session_type,
            notes=notes,
        )

    @classmethod
    def from_dict(cls, data: dict) -> ActionSession:
        status = data.get("status")
        changes = data.get("changes_made", data.get("changesMade")) or ()
        artifacts = data.get("artifacts")
        return cls(
            id=str(data.get("id") or f"{cls.id_prefix}-{uuid.uuid4().hex[:12]}"),
            timestamp=parse_iso(data.get("timestamp")) or utcnow(),
            status=status if status in SESSION_STATUSES else "completed",
            type=str(data.get("type") or "manual"),
            notes=data.get("notes"),
            artifacts=artifacts if isinstance(artifacts, dict) else {},
            changes_made=tuple(str(change) for change in changes),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "status": self.status,
            "type": self.type,
            "notes": self.notes,
            "artifacts": self.artifacts,
            "changesMade": list(self.changes_made),
        }


@dataclass(frozen=True)
class ReproductionSession(ActionSession):
    kind: ClassVar[SessionKind] = "reproduction"
    id_prefix: ClassVar[str] = "session"
    types: ClassVar[tuple[str, ...]] = REPRODUCTION_TYPES


@dataclass(frozen=True)
class RemediationSession(ActionSession):
    kind: ClassVar[SessionKind] = "remediation"
    id_prefix: ClassVar[str] = "remediation"
    types: ClassVar[tuple[str, ...]] = REMEDIATION_TYPES


SESSION_CLASSES: dict[str, type[ActionSession]] = {
    "reproduction": ReproductionSession,
    "remediation": RemediationSession,
}


@dataclass(frozen=True)
class ReviewHistoryEntry:
    """A reviewer status change or note on an issue."""

    id: str
    timestamp: datetime
    type: Literal["status_change", "note"]
    status: str | None = None
    previous_status: str | None = None
    note: str | None = None
    reviewer: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ReviewHistoryEntry:
        entry_type = data.get("type")
        return cls(
            id=str(data.get("id") or f"history-{uuid.uuid4().hex[:12]}"),
            timestamp=parse_iso(data.get("timestamp")) or utcnow(),
            type=entry_type if entry_type in ("status_change", "note") else "note",
            status=data.get("status"),
            previous_status=data.get("previous_status", data.get("previousStatus")),
            note=data.get("note"),
            reviewer=data.get("reviewer"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "type": self.type,
            "status": self.status,
            "previousStatus": self.previous_status,
            "note": self.note,
            "reviewer": self.reviewer,
        }


@dataclass(frozen=True)
class Issue:
    """A vulnerability discovered by a scan, with its review workflow state."""

    id: str
    title: str
    description: str = ""
    severity: Severity = "info"
    category: str | None = None
    impact: str | None = None
    affected_component: str | None = None
    cvss_score: float | None = None
    cve_id: str | None = None
    verification_status: VerificationStatus = "pending"
    remediation_status: RemediationStatus | None = None
    reproduction_steps: tuple[str, ...] = ()
    remediation_steps: str | None = None
    reviewer_notes: str | None = None
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None
    remediated_at: datetime | None = None
    remediated_by: str | None = None
    reproduction_sessions: tuple[ReproductionSession, ...] = ()
    remediation_sessions: tuple[RemediationSession, ...] = ()
    review_history: tuple[ReviewHistoryEntry, ...] = ()

    @property
    def is_reproducing(self) -> bool:
        return self.verification_status == "reproducing"

    @property
    def is_remediating(self) -> bool:
        return self.remediation_status == "in_progress"

    @property
    def session_count(self) -> int:
        return len(self.reproduction_sessions) + len(self.remediation_sessions)

    @classmethod
    def from_dict(cls, data: dict, index: int = 0) -> Issue:
        """Create an Issue from a backend payload (snake_case or camelCase)."""

        def pick(snake: str, camel: str | None = None):
            if snake in data:
                return data[snake]
            return data.get(camel) if camel else None

        severity = pick("severity")
        remediation_status = pick("remediation_status", "remediationStatus")
        steps = pick("reproduction_steps", "reproductionSteps") or ()
        if isinstance(steps, str):
            steps = [steps]
        cvss = pick("cvss_score", "cvssScore")

        return cls(
            id=str(data.get("id") or f"issue-{index}"),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            severity=severity if severity in SEVERITIES else "info",
            category=pick("category"),
            impact=pick("impact"),
            affected_component=pick("affected_component", "affectedComponent"),
            cvss_score=float(cvss) if isinstance(cvss, (int, float)) else None,
            cve_id=pick("cve_id", "cveId"),
            verification_status=to_frontend_status(
                pick("verification_status", "verificationStatus") or data.get("status")
            ),
            remediation_status=(
                remediation_status if remediation_status in REMEDIATION_STATUSES else None
            ),
            reproduction_steps=tuple(str(step) for step in steps),
            remediation_steps=pick("remediation_steps", "remediationSteps") or data.get("remediation"),
            reviewer_notes=pick("reviewer_notes", "reviewerNotes"),
            confirmed_at=parse_iso(pick("confirmed_at", "confirmedAt")),
            confirmed_by=pick("confirmed_by", "confirmedBy"),
            remediated_at=parse_iso(pick("remediated_at", "remediatedAt")),
            remediated_by=pick("remediated_by", "remediatedBy"),
            reproduction_sessions=tuple(
                ReproductionSession.from_dict(item)
                for item in pick("reproduction_sessions", "reproductionSessions") or ()
                if isinstance(item, dict)
            ),
            remediation_sessions=tuple(
                RemediationSession.from_dict(item)
                for item in pick("remediation_sessions", "remediationSessions") or ()
                if isinstance(item, dict)
            ),
            review_history=tuple(
                ReviewHistoryEntry.from_dict(item)
                for item in pick("review_history", "reviewHistory") or ()
                if isinstance(item, dict)
            ),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "category": self.category,
            "impact": self.impact,
            "affectedComponent": self.affected_component,
            "cvssScore": self.cvss_score,
            "cveId": self.cve_id,
            "verificationStatus": self.verification_status,
            "remediationStatus": self.remediation_status,
            "reproductionSteps": list(self.reproduction_steps),
            "remediationSteps": self.remediation_steps,
            "reviewerNotes": self.reviewer_notes,
            "confirmedAt": to_iso(self.confirmed_at),
            "confirmedBy": self.confirmed_by,
            "remediatedAt": to_iso(self.remediated_at),
            "remediatedBy": self.remediated_by,
            "reproductionSessions": [s.to_dict() for s in self.reproduction_sessions],
            "remediationSessions": [s.to_dict() for s in self.remediation_sessions],
            "reviewHistory": [h.to_dict() for h in self.review_history],
        }


def verification_successor(current: str, action: str) -> VerificationStatus:
    """Return the verification status after ``action``; defined for every pair."""
    if current not in VERIFICATION_STATUSES:
        raise ValueError(f"Unknown verification status: {current!r}")
    if action == "start_reproduction":
        return "reproducing"
    if action == "finish_reproduction":
        return "pending" if current == "reproducing" else current
    if action in REVIEWER_ACTIONS:
        return REVIEWER_ACTIONS[action]
    raise ValueError(f"Unknown verification action: {action!r}")


def remediation_successor(current: str | None, action: str) -> RemediationStatus | None:
    """Return the remediation status after ``action``; defined for every pair."""
    if current is not None and current not in REMEDIATION_STATUSES:
        raise ValueError(f"Unknown remediation status: {current!r}")
    if action == "start":
        return current if current == "verified" else "in_progress"
    if action == "succeed":
        return "applied" if current == "in_progress" else current
    if action == "fail":
        return "failed" if current == "in_progress" else current
    if action == "verify":
        return "verified" if current in ("applied", "verified") else current
    raise ValueError(f"Unknown remediation action: {action!r}")


_REVIEWER_ACTION_FOR: dict[str, VerificationAction] = {
    status: action for action, status in REVIEWER_ACTIONS.items()
}


_REMEDIATION_ACTION_FOR: dict[str, RemediationAction] = {
    "in_progress": "start",
    "applied": "succeed",
    "failed": "fail",
    "verified": "verify",
}


def apply_verification_transition(
    issue: Issue,
    status: str,
    notes: str | None = None,
    reviewer: str = DEFAULT_REVIEWER,
    now: datetime | None = None,
) -> Issue:
    """Apply a reviewer decision: ``confirmed``, ``dismissed``, ``needs_info`` or ``pending``.

    ``reproducing`` belongs to the reproduction workflow and raises
    ``ValueError`` like an unknown status. Entering ``confirmed`` stamps
    ``confirmed_at``/``confirmed_by``. Notes, when given, overwrite the stored
    reviewer notes. Every decision is appended to the review history.
    """
    action = _REVIEWER_ACTION_FOR.get(status)
    if action is None:
        raise ValueError(f"Not a reviewer decision: {status!r}")
    successor = verification_successor(issue.verification_status, action)
    now = now or utcnow()

    changes: dict = {"verification_status": successor}
    if notes is not None:
        changes["reviewer_notes"] = notes
    if successor == "confirmed":
        changes["confirmed_at"] = now
        changes["confirmed_by"] = reviewer
    changes["review_history"] = issue.review_history + (
        ReviewHistoryEntry(
            id=f"status-{uuid.uuid4().hex[:12]}",
            timestamp=now,
            type="status_change",
            status=successor,
            previous_status=issue.verification_status,
            reviewer=reviewer,
        ),
    )
    return replace(issue, **changes)


def apply_remediation_transition(
    issue: Issue,
    status: str,
    actor: str = DEFAULT_REVIEWER,
    now: datetime | None = None,
) -> Issue:
    """Move an issue along the remediation axis towards ``status``.

    Pairs the state machine does not allow leave the issue unchanged.
    Entering ``applied`` stamps ``remediated_at``/``remediated_by``.
    """
    current = issue.remediation_status
    if status == "not_started":
        if current is None:
            return replace(issue, remediation_status="not_started")
        logger.debug("Issue %s already has remediation status %s", issue.id, current)
        return issue

    action = _REMEDIATION_ACTION_FOR.get(status)
    if action is None:
        raise ValueError(f"Unknown remediation status: {status!r}")

    successor = remediation_successor(current, action)
    if successor == current:
        if successor != status:
            logger.debug("Ignoring remediation %s for issue %s in %s", action, issue.id, current)
        return issue

    changes: dict = {"remediation_status": successor}
    if successor == "applied":
        changes["remediated_at"] = now or utcnow()
        changes["remediated_by"] = actor
    return replace(issue, **changes)


def record_session(issue: Issue, kind: str, session: ActionSession | dict) -> Issue:
    """Append a session to the reproduction or remediation ledger."""
    session_cls = SESSION_CLASSES.get(kind)
    if session_cls is None:
        raise ValueError(f"Unknown session kind: {kind!r}")

    if isinstance(session, dict):
        session = session_cls.from_dict(session)
    elif not isinstance(session, session_cls):
        raise ValueError(f"Expected a {kind} session, got {type(session).__name__}")

    ledger_field = f"{kind}_sessions"
    ledger = getattr(issue, ledger_field)
    if any(existing.id == session.id for existing in ledger):
        raise ValueError(f"Session {session.id} is already recorded on issue {issue.id}")
    return replace(issue, **{ledger_field: ledger + (session,)})


def add_review_note(
    issue: Issue,
    note: str,
    reviewer: str | None = None,
    now: datetime | None = None,
) -> Issue:
    """Store reviewer notes and log them in the review history."""
    entry = ReviewHistoryEntry(
        id=f"note-{uuid.uuid4().hex[:12]}",
        timestamp=now or utcnow(),
        type="note",
        note=note,
        reviewer=reviewer,
    )
    return replace(issue, reviewer_notes=note, review_history=issue.review_history + (entry,))


EDITABLE_SECTIONS: tuple[str, ...] = (
    "description",
    "impact",
    "reproduction_steps",
    "remediation_steps",
)


def update_sections(issue: Issue, **sections) -> Issue:
    """Edit the free-text sections of an issue."""
    unknown = set(sections) - set(EDITABLE_SECTIONS)
    if unknown:
        raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
    if "reproduction_steps" in sections:
        steps = sections["reproduction_steps"] or ()
        if isinstance(steps, str):
            steps = [line for line in steps.splitlines() if line.strip()]
        sections["reproduction_steps"] = tuple(str(step) for step in steps)
    return replace(issue, **sections)
