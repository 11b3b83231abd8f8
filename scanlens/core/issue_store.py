"""In-memory issue ledger driving reproduction and remediation actions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from .issues import (
    REMEDIATION_TYPES,
    REPRODUCTION_TYPES,
    Issue,
    RemediationSession,
    ReproductionSession,
    add_review_note,
    apply_remediation_transition,
    apply_verification_transition,
    record_session,
    remediation_successor,
    update_sections,
    verification_successor,
)
from .settings import DEFAULT_SETTINGS, EngineSettings
from ..utils import utcnow

logger = logging.getLogger(__name__)


class ActionExecutor(Protocol):
    """The automation backend that actually reproduces or remediates issues."""

    async def start_reproduction(self, issue_id: str, reproduction_type: str) -> None: ...

    async def start_remediation(self, issue_id: str, remediation_type: str) -> None: ...


class IssueLifecycleStore:
    """Holds the current state of each issue and applies workflow transitions.

    Reproduction and remediation are dispatched to an external executor. The
    issue enters its in-flight status before the executor is awaited and
    always settles afterwards, whether the executor succeeds or raises.
    The store does not guard against double dispatch; callers should check
    ``is_in_flight`` first.
    """

    def __init__(
        self,
        issues: Iterable[Issue | dict] = (),
        executor: ActionExecutor | None = None,
        settings: EngineSettings = DEFAULT_SETTINGS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.executor = executor
        self.settings = settings
        self.clock = clock
        self._issues: dict[str, Issue] = {}
        self._tasks: set[asyncio.Task] = set()
        self.load(issues)

    def load(self, issues: Iterable[Issue | dict]) -> list[Issue]:
        """Replace the ledger with a freshly fetched issue list."""
        loaded: dict[str, Issue] = {}
        for index, issue in enumerate(issues):
            if isinstance(issue, dict):
                issue = Issue.from_dict(issue, index)
            loaded[issue.id] = issue
        self._issues = loaded
        return list(loaded.values())

    def list_issues(self) -> list[Issue]:
        return list(self._issues.values())

    def get(self, issue_id: str) -> Issue:
        try:
            return self._issues[issue_id]
        except KeyError:
            raise KeyError(f"Unknown issue: {issue_id}") from None

    def is_in_flight(self, issue_id: str) -> bool:
        issue = self.get(issue_id)
        return issue.is_reproducing or issue.is_remediating

    def _put(self, issue: Issue) -> Issue:
        self._issues[issue.id] = issue
        return issue

    # Reviewer actions

    def review(self, issue_id: str, status: str, notes: str | None = None) -> Issue:
        """Apply a reviewer verification decision."""
        issue = apply_verification_transition(
            self.get(issue_id),
            status,
            notes=notes,
            reviewer=self.settings.reviewer,
            now=self.clock(),
        )
        logger.info("Issue %s marked %s", issue_id, issue.verification_status)
        return self._put(issue)

    def save_notes(self, issue_id: str, notes: str) -> Issue:
        issue = add_review_note(self.get(issue_id), notes, reviewer=self.settings.reviewer, now=self.clock())
        return self._put(issue)

    def edit_sections(self, issue_id: str, **sections) -> Issue:
        return self._put(update_sections(self.get(issue_id), **sections))

    def set_remediation_status(self, issue_id: str, status: str) -> Issue:
        """Record a remediation status reported from outside, e.g. ``verified``."""
        issue = apply_remediation_transition(
            self.get(issue_id),
            status,
            actor=self.settings.reviewer,
            now=self.clock(),
        )
        return self._put(issue)

    # Reproduction

    def begin_reproduction(self, issue_id: str, reproduction_type: str) -> Issue:
        """Validate the request and move the issue to ``reproducing``."""
        if reproduction_type not in REPRODUCTION_TYPES:
            raise ValueError(f"Unknown reproduction type: {reproduction_type!r}")
        self._require_executor()
        issue = self.get(issue_id)
        successor = verification_successor(issue.verification_status, "start_reproduction")
        return self._put(replace(issue, verification_status=successor))

    async def start_reproduction(self, issue_id: str, reproduction_type: str) -> Issue | None:
        """Reproduce an issue and return it once the attempt has settled."""
        self.begin_reproduction(issue_id, reproduction_type)
        return await self._settle_reproduction(issue_id, reproduction_type)

    def dispatch_reproduction(self, issue_id: str, reproduction_type: str) -> asyncio.Task:
        """Start reproduction in the background; the issue is in flight on return."""
        loop = asyncio.get_running_loop()
        self.begin_reproduction(issue_id, reproduction_type)
        return self._spawn(loop, self._settle_reproduction(issue_id, reproduction_type))

    async def _settle_reproduction(self, issue_id: str, reproduction_type: str) -> Issue | None:
        try:
            await self.executor.start_reproduction(issue_id, reproduction_type)
        except Exception as exc:
            logger.warning("Reproduction of issue %s failed: %s", issue_id, exc, exc_info=True)
            session = ReproductionSession.new(
                reproduction_type,
                "failed",
                notes=f"Reproduction failed using {reproduction_type}: {exc}",
                now=self.clock(),
            )
        else:
            session = ReproductionSession.new(
                reproduction_type,
                "completed",
                notes=f"Reproduction attempted using {reproduction_type}",
                now=self.clock(),
            )
            logger.info("Reproduction of issue %s completed", issue_id)

        issue = self._issues.get(issue_id)
        if issue is None:
            logger.warning("Issue %s was unloaded while reproduction was in flight", issue_id)
            return None
        issue = replace(
            issue,
            verification_status=verification_successor(issue.verification_status, "finish_reproduction"),
        )
        return self._put(record_session(issue, "reproduction", session))

    # Remediation

    def begin_remediation(self, issue_id: str, remediation_type: str) -> Issue:
        """Validate the request and move the issue to ``in_progress``."""
        if remediation_type not in REMEDIATION_TYPES:
            raise ValueError(f"Unknown remediation type: {remediation_type!r}")
        self._require_executor()
        issue = self.get(issue_id)
        if remediation_successor(issue.remediation_status, "start") != "in_progress":
            raise ValueError(f"Issue {issue_id} is already {issue.remediation_status}")
        return self._put(replace(issue, remediation_status="in_progress"))

    async def start_remediation(self, issue_id: str, remediation_type: str) -> Issue | None:
        """Remediate an issue and return it once the attempt has settled."""
        self.begin_remediation(issue_id, remediation_type)
        return await self._settle_remediation(issue_id, remediation_type)

    def dispatch_remediation(self, issue_id: str, remediation_type: str) -> asyncio.Task:
        """Start remediation in the background; the issue is in flight on return."""
        loop = asyncio.get_running_loop()
        self.begin_remediation(issue_id, remediation_type)
        return self._spawn(loop, self._settle_remediation(issue_id, remediation_type))

    async def _settle_remediation(self, issue_id: str, remediation_type: str) -> Issue | None:
        try:
            await self.executor.start_remediation(issue_id, remediation_type)
        except Exception as exc:
            logger.warning("Remediation of issue %s failed: %s", issue_id, exc, exc_info=True)
            outcome = "failed"
            session = RemediationSession.new(
                remediation_type,
                "failed",
                notes=f"Remediation failed using {remediation_type} method: {exc}",
                now=self.clock(),
            )
        else:
            outcome = "applied"
            session = RemediationSession.new(
                remediation_type,
                "completed",
                notes=f"Remediation applied using {remediation_type} method",
                now=self.clock(),
            )
            logger.info("Remediation of issue %s applied", issue_id)

        issue = self._issues.get(issue_id)
        if issue is None:
            logger.warning("Issue %s was unloaded while remediation was in flight", issue_id)
            return None
        issue = apply_remediation_transition(
            issue,
            outcome,
            actor=self.settings.reviewer,
            now=self.clock(),
        )
        return self._put(record_session(issue, "remediation", session))

    def _require_executor(self) -> None:
        if self.executor is None:
            raise RuntimeError("No action executor configured")

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro) -> asyncio.Task:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every background action to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
