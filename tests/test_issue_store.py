"""Tests for the in-memory issue lifecycle store."""

import asyncio
from datetime import datetime

import pytest

from scanlens.core.issue_store import IssueLifecycleStore
from scanlens.core.settings import EngineSettings

NOW = datetime(2026, 3, 1, 12, 0, 0)


class FakeExecutor:
    """Executor that can be held mid-flight and told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.release = asyncio.Event()
        self.release.set()
        self.calls = []

    async def _run(self, kind, issue_id, action_type):
        self.calls.append((kind, issue_id, action_type))
        await self.release.wait()
        if self.fail:
            raise RuntimeError("automation backend unreachable")

    async def start_reproduction(self, issue_id, reproduction_type):
        await self._run("reproduction", issue_id, reproduction_type)

    async def start_remediation(self, issue_id, remediation_type):
        await self._run("remediation", issue_id, remediation_type)


@pytest.fixture
def store(sample_issue_dict):
    return IssueLifecycleStore(
        [sample_issue_dict],
        executor=FakeExecutor(),
        settings=EngineSettings(reviewer="alice"),
        clock=lambda: NOW,
    )


class TestLedger:
    """Tests for loading and reading issues."""

    def test_load_replaces(self, store):
        """Test load swaps out the whole ledger."""
        store.load([{"id": "other", "title": "Other"}])

        assert [issue.id for issue in store.list_issues()] == ["other"]

    def test_get_unknown(self, store):
        """Test unknown ids raise KeyError."""
        with pytest.raises(KeyError):
            store.get("missing")

    def test_not_in_flight_initially(self, store):
        """Test a freshly loaded issue has nothing running."""
        assert store.is_in_flight("issue-ssh-1") is False


class TestReviewerActions:
    """Tests for synchronous reviewer actions."""

    def test_review_uses_configured_reviewer(self, store):
        """Test confirmations are stamped with the settings reviewer."""
        issue = store.review("issue-ssh-1", "confirmed", notes="Verified banner")

        assert issue.confirmed_by == "alice"
        assert issue.confirmed_at == NOW
        assert issue.reviewer_notes == "Verified banner"
        assert store.get("issue-ssh-1").verification_status == "confirmed"

    def test_review_cannot_enter_reproduction(self, store):
        """Test reviewer decisions never put an issue in flight."""
        with pytest.raises(ValueError):
            store.review("issue-ssh-1", "reproducing")

        assert store.is_in_flight("issue-ssh-1") is False

    def test_save_notes(self, store):
        """Test notes are persisted on the stored issue."""
        store.save_notes("issue-ssh-1", "Check again tomorrow")

        assert store.get("issue-ssh-1").reviewer_notes == "Check again tomorrow"

    def test_edit_sections(self, store):
        """Test section edits are persisted."""
        store.edit_sections("issue-ssh-1", impact="Full host compromise")

        assert store.get("issue-ssh-1").impact == "Full host compromise"

    def test_set_remediation_status(self, store):
        """Test externally reported remediation statuses follow the state machine."""
        store.set_remediation_status("issue-ssh-1", "in_progress")
        store.set_remediation_status("issue-ssh-1", "applied")

        issue = store.get("issue-ssh-1")
        assert issue.remediation_status == "applied"
        assert issue.remediated_by == "alice"


class TestReproduction:
    """Tests for reproduction actions."""

    @pytest.mark.asyncio
    async def test_in_flight_then_settles(self, store):
        """Should be reproducing mid-flight and pending with a session afterwards."""
        store.executor.release.clear()

        task = store.dispatch_reproduction("issue-ssh-1", "browser")

        assert store.get("issue-ssh-1").verification_status == "reproducing"
        assert store.is_in_flight("issue-ssh-1") is True

        store.executor.release.set()
        await task

        issue = store.get("issue-ssh-1")
        assert issue.verification_status == "pending"
        assert len(issue.reproduction_sessions) == 1
        session = issue.reproduction_sessions[0]
        assert session.status == "completed"
        assert session.type == "browser"
        assert session.notes == "Reproduction attempted using browser"
        assert store.executor.calls == [("reproduction", "issue-ssh-1", "browser")]

    @pytest.mark.asyncio
    async def test_failure_still_settles(self, store):
        """Should return to pending and record a failed session when the executor raises."""
        store.executor.fail = True

        issue = await store.start_reproduction("issue-ssh-1", "scriptreplay")

        assert issue.verification_status == "pending"
        assert issue.reproduction_sessions[0].status == "failed"
        assert store.is_in_flight("issue-ssh-1") is False

    @pytest.mark.asyncio
    async def test_reviewer_decision_during_flight_is_kept(self, store):
        """Should not overwrite a decision made while reproduction was running."""
        store.executor.release.clear()
        task = store.dispatch_reproduction("issue-ssh-1", "manual")

        store.review("issue-ssh-1", "confirmed")
        store.executor.release.set()
        await task

        issue = store.get("issue-ssh-1")
        assert issue.verification_status == "confirmed"
        assert len(issue.reproduction_sessions) == 1

    @pytest.mark.asyncio
    async def test_unknown_type(self, store):
        """Should reject unknown reproduction types without changing state."""
        with pytest.raises(ValueError):
            await store.start_reproduction("issue-ssh-1", "telepathy")

        assert store.get("issue-ssh-1").verification_status == "pending"

    @pytest.mark.asyncio
    async def test_requires_executor(self, sample_issue_dict):
        """Should refuse to start without an executor."""
        store = IssueLifecycleStore([sample_issue_dict])

        with pytest.raises(RuntimeError):
            await store.start_reproduction("issue-ssh-1", "browser")

        assert store.get("issue-ssh-1").verification_status == "pending"

    @pytest.mark.asyncio
    async def test_issue_unloaded_mid_flight(self, store):
        """Should drop the result when the issue disappears before settling."""
        store.executor.release.clear()
        task = store.dispatch_reproduction("issue-ssh-1", "browser")

        store.load([])
        store.executor.release.set()

        assert await task is None

    def test_dispatch_needs_running_loop(self, store):
        """Should fail before touching state when no loop is running."""
        with pytest.raises(RuntimeError):
            store.dispatch_reproduction("issue-ssh-1", "browser")

        assert store.get("issue-ssh-1").verification_status == "pending"


class TestRemediation:
    """Tests for remediation actions."""

    @pytest.mark.asyncio
    async def test_in_flight_then_applied(self, store):
        """Should be in progress mid-flight and applied afterwards."""
        store.executor.release.clear()

        task = store.dispatch_remediation("issue-ssh-1", "automated")

        assert store.get("issue-ssh-1").remediation_status == "in_progress"
        assert store.is_in_flight("issue-ssh-1") is True

        store.executor.release.set()
        await task

        issue = store.get("issue-ssh-1")
        assert issue.remediation_status == "applied"
        assert issue.remediated_by == "alice"
        assert issue.remediated_at == NOW
        assert issue.remediation_sessions[0].status == "completed"
        assert issue.remediation_sessions[0].notes == "Remediation applied using automated method"

    @pytest.mark.asyncio
    async def test_failure(self, store):
        """Should move to failed and record a failed session when the executor raises."""
        store.executor.fail = True

        issue = await store.start_remediation("issue-ssh-1", "manual")

        assert issue.remediation_status == "failed"
        assert issue.remediation_sessions[0].status == "failed"
        assert issue.remediated_at is None

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, store):
        """Should allow another attempt after a failure."""
        store.executor.fail = True
        await store.start_remediation("issue-ssh-1", "automated")

        store.executor.fail = False
        issue = await store.start_remediation("issue-ssh-1", "automated")

        assert issue.remediation_status == "applied"
        assert len(issue.remediation_sessions) == 2

    @pytest.mark.asyncio
    async def test_verified_cannot_restart(self, store):
        """Should reject remediation of a verified fix."""
        await store.start_remediation("issue-ssh-1", "automated")
        store.set_remediation_status("issue-ssh-1", "verified")

        with pytest.raises(ValueError):
            await store.start_remediation("issue-ssh-1", "automated")

        assert store.get("issue-ssh-1").remediation_status == "verified"

    @pytest.mark.asyncio
    async def test_drain_waits_for_background_work(self, store):
        """Should settle every dispatched action on drain."""
        store.executor.release.clear()
        store.dispatch_remediation("issue-ssh-1", "manual")
        store.executor.release.set()

        await store.drain()

        assert store.get("issue-ssh-1").remediation_status == "applied"
