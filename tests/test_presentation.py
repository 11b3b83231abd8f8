"""Tests for dashboard view-model helpers."""

from datetime import datetime

import pytest

from scanlens.core.issues import Issue, add_review_note
from scanlens.core.presentation import (
    count_badge,
    default_tab,
    filter_issues,
    remediation_label,
    review_activity,
    severity_counts,
    todo_status_label,
    verification_label,
)
from scanlens.core.todos import TodoItem


@pytest.fixture
def issues():
    return [
        Issue(id="i1", title="SQL injection in login", severity="critical"),
        Issue(id="i2", title="Missing HSTS header", description="No Strict-Transport-Security", severity="low"),
        Issue(id="i3", title="Outdated jQuery", severity="medium"),
    ]


class TestLabels:
    """Tests for status labels."""

    @pytest.mark.parametrize(
        "raw_status,label",
        [("pending", "todo"), ("in_progress", "in-progress"), ("completed", "completed")],
    )
    def test_todo_status_label(self, raw_status, label):
        """Test plan badges show the normalized status."""
        item = TodoItem.from_raw({"content": "a", "status": raw_status}, 0)

        assert todo_status_label(item) == label

    @pytest.mark.parametrize(
        "status,label",
        [
            ("pending", "Pending Review"),
            ("reproducing", "Reproducing"),
            ("needs_info", "Needs Info"),
            (None, "Pending Review"),
        ],
    )
    def test_verification_label(self, status, label):
        """Test verification statuses have display labels."""
        assert verification_label(status) == label

    def test_remediation_label(self):
        """Test a missing remediation status reads as not started."""
        assert remediation_label(None) == "Not Started"
        assert remediation_label("in_progress") == "In Progress"


class TestBadgesAndTabs:
    """Tests for tab badges and default tab selection."""

    @pytest.mark.parametrize(
        "count,noun,expected",
        [
            (0, "item", "None"),
            (1, "item", "1 item"),
            (3, "item", "3 items"),
            (5, "entry", "5 entries"),
        ],
    )
    def test_count_badge(self, count, noun, expected):
        """Test badge text pluralizes its noun."""
        assert count_badge(count, noun) == expected

    def test_default_tab_prefers_plan(self):
        """Test the plan tab wins when it has items."""
        assert default_tab(2, 5, 1) == "plan"

    def test_default_tab_falls_through(self):
        """Test empty tabs are skipped in order."""
        assert default_tab(0, 5, 1) == "commands"
        assert default_tab(0, 0, 1) == "issues"
        assert default_tab(0, 0, 0) == "plan"


class TestIssueFilters:
    """Tests for issue search and counts."""

    def test_search_is_case_insensitive(self, issues):
        """Test search matches title and description."""
        assert [i.id for i in filter_issues(issues, search="sql")] == ["i1"]
        assert [i.id for i in filter_issues(issues, search="strict-transport")] == ["i2"]

    def test_severity_filter(self, issues):
        """Test severity narrows the list."""
        assert [i.id for i in filter_issues(issues, severity="medium")] == ["i3"]

    def test_no_filters(self, issues):
        """Test no filters return everything."""
        assert len(filter_issues(issues)) == 3

    def test_severity_counts(self, issues):
        """Test every severity has a count."""
        counts = severity_counts(issues)

        assert counts == {"critical": 1, "high": 0, "medium": 1, "low": 1, "info": 0}

    def test_review_activity_newest_first(self):
        """Test review history is listed newest first."""
        issue = Issue(id="i1", title="x")
        issue = add_review_note(issue, "first", now=datetime(2026, 3, 1, 9, 0))
        issue = add_review_note(issue, "second", now=datetime(2026, 3, 1, 10, 0))

        assert [entry.note for entry in review_activity(issue)] == ["second", "first"]
