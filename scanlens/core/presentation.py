"""View-model helpers shared by the dashboard adapters."""

from collections.abc import Iterable

from .issues import SEVERITIES, Issue, ReviewHistoryEntry
from .todos import TodoItem

VERIFICATION_LABELS: dict[str, str] = {
    "pending": "Pending Review",
    "pending_review": "Pending Review",
    "reproducing": "Reproducing",
    "confirmed": "Confirmed",
    "dismissed": "Dismissed",
    "needs_info": "Needs Info",
}

REMEDIATION_LABELS: dict[str, str] = {
    "not_started": "Not Started",
    "in_progress": "In Progress",
    "applied": "Applied",
    "failed": "Failed",
    "verified": "Verified",
}


def todo_status_label(item: TodoItem) -> str:
    """Badge text for a plan item; statuses are already normalized."""
    return item.status


def verification_label(status: str | None) -> str:
    if not status:
        return VERIFICATION_LABELS["pending"]
    return VERIFICATION_LABELS.get(status, status)


def remediation_label(status: str | None) -> str:
    if not status:
        return REMEDIATION_LABELS["not_started"]
    return REMEDIATION_LABELS.get(status, status)


def count_badge(count: int, noun: str, empty: str = "None") -> str:
    """Tab badge text such as "3 items" or "1 entry"."""
    if count <= 0:
        return empty
    if count == 1:
        return f"1 {noun}"
    plural = noun[:-1] + "ies" if noun.endswith("y") else noun + "s"
    return f"{count} {plural}"


def default_tab(todo_count: int, timeline_count: int, issue_count: int) -> str:
    """Pick the first tab with content: plan, then commands, then issues."""
    if todo_count:
        return "plan"
    if timeline_count:
        return "commands"
    if issue_count:
        return "issues"
    return "plan"


def filter_issues(
    issues: Iterable[Issue],
    search: str = "",
    severity: str = "all",
) -> list[Issue]:
    """Case-insensitive search over title, description and id, plus a severity filter."""
    needle = search.strip().lower()
    matches = []
    for issue in issues:
        if severity != "all" and issue.severity != severity:
            continue
        if needle and not any(
            needle in (value or "").lower() for value in (issue.title, issue.description, issue.id)
        ):
            continue
        matches.append(issue)
    return matches


def severity_counts(issues: Iterable[Issue]) -> dict[str, int]:
    counts = dict.fromkeys(SEVERITIES, 0)
    for issue in issues:
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts


def review_activity(issue: Issue) -> list[ReviewHistoryEntry]:
    """Review history, newest first."""
    # Later entries win ties.
    return sorted(issue.review_history, key=lambda entry: entry.timestamp)[::-1]
