"""Shared datetime utilities."""

from __future__ import annotations

from datetime import datetime, timezone


def parse_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 datetime string, returning None on invalid input.

    Handles common variations:
    - Standard ISO format: 2026-02-12T10:30:00
    - With timezone Z suffix: 2026-02-12T10:30:00Z
    - With timezone offset: 2026-02-12T10:30:00+02:00

    Returns a naive UTC datetime for consistent comparison.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _to_naive_utc(parsed)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_time_ago(
    value: str | datetime | None,
    short: bool = False,
    now_text: str = "Active now",
    now: datetime | None = None,
) -> str:
    """Format a timestamp relative to now ("2 hours ago", "5m", "Active now")."""
    moment = parse_iso(value)
    if moment is None:
        return "Never"

    reference = now or utcnow()
    minutes = int((reference - moment).total_seconds() // 60)
    if minutes < 1:
        return now_text

    if short:
        if minutes < 60:
            return f"{minutes}m"
        hours = minutes // 60
        if hours < 24:
            return f"{hours}h"
        return f"{hours // 24}d"

    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


def to_iso(value: datetime | None) -> str | None:
    """Serialize a naive UTC datetime with a trailing Z."""
    if value is None:
        return None
    return value.isoformat() + "Z"
