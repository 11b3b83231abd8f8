"""Shared utilities for scanlens."""

from .datetime_utils import format_time_ago, parse_iso, to_iso, utcnow

__all__ = [
    "format_time_ago",
    "parse_iso",
    "to_iso",
    "utcnow",
]
