"""Mapping between dashboard verification statuses and backend issue statuses."""

from typing import Literal

VerificationStatus = Literal["pending", "confirmed", "dismissed", "needs_info", "reproducing"]
BackendIssueStatus = Literal["pending_review", "confirmed", "patched", "dismissed", "needs_info"]

VERIFICATION_STATUSES: tuple[str, ...] = (
    "pending",
    "reproducing",
    "confirmed",
    "dismissed",
    "needs_info",
)

STATUS_TO_BACKEND: dict[str, BackendIssueStatus] = {
    "pending": "pending_review",
    "confirmed": "confirmed",
    "dismissed": "dismissed",
    "needs_info": "needs_info",
    # Reproduction is in-flight only; the backend still sees a pending review.
    "reproducing": "pending_review",
}

STATUS_TO_FRONTEND: dict[str, VerificationStatus] = {
    "pending_review": "pending",
    "confirmed": "confirmed",
    "dismissed": "dismissed",
    "needs_info": "needs_info",
    "patched": "confirmed",
}


def to_backend_status(status: str) -> BackendIssueStatus:
    """Convert a verification status for the backend API."""
    try:
        return STATUS_TO_BACKEND[status]
    except KeyError:
        raise ValueError(f"Unknown verification status: {status!r}") from None


def to_frontend_status(status: str | None) -> VerificationStatus:
    """Convert a backend (or already frontend) status, defaulting to pending."""
    if status in STATUS_TO_FRONTEND:
        return STATUS_TO_FRONTEND[status]
    if status in VERIFICATION_STATUSES:
        return status
    return "pending"
