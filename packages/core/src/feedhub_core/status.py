"""Lifecycle vocabulary and the local ⇄ remote status mapping.

Local status is authoritative. The remote tracker only ever sees a binary
open/closed projection of it.
"""

from __future__ import annotations

FEEDBACK_STATUSES = ("OPEN", "ASSIGNED", "RESOLVED", "CLOSED")
TASK_STATUSES = ("todo", "in_progress", "review", "done")
FEEDBACK_TYPES = ("bug", "feature", "improvement", "question")
PRIORITIES = ("low", "medium", "high", "critical")
SOURCES = ("webapp", "api")

REMOTE_OPEN = "open"
REMOTE_CLOSED = "closed"

_CLOSED_STATUSES = frozenset({"RESOLVED", "CLOSED"})

# Pre-rename status value still present in older databases.
_LEGACY_STATUSES = {"IN_PROGRESS": "ASSIGNED"}


def to_remote_state(local_status: str | None) -> str:
    """Map a feedback status to the remote issue state.

    Unknown or legacy values map to open so an issue that may still need
    attention is never closed by accident.
    """
    if local_status in _CLOSED_STATUSES:
        return REMOTE_CLOSED
    return REMOTE_OPEN


def from_remote_state(remote_state: str | None) -> str:
    """Map a remote issue state back to the feedback status it implies."""
    if remote_state == REMOTE_CLOSED:
        return "CLOSED"
    return "OPEN"


def normalize_feedback_status(value: str | None) -> str | None:
    """Return the canonical feedback status for value, or None if it is not one."""
    if not value:
        return None
    status = value.strip().upper()
    status = _LEGACY_STATUSES.get(status, status)
    return status if status in FEEDBACK_STATUSES else None
