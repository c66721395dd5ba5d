"""Tracker entity models.

Decoupled from feedhub_core so the store layer can be used independently.
Status, type and priority values are plain strings; the vocabulary lives in
feedhub_core.status.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Project:
    """A tracked product. Sync is only attempted when remote_repo_full_name is set."""

    name: str
    api_key: str
    remote_repo_full_name: str | None = None  # "owner/name"
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)


@dataclass
class User:
    name: str
    email: str = ""
    id: str = field(default_factory=new_id)


@dataclass
class Feedback:
    """A piece of user feedback, optionally mirrored to a remote issue.

    The ai_* fields are advisory only and never drive status or sync.
    """

    project_id: str
    title: str
    description: str
    type: str = "bug"
    priority: str = "medium"
    status: str = "OPEN"
    source: str = "webapp"  # "webapp" | "api"
    remote_issue_id: int | None = None
    remote_url: str | None = None
    assignee_id: str | None = None
    metadata: dict = field(default_factory=dict)
    ai_summary: str | None = None
    ai_suggested_type: str | None = None
    ai_suggested_priority: str | None = None
    ai_confidence: float | None = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class Task:
    project_id: str
    title: str
    description: str | None = None
    status: str = "todo"
    priority: str = "medium"
    due_date: str | None = None  # ISO-8601 date
    feedback_id: str | None = None
    parent_task_id: str | None = None
    story_points: int | None = None
    estimated_hours: float | None = None
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class Comment:
    """A comment on a feedback.

    remote_comment_id is set both for comments imported from the remote
    tracker (is_from_github=True) and for local comments mirrored outward.
    """

    feedback_id: str
    user_id: str
    content: str
    remote_comment_id: int | None = None
    is_from_github: bool = False
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now)
