"""Request bodies for the public ingestion API.

Only shape is checked here; vocabulary and emptiness are validated by
feedhub_core.validation so the API and the CLI reject the same input.
"""

from typing import Any, Optional

from pydantic import BaseModel


class FeedbackIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class FeedbackPatch(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee_id: Optional[str] = None


class TaskIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    feedback_id: Optional[str] = None
