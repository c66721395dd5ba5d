"""Input validation for feedback and task mutations.

Each validator returns ``(cleaned, errors)``. Callers reject the mutation
before any local write when ``errors`` is non-empty.
"""

from __future__ import annotations

from datetime import date, datetime

from feedhub_core.status import FEEDBACK_TYPES, PRIORITIES, TASK_STATUSES

_MAX_TITLE = 200


def _text(data: dict, key: str, errors: dict, required: bool, label: str) -> str | None:
    value = data.get(key)
    if value is None:
        if required:
            errors[key] = f"{label} is required."
        return None
    if not isinstance(value, str) or not value.strip():
        errors[key] = f"{label} cannot be empty."
        return None
    return value.strip()


def _choice(data: dict, key: str, choices: tuple, errors: dict) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if value not in choices:
        errors[key] = f"Must be one of: {', '.join(choices)}."
        return None
    return value


def _due_date(value) -> str | None:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def validate_feedback(data: dict, partial: bool = False) -> tuple[dict, dict[str, str]]:
    """Validate feedback fields.

    With partial=False, title and description are required and type/priority
    fall back to bug/medium. With partial=True only supplied keys are checked.
    """
    errors: dict[str, str] = {}
    cleaned: dict = {}

    title = _text(data, "title", errors, required=not partial, label="Title")
    if title is not None:
        if len(title) > _MAX_TITLE:
            errors["title"] = f"Title must be at most {_MAX_TITLE} characters."
        cleaned["title"] = title
    description = _text(data, "description", errors, required=not partial, label="Description")
    if description is not None:
        cleaned["description"] = description

    fb_type = _choice(data, "type", FEEDBACK_TYPES, errors)
    priority = _choice(data, "priority", PRIORITIES, errors)
    if fb_type is not None:
        cleaned["type"] = fb_type
    elif not partial:
        cleaned["type"] = "bug"
    if priority is not None:
        cleaned["priority"] = priority
    elif not partial:
        cleaned["priority"] = "medium"

    if "metadata" in data and data["metadata"] is not None:
        if not isinstance(data["metadata"], dict):
            errors["metadata"] = "Metadata must be a JSON object."
        else:
            cleaned["metadata"] = data["metadata"]

    if "assignee_id" in data:
        cleaned["assignee_id"] = data["assignee_id"] or None

    return cleaned, errors


def validate_task(data: dict, partial: bool = False) -> tuple[dict, dict[str, str]]:
    errors: dict[str, str] = {}
    cleaned: dict = {}

    title = _text(data, "title", errors, required=not partial, label="Title")
    if title is not None:
        cleaned["title"] = title
    if data.get("description"):
        cleaned["description"] = str(data["description"]).strip() or None

    status = _choice(data, "status", TASK_STATUSES, errors)
    if status is not None:
        cleaned["status"] = status
    priority = _choice(data, "priority", PRIORITIES, errors)
    if priority is not None:
        cleaned["priority"] = priority
    elif not partial:
        cleaned["priority"] = "medium"

    if data.get("due_date"):
        due = _due_date(data["due_date"])
        if due is None:
            errors["due_date"] = "Due date must be an ISO-8601 date (YYYY-MM-DD)."
        else:
            cleaned["due_date"] = due

    if data.get("feedback_id"):
        cleaned["feedback_id"] = data["feedback_id"]

    return cleaned, errors
