"""Task lifecycle and the task → feedback status cascade.

The cascade is one-way and sticky: a task reaching ``done`` resolves its
linked feedback, and nothing a task does afterwards reopens it. Feedback
status changes never touch tasks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from feedhub_core.enrichment import get_analyzer
from feedhub_core.result import ActionResult
from feedhub_core.status import PRIORITIES, TASK_STATUSES
from feedhub_core.validation import validate_task
from feedhub_store.models import Task

if TYPE_CHECKING:
    from feedhub_core.config import AIConfig
    from feedhub_core.sync import AnalyzerFactory, ReconciliationEngine

logger = logging.getLogger(__name__)

_CASCADE = {"done": "RESOLVED"}


def cascade_target(task_status: str) -> str | None:
    """Return the feedback status a task status forces, if any."""
    return _CASCADE.get(task_status)


def _story_points(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _hours(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class TaskLifecycle:
    def __init__(
        self,
        engine: ReconciliationEngine,
        analyzer_factory: AnalyzerFactory = get_analyzer,
    ):
        self.engine = engine
        self.store = engine.store
        self.analyzer_factory = analyzer_factory

    def create_task(self, project_id: str, fields: dict) -> ActionResult[Task]:
        cleaned, errors = validate_task(fields)
        if errors:
            return ActionResult.invalid(errors)
        if self.store.get_project(project_id) is None:
            return ActionResult.missing("Project")
        feedback_id = cleaned.get("feedback_id")
        if feedback_id:
            feedback = self.store.get_feedback(feedback_id)
            if feedback is None or feedback.project_id != project_id:
                return ActionResult.missing("Feedback")
        task = self.store.create_task(Task(project_id=project_id, **cleaned))
        self._cascade(task)
        return ActionResult(data=task)

    def set_status(self, task_id: str, status: str) -> ActionResult[Task]:
        """Persist a task status and cascade completion into the linked feedback."""
        if status not in TASK_STATUSES:
            return ActionResult.invalid({"status": f"Must be one of: {', '.join(TASK_STATUSES)}."})
        task = self.store.update_task(task_id, status=status)
        if task is None:
            return ActionResult.missing("Task")

        self._cascade(task)
        return ActionResult(data=task)

    def _cascade(self, task: Task) -> None:
        """Push the feedback status forced by task.status, if any."""
        target = cascade_target(task.status)
        if not target or not task.feedback_id:
            return
        cascaded = self.engine.change_feedback_status(task.feedback_id, target)
        if cascaded.not_found:
            # The feedback was deleted between the task write and the cascade.
            logger.info("Task %s is linked to missing feedback %s", task.id, task.feedback_id)

    def delete_task(self, task_id: str) -> ActionResult[bool]:
        if not self.store.delete_task(task_id):
            return ActionResult.missing("Task")
        return ActionResult(data=True)

    def convert_feedback(self, feedback_id: str, ai_config: AIConfig | None = None) -> ActionResult[Task]:
        """Create a task from a feedback and mark the feedback ASSIGNED.

        Uses an AI suggestion when one is available, otherwise copies the
        feedback's own title, description and priority.
        """
        feedback = self.store.get_feedback(feedback_id)
        if feedback is None:
            return ActionResult.missing("Feedback")

        suggestion = None
        try:
            analyzer = self.analyzer_factory(ai_config)
            if analyzer is not None:
                suggestion = analyzer.suggest_task(feedback)
        except Exception as e:
            logger.warning("Task suggestion failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)

        if suggestion is not None:
            fields = {
                "title": suggestion.title,
                "description": suggestion.description,
                "priority": suggestion.priority,
                "due_date": suggestion.suggested_due_date,
            }
        else:
            fields = {
                "title": feedback.title,
                "description": feedback.description,
                "priority": feedback.priority,
            }
        cleaned, errors = validate_task(fields)
        if "due_date" in errors:
            # A malformed AI date is dropped rather than failing the conversion.
            errors.pop("due_date")
        if errors:
            return ActionResult.invalid(errors)

        task = self.store.create_task(Task(project_id=feedback.project_id, feedback_id=feedback.id, **cleaned))
        self.engine.change_feedback_status(feedback.id, "ASSIGNED")
        return ActionResult(data=task)

    def breakdown(self, task_id: str, ai_config: AIConfig | None) -> ActionResult[list[Task]]:
        """Create AI-suggested subtasks under task_id."""
        task = self.store.get_task(task_id)
        if task is None:
            return ActionResult.missing("Task")
        analyzer = self.analyzer_factory(ai_config)
        if analyzer is None:
            return ActionResult(message="AI is not available.", errors={"ai": "AI is not configured."})

        feedback = self.store.get_feedback(task.feedback_id) if task.feedback_id else None
        existing = [s.title for s in self.store.list_tasks(parent_task_id=task.id)]
        suggestions = analyzer.suggest_subtasks(task, feedback, existing)
        if not suggestions:
            return ActionResult(errors={"ai": "AI could not generate a subtask breakdown."})

        created = []
        for s in suggestions:
            priority = s.get("priority")
            created.append(
                self.store.create_task(
                    Task(
                        project_id=task.project_id,
                        title=str(s["title"]).strip(),
                        description=s.get("description") or None,
                        priority=priority if priority in PRIORITIES else "medium",
                        parent_task_id=task.id,
                        story_points=_story_points(s.get("storyPoints")),
                        estimated_hours=_hours(s.get("estimatedHours")),
                    )
                )
            )
        return ActionResult(data=created)
