"""Base analyzer implementing the Template Method pattern.

All providers share the same advisory algorithm:
    analyze() / suggest_task() / suggest_subtasks()
             → build prompt
             → _call_with_retry() → _call_api()   ← only this differs per provider
             → _parse_json()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Everything an analyzer returns is advisory. Callers must treat None / [] as
"no suggestion" and carry on.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from feedhub_core.status import FEEDBACK_TYPES, PRIORITIES

if TYPE_CHECKING:
    from feedhub_store.models import Feedback, Task

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 2048

SYSTEM_PROMPT = (
    "You are an assistant inside a software feedback and task tracker. "
    "You classify user feedback and plan engineering work. "
    "Always answer with valid JSON only, no markdown fences or extra text."
)


@dataclass
class FeedbackAnalysis:
    summary: str
    suggested_type: str | None = None
    suggested_priority: str | None = None
    confidence: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> FeedbackAnalysis | None:
        summary = str(data.get("summary") or "").strip()
        if not summary:
            return None
        fb_type = data.get("suggestedType")
        priority = data.get("suggestedPriority")
        try:
            confidence = min(max(float(data.get("confidence")), 0.0), 1.0)
        except (TypeError, ValueError):
            confidence = None
        return cls(
            summary=summary,
            suggested_type=fb_type if fb_type in FEEDBACK_TYPES else None,
            suggested_priority=priority if priority in PRIORITIES else None,
            confidence=confidence,
        )


@dataclass
class TaskSuggestion:
    title: str
    description: str = ""
    priority: str = "medium"
    suggested_due_date: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TaskSuggestion | None:
        title = str(data.get("title") or "").strip()
        if not title:
            return None
        priority = data.get("priority")
        return cls(
            title=title,
            description=str(data.get("description") or ""),
            priority=priority if priority in PRIORITIES else "medium",
            suggested_due_date=data.get("suggestedDueDate") or None,
        )


class BaseAnalyzer(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MODEL: str = ""
    TEMPERATURE: float = 0.3

    def _configure(self, model: str | None, temperature: float | None) -> None:
        self.model = model or self.MODEL
        self.temperature = self.TEMPERATURE if temperature is None else temperature

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def analyze(self, title: str, description: str) -> FeedbackAnalysis | None:
        """Summarise and classify a feedback item."""
        data = self._generate_json(self._build_analysis_prompt(title, description))
        if not isinstance(data, dict):
            return None
        return FeedbackAnalysis.from_dict(data)

    def suggest_task(self, feedback: Feedback) -> TaskSuggestion | None:
        """Turn a feedback item into a single actionable task."""
        data = self._generate_json(self._build_task_prompt(feedback))
        if not isinstance(data, dict):
            return None
        return TaskSuggestion.from_dict(data)

    def suggest_subtasks(
        self,
        task: Task,
        feedback: Feedback | None = None,
        existing_titles: list[str] | None = None,
    ) -> list[dict]:
        """Break a task into 3-6 subtasks. Returns [] when nothing usable came back."""
        data = self._generate_json(self._build_breakdown_prompt(task, feedback, existing_titles or []))
        if not isinstance(data, list):
            return []
        return [s for s in data if isinstance(s, dict) and str(s.get("title") or "").strip()]

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        Should raise on failure; _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _generate_json(self, user_prompt: str):
        raw = self._call_with_retry(SYSTEM_PROMPT, user_prompt)
        if raw is None:
            return None
        return self._parse_json(raw)

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str | None:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff."""
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    return None
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)

    def _parse_json(self, raw: str):
        """Parse the model's raw text, stripping an outer ```json fence if present."""
        try:
            cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip(), flags=re.IGNORECASE)
            cleaned = re.sub(r"\s*```$", "", cleaned.strip())
            return json.loads(cleaned)
        except json.JSONDecodeError:
            logger.warning(
                "%s: failed to parse response as JSON: %s",
                self.__class__.__name__,
                (raw or "")[:200],
            )
            return None

    def _build_analysis_prompt(self, title: str, description: str) -> str:
        return f"""Analyze the following user feedback and return a JSON object with these fields:
- "summary": a concise 1-2 sentence summary of the feedback
- "suggestedType": one of "bug", "feature", "improvement", "question"
- "suggestedPriority": one of "low", "medium", "high", "critical"
- "confidence": a number between 0 and 1 indicating your confidence

Rules for classification:
- "bug": something is broken, not working, error, crash
- "feature": a new capability that doesn't exist yet
- "improvement": enhancing an existing feature
- "question": asking for help, clarification, or how-to
- Priority "critical": data loss, security issue, or complete blocker
- Priority "high": major functionality broken or highly requested feature
- Priority "medium": moderate impact
- Priority "low": minor cosmetic issue or nice-to-have

Feedback Title: {title}
Feedback Description: {description}"""

    def _build_task_prompt(self, feedback: Feedback) -> str:
        return f"""Convert the following feedback into one actionable development task.
Return a JSON object:
{{
  "title": "Short actionable title (under 80 characters)",
  "description": "What needs to be done and how to verify it",
  "priority": "low" | "medium" | "high" | "critical",
  "suggestedDueDate": "YYYY-MM-DD" or null
}}

Feedback Title: {feedback.title}
Feedback Description: {feedback.description}
Feedback Type: {feedback.type}
Feedback Priority: {feedback.priority}"""

    def _build_breakdown_prompt(self, task: Task, feedback: Feedback | None, existing_titles: list[str]) -> str:
        related = ""
        if feedback is not None:
            related = (
                f"\nRelated Feedback:\nTitle: {feedback.title}\n"
                f"Description: {feedback.description}\nType: {feedback.type}\n"
            )
        existing = ""
        if existing_titles:
            listed = "\n".join(f"- {t}" for t in existing_titles)
            existing = f"\nExisting subtasks (do NOT duplicate these):\n{listed}\n"
        return f"""Break the following task down into 3-6 smaller, actionable subtasks.

Task Title: {task.title}
Task Description: {task.description or "No description"}
Task Priority: {task.priority}
{related}{existing}
Return a JSON array:
[
  {{
    "title": "Short actionable title",
    "description": "Brief description of what needs to be done",
    "priority": "low" | "medium" | "high" | "critical",
    "estimatedHours": number (between 0.5 and 8),
    "storyPoints": number (1, 2, 3, 5, 8, 13)
  }}
]

Rules:
- Each subtask should be concrete and testable
- Keep titles under 80 characters
- Use fibonacci story points"""
