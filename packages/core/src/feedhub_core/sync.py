"""Reconciliation between the local store and the remote issue tracker.

Every operation is a short local-then-remote sequence:

    validate → local write (authoritative) → tracker call (advisory)

A tracker failure never rolls back or fails the local write. It is logged and
returned as ``ActionResult.warning``. Only store errors propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from feedhub_core.dedup import LOOP_MARKER, filter_new, format_imported
from feedhub_core.enrichment import advisory_fields, get_analyzer
from feedhub_core.result import ActionResult
from feedhub_core.status import from_remote_state, normalize_feedback_status, to_remote_state
from feedhub_core.validation import validate_feedback
from feedhub_store.models import Comment, Feedback, User

if TYPE_CHECKING:
    from feedhub_core.config import AIConfig
    from feedhub_core.gh.issues import TrackerAdapter
    from feedhub_core.providers.base import BaseAnalyzer
    from feedhub_store.base import BaseStore

logger = logging.getLogger(__name__)

WARN_NOT_LINKED = "Feedback saved but not linked to a GitHub issue (no repository or token configured)."
WARN_ISSUE_FAILED = "Feedback saved locally. GitHub issue sync failed."
WARN_UPDATE_FAILED = "Feedback updated locally. Failed to sync to GitHub."
WARN_COMMENT_FAILED = "Comment saved locally. Failed to sync to GitHub."
WARN_FETCH_FAILED = "Failed to fetch GitHub comments."
WARN_STATE_FETCH_FAILED = "Failed to read the GitHub issue state."

SYSTEM_USER_NAME = "Feedback Hub"

AnalyzerFactory = Callable[["AIConfig | None"], "BaseAnalyzer | None"]


class ReconciliationEngine:
    """Keeps feedback, comments and their GitHub mirror in step.

    ``analyzer_factory`` builds the advisory analyzer from the AIConfig passed
    into each call; tests swap it for a stub.
    """

    def __init__(
        self,
        store: BaseStore,
        tracker: TrackerAdapter,
        analyzer_factory: AnalyzerFactory = get_analyzer,
        loop_marker: str = LOOP_MARKER,
    ):
        self.store = store
        self.tracker = tracker
        self.analyzer_factory = analyzer_factory
        self.loop_marker = loop_marker

    # ------------------------------------------------------------------ #
    # Feedback                                                             #
    # ------------------------------------------------------------------ #

    def create_feedback(
        self,
        project_id: str,
        fields: dict,
        author: User | None = None,
        source: str = "webapp",
        ai_config: AIConfig | None = None,
    ) -> ActionResult[Feedback]:
        cleaned, errors = validate_feedback(fields)
        if errors:
            return ActionResult.invalid(errors)
        project = self.store.get_project(project_id)
        if project is None:
            return ActionResult.missing("Project")

        feedback = self.store.create_feedback(
            Feedback(project_id=project.id, status="OPEN", source=source, **cleaned)
        )

        warning = None
        try:
            issue = self.tracker.create_issue(project, feedback, author)
        except Exception as e:
            logger.warning("Issue creation failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)
            warning = WARN_ISSUE_FAILED
        else:
            if issue is None:
                warning = WARN_NOT_LINKED
            else:
                feedback = self.store.update_feedback(
                    feedback.id, remote_issue_id=issue.remote_id, remote_url=issue.url
                ) or feedback

        self._enrich(feedback, ai_config)
        return ActionResult(data=self.store.get_feedback(feedback.id) or feedback, warning=warning)

    def update_feedback(self, feedback_id: str, fields: dict) -> ActionResult[Feedback]:
        """Update editable fields, then push title and labels to the linked issue.

        A ``status`` key is routed through change_feedback_status so the
        remote open/closed state follows.
        """
        cleaned, errors = validate_feedback(fields, partial=True)
        status = None
        if fields.get("status") is not None:
            status = normalize_feedback_status(fields["status"])
            if status is None:
                errors["status"] = "Unknown feedback status."
        assignee_id = cleaned.get("assignee_id")
        if assignee_id and self.store.get_user(assignee_id) is None:
            errors["assignee_id"] = "Unknown user."
        if errors:
            return ActionResult.invalid(errors)
        if self.store.get_feedback(feedback_id) is None:
            return ActionResult.missing("Feedback")

        feedback = self.store.update_feedback(feedback_id, **cleaned)
        if feedback is None:
            return ActionResult.missing("Feedback")

        warning = None
        project = self.store.get_project(feedback.project_id)
        if project is not None and {"title", "type", "priority"} & cleaned.keys():
            try:
                self.tracker.update_issue(project, feedback)
            except Exception as e:
                logger.warning("Issue update failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)
                warning = WARN_UPDATE_FAILED

        if status is not None and status != feedback.status:
            changed = self.change_feedback_status(feedback_id, status)
            feedback = changed.data or feedback

        return ActionResult(data=feedback, warning=warning)

    def change_feedback_status(self, feedback_id: str, status: str) -> ActionResult[Feedback]:
        """Persist a status change and mirror it as open/closed.

        The remote call is fire-and-forget: failures are logged and never
        reach the caller, so a status change always succeeds locally.
        """
        canonical = normalize_feedback_status(status)
        if canonical is None:
            return ActionResult.invalid({"status": "Unknown feedback status."})
        feedback = self.store.update_feedback(feedback_id, status=canonical)
        if feedback is None:
            return ActionResult.missing("Feedback")

        if feedback.remote_issue_id:
            project = self.store.get_project(feedback.project_id)
            if project is not None:
                try:
                    self.tracker.set_issue_state(project, feedback.remote_issue_id, canonical)
                except Exception as e:
                    logger.warning(
                        "Issue state sync failed for feedback %s (%s): %s",
                        feedback.id,
                        type(e).__name__,
                        e,
                    )
        return ActionResult(data=feedback)

    def delete_feedback(self, feedback_id: str) -> ActionResult[bool]:
        """Close the linked issue, then delete the local row.

        Closing first means a crash in between leaves "remote closed, local
        present", which a retried delete cleans up.
        """
        feedback = self.store.get_feedback(feedback_id)
        if feedback is None:
            return ActionResult.missing("Feedback")

        if feedback.remote_issue_id:
            project = self.store.get_project(feedback.project_id)
            if project is not None:
                try:
                    self.tracker.set_issue_state(project, feedback.remote_issue_id, "CLOSED")
                except Exception as e:
                    logger.warning(
                        "Could not close issue #%s before deleting feedback %s (%s): %s",
                        feedback.remote_issue_id,
                        feedback.id,
                        type(e).__name__,
                        e,
                    )

        return ActionResult(data=self.store.delete_feedback(feedback_id))

    def pull_issue_state(self, feedback_id: str) -> ActionResult[Feedback]:
        """Adopt the remote open/closed state when it disagrees with the local one.

        This is the only path where the remote tracker writes local state, and
        it only ever decides open versus closed.
        """
        feedback = self.store.get_feedback(feedback_id)
        if feedback is None:
            return ActionResult.missing("Feedback")
        project = self.store.get_project(feedback.project_id)
        if not feedback.remote_issue_id or project is None:
            return ActionResult(data=feedback)

        try:
            remote_state = self.tracker.get_issue_state(project, feedback.remote_issue_id)
        except Exception as e:
            logger.warning("Issue state fetch failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)
            return ActionResult(data=feedback, warning=WARN_STATE_FETCH_FAILED)

        if remote_state is None or remote_state == to_remote_state(feedback.status):
            return ActionResult(data=feedback)

        updated = self.store.update_feedback(feedback.id, status=from_remote_state(remote_state))
        logger.info(
            "Feedback %s status %s -> %s from issue #%s",
            feedback.id,
            feedback.status,
            updated.status if updated else "?",
            feedback.remote_issue_id,
        )
        return ActionResult(data=updated or feedback)

    # ------------------------------------------------------------------ #
    # Comments                                                             #
    # ------------------------------------------------------------------ #

    def add_comment(self, feedback_id: str, content: str, user_id: str | None = None) -> ActionResult[Comment]:
        if not content or not content.strip():
            return ActionResult.invalid({"content": "Comment cannot be empty."})
        user = self.store.get_user(user_id) if user_id else self.store.first_user()
        if user is None:
            return ActionResult.missing("User")
        feedback = self.store.get_feedback(feedback_id)
        if feedback is None:
            return ActionResult.missing("Feedback")

        comment = self.store.create_comment(Comment(feedback_id=feedback.id, user_id=user.id, content=content.strip()))

        warning = None
        project = self.store.get_project(feedback.project_id)
        if feedback.remote_issue_id and project is not None:
            try:
                ref = self.tracker.create_comment(project, feedback.remote_issue_id, comment.content, user.name)
            except Exception as e:
                logger.warning("Comment mirror failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)
                warning = WARN_COMMENT_FAILED
            else:
                if ref is not None:
                    self.store.set_comment_remote_id(comment.id, ref.id)
                    comment.remote_comment_id = ref.id

        return ActionResult(data=comment, warning=warning)

    def import_comments(self, feedback_id: str) -> ActionResult[int]:
        """Import remote comments not seen before. Returns how many were created.

        Safe to call repeatedly and concurrently: the store refuses a second
        row for the same (feedback, remote comment id).
        """
        feedback = self.store.get_feedback(feedback_id)
        if feedback is None:
            return ActionResult.missing("Feedback")
        project = self.store.get_project(feedback.project_id)
        if not feedback.remote_issue_id or project is None:
            return ActionResult(data=0)

        try:
            remote_comments = self.tracker.list_comments(project, feedback.remote_issue_id)
        except Exception as e:
            logger.warning("Comment fetch failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)
            return ActionResult(data=0, warning=WARN_FETCH_FAILED)

        fresh = filter_new(remote_comments, self.store.remote_comment_ids(feedback.id), self.loop_marker)
        if not fresh:
            return ActionResult(data=0)

        owner = self._system_user()
        imported = 0
        for rc in fresh:
            added = self.store.add_imported_comment(
                Comment(
                    feedback_id=feedback.id,
                    user_id=owner.id,
                    content=format_imported(rc),
                    remote_comment_id=rc.id,
                    is_from_github=True,
                )
            )
            if added:
                imported += 1
        return ActionResult(data=imported)

    def delete_comment(self, comment_id: str) -> ActionResult[bool]:
        if not self.store.delete_comment(comment_id):
            return ActionResult.missing("Comment")
        return ActionResult(data=True)

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _system_user(self) -> User:
        user = self.store.first_user()
        if user is None:
            user = self.store.create_user(User(name=SYSTEM_USER_NAME))
        return user

    def _enrich(self, feedback: Feedback, ai_config: AIConfig | None) -> None:
        """Attach advisory AI fields. Never raises."""
        try:
            analyzer = self.analyzer_factory(ai_config)
            if analyzer is None:
                return
            analysis = analyzer.analyze(feedback.title, feedback.description)
            if analysis is not None:
                self.store.update_feedback(feedback.id, **advisory_fields(analysis))
        except Exception as e:
            logger.warning("Advisory analysis failed for feedback %s (%s): %s", feedback.id, type(e).__name__, e)
