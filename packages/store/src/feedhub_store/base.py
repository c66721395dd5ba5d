"""Abstract store interface.

The reconciliation engine and the CLI depend on BaseStore, not on a concrete
backend, so the engine can be exercised against any implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from feedhub_store.models import Comment, Feedback, Project, Task, User


class BaseStore(ABC):
    """Local persistence for the project / feedback / task / comment graph.

    Local state is authoritative: a failed write here is the only failure the
    engine lets escape to its caller.
    """

    # ------------------------------------------------------------------ #
    # Projects                                                             #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_project(self, project: Project) -> Project: ...

    @abstractmethod
    def get_project(self, project_id: str) -> Project | None: ...

    @abstractmethod
    def get_project_by_api_key(self, api_key: str) -> Project | None:
        """Return the active project owning api_key, or None."""

    @abstractmethod
    def list_projects(self) -> list[Project]: ...

    @abstractmethod
    def update_project(self, project_id: str, **fields) -> Project | None: ...

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def first_user(self) -> User | None: ...

    # ------------------------------------------------------------------ #
    # Feedback                                                             #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_feedback(self, feedback: Feedback) -> Feedback: ...

    @abstractmethod
    def get_feedback(self, feedback_id: str) -> Feedback | None: ...

    @abstractmethod
    def list_feedback(
        self,
        project_id: str | None = None,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Feedback]:
        """Return feedback newest first. Returns an empty list when nothing matches."""

    @abstractmethod
    def count_feedback(self, project_id: str | None = None, status: str | None = None) -> int: ...

    @abstractmethod
    def update_feedback(self, feedback_id: str, **fields) -> Feedback | None:
        """Apply fields and bump updated_at. Returns None when the row is gone."""

    @abstractmethod
    def delete_feedback(self, feedback_id: str) -> bool:
        """Delete the feedback and its comments; linked tasks are detached, not deleted."""

    # ------------------------------------------------------------------ #
    # Tasks                                                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_task(self, task: Task) -> Task: ...

    @abstractmethod
    def get_task(self, task_id: str) -> Task | None: ...

    @abstractmethod
    def list_tasks(
        self,
        project_id: str | None = None,
        status: str | None = None,
        feedback_id: str | None = None,
        parent_task_id: str | None = None,
    ) -> list[Task]: ...

    @abstractmethod
    def update_task(self, task_id: str, **fields) -> Task | None: ...

    @abstractmethod
    def delete_task(self, task_id: str) -> bool: ...

    # ------------------------------------------------------------------ #
    # Comments                                                             #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def create_comment(self, comment: Comment) -> Comment: ...

    @abstractmethod
    def add_imported_comment(self, comment: Comment) -> bool:
        """Insert a comment unless its (feedback_id, remote_comment_id) already exists.

        Returns True when a row was inserted. This is the dedup guard for
        concurrent imports and must never raise on a duplicate.
        """

    @abstractmethod
    def list_comments(self, feedback_id: str) -> list[Comment]: ...

    @abstractmethod
    def remote_comment_ids(self, feedback_id: str) -> set[int]: ...

    @abstractmethod
    def set_comment_remote_id(self, comment_id: str, remote_comment_id: int) -> None: ...

    @abstractmethod
    def delete_comment(self, comment_id: str) -> bool: ...

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
