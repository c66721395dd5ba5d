"""SQLiteStore: the local, authoritative store.

Schema:
  projects: one row per tracked product, unique api_key.
  users: local comment authors.
  feedback: feedback items; remote_issue_id/remote_url link the mirrored issue.
  tasks: work items, optionally linked to a feedback and to a parent task.
  comments: feedback comments; UNIQUE(feedback_id, remote_comment_id) is the
              dedup key for imported remote comments.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading

from feedhub_store.base import BaseStore
from feedhub_store.models import Comment, Feedback, Project, Task, User, utc_now

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id                      TEXT PRIMARY KEY,
    name                    TEXT NOT NULL,
    remote_repo_full_name   TEXT,
    api_key                 TEXT NOT NULL UNIQUE,
    is_active               INTEGER NOT NULL DEFAULT 1,
    created_at              TEXT
);
CREATE TABLE IF NOT EXISTS users (
    id      TEXT PRIMARY KEY,
    name    TEXT NOT NULL,
    email   TEXT DEFAULT ''
);
CREATE TABLE IF NOT EXISTS feedback (
    id                      TEXT PRIMARY KEY,
    project_id              TEXT NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
    title                   TEXT NOT NULL,
    description             TEXT NOT NULL,
    type                    TEXT NOT NULL DEFAULT 'bug',
    priority                TEXT NOT NULL DEFAULT 'medium',
    status                  TEXT NOT NULL DEFAULT 'OPEN',
    source                  TEXT NOT NULL DEFAULT 'webapp',
    remote_issue_id         INTEGER,
    remote_url              TEXT,
    assignee_id             TEXT REFERENCES users (id) ON DELETE SET NULL,
    metadata_json           TEXT DEFAULT '{}',
    ai_summary              TEXT,
    ai_suggested_type       TEXT,
    ai_suggested_priority   TEXT,
    ai_confidence           REAL,
    created_at              TEXT,
    updated_at              TEXT
);
CREATE INDEX IF NOT EXISTS idx_feedback_project ON feedback (project_id, status);
CREATE TABLE IF NOT EXISTS tasks (
    id                  TEXT PRIMARY KEY,
    project_id          TEXT NOT NULL REFERENCES projects (id) ON DELETE CASCADE,
    title               TEXT NOT NULL,
    description         TEXT,
    status              TEXT NOT NULL DEFAULT 'todo',
    priority            TEXT NOT NULL DEFAULT 'medium',
    due_date            TEXT,
    feedback_id         TEXT REFERENCES feedback (id) ON DELETE SET NULL,
    parent_task_id      TEXT REFERENCES tasks (id) ON DELETE CASCADE,
    story_points        INTEGER,
    estimated_hours     REAL,
    created_at          TEXT,
    updated_at          TEXT
);
CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks (project_id, status);
CREATE TABLE IF NOT EXISTS comments (
    id                  TEXT PRIMARY KEY,
    feedback_id         TEXT NOT NULL REFERENCES feedback (id) ON DELETE CASCADE,
    user_id             TEXT NOT NULL REFERENCES users (id),
    content             TEXT NOT NULL,
    remote_comment_id   INTEGER,
    is_from_github      INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT,
    UNIQUE (feedback_id, remote_comment_id)
);
"""

_PROJECT_FIELDS = {"name", "remote_repo_full_name", "api_key", "is_active"}
_FEEDBACK_FIELDS = {
    "title",
    "description",
    "type",
    "priority",
    "status",
    "source",
    "remote_issue_id",
    "remote_url",
    "assignee_id",
    "metadata",
    "ai_summary",
    "ai_suggested_type",
    "ai_suggested_priority",
    "ai_confidence",
}
_TASK_FIELDS = {
    "title",
    "description",
    "status",
    "priority",
    "due_date",
    "feedback_id",
    "parent_task_id",
    "story_points",
    "estimated_hours",
}


class SQLiteStore(BaseStore):
    """Stores the tracker graph in a local SQLite database file.

    The database file path defaults to `.feedhub.db` in the current working
    directory. Configure via .feedhub.yml: `store_path: /path/to/feedhub.db`.
    The connection is shared across threads so the ingestion API can serve
    requests from its worker pool. Writes are serialized by a lock and each
    statement commits on its own.
    """

    def __init__(self, db_path: str = ".feedhub.db"):
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------ #
    # Projects                                                             #
    # ------------------------------------------------------------------ #

    def create_project(self, project: Project) -> Project:
        self._write(
            """
            INSERT INTO projects (id, name, remote_repo_full_name, api_key, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                project.id,
                project.name,
                project.remote_repo_full_name,
                project.api_key,
                int(project.is_active),
                project.created_at,
            ),
        )
        return project

    def get_project(self, project_id: str) -> Project | None:
        row = self._conn.execute("SELECT * FROM projects WHERE id=?", (project_id,)).fetchone()
        return self._row_to_project(row) if row else None

    def get_project_by_api_key(self, api_key: str) -> Project | None:
        row = self._conn.execute(
            "SELECT * FROM projects WHERE api_key=? AND is_active=1",
            (api_key,),
        ).fetchone()
        return self._row_to_project(row) if row else None

    def list_projects(self) -> list[Project]:
        rows = self._conn.execute("SELECT * FROM projects ORDER BY name").fetchall()
        return [self._row_to_project(r) for r in rows]

    def update_project(self, project_id: str, **fields) -> Project | None:
        values = {k: v for k, v in fields.items() if k in _PROJECT_FIELDS}
        if "is_active" in values:
            values["is_active"] = int(bool(values["is_active"]))
        self._update("projects", project_id, values, touch=False)
        return self.get_project(project_id)

    # ------------------------------------------------------------------ #
    # Users                                                                #
    # ------------------------------------------------------------------ #

    def create_user(self, user: User) -> User:
        self._write(
            "INSERT INTO users (id, name, email) VALUES (?, ?, ?)",
            (user.id, user.name, user.email),
        )
        return user

    def get_user(self, user_id: str) -> User | None:
        row = self._conn.execute("SELECT * FROM users WHERE id=?", (user_id,)).fetchone()
        return User(id=row["id"], name=row["name"], email=row["email"] or "") if row else None

    def first_user(self) -> User | None:
        row = self._conn.execute("SELECT * FROM users ORDER BY rowid LIMIT 1").fetchone()
        return User(id=row["id"], name=row["name"], email=row["email"] or "") if row else None

    # ------------------------------------------------------------------ #
    # Feedback                                                             #
    # ------------------------------------------------------------------ #

    def create_feedback(self, feedback: Feedback) -> Feedback:
        self._write(
            """
            INSERT INTO feedback
              (id, project_id, title, description, type, priority, status, source,
               remote_issue_id, remote_url, assignee_id, metadata_json,
               ai_summary, ai_suggested_type, ai_suggested_priority, ai_confidence,
               created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                feedback.id,
                feedback.project_id,
                feedback.title,
                feedback.description,
                feedback.type,
                feedback.priority,
                feedback.status,
                feedback.source,
                feedback.remote_issue_id,
                feedback.remote_url,
                feedback.assignee_id,
                json.dumps(feedback.metadata or {}),
                feedback.ai_summary,
                feedback.ai_suggested_type,
                feedback.ai_suggested_priority,
                feedback.ai_confidence,
                feedback.created_at,
                feedback.updated_at,
            ),
        )
        return feedback

    def get_feedback(self, feedback_id: str) -> Feedback | None:
        row = self._conn.execute("SELECT * FROM feedback WHERE id=?", (feedback_id,)).fetchone()
        return self._row_to_feedback(row) if row else None

    def list_feedback(
        self,
        project_id: str | None = None,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Feedback]:
        where, params = self._where(project_id=project_id, status=status)
        rows = self._conn.execute(
            f"SELECT * FROM feedback{where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        ).fetchall()
        return [self._row_to_feedback(r) for r in rows]

    def count_feedback(self, project_id: str | None = None, status: str | None = None) -> int:
        where, params = self._where(project_id=project_id, status=status)
        return self._conn.execute(f"SELECT COUNT(*) FROM feedback{where}", params).fetchone()[0]

    def update_feedback(self, feedback_id: str, **fields) -> Feedback | None:
        values = {k: v for k, v in fields.items() if k in _FEEDBACK_FIELDS}
        if "metadata" in values:
            values["metadata_json"] = json.dumps(values.pop("metadata") or {})
        self._update("feedback", feedback_id, values)
        return self.get_feedback(feedback_id)

    def delete_feedback(self, feedback_id: str) -> bool:
        cur = self._write("DELETE FROM feedback WHERE id=?", (feedback_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------ #
    # Tasks                                                                #
    # ------------------------------------------------------------------ #

    def create_task(self, task: Task) -> Task:
        self._write(
            """
            INSERT INTO tasks
              (id, project_id, title, description, status, priority, due_date,
               feedback_id, parent_task_id, story_points, estimated_hours,
               created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.project_id,
                task.title,
                task.description,
                task.status,
                task.priority,
                task.due_date,
                task.feedback_id,
                task.parent_task_id,
                task.story_points,
                task.estimated_hours,
                task.created_at,
                task.updated_at,
            ),
        )
        return task

    def get_task(self, task_id: str) -> Task | None:
        row = self._conn.execute("SELECT * FROM tasks WHERE id=?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def list_tasks(
        self,
        project_id: str | None = None,
        status: str | None = None,
        feedback_id: str | None = None,
        parent_task_id: str | None = None,
    ) -> list[Task]:
        where, params = self._where(
            project_id=project_id,
            status=status,
            feedback_id=feedback_id,
            parent_task_id=parent_task_id,
        )
        rows = self._conn.execute(
            f"SELECT * FROM tasks{where} ORDER BY created_at DESC, rowid DESC",
            params,
        ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def update_task(self, task_id: str, **fields) -> Task | None:
        values = {k: v for k, v in fields.items() if k in _TASK_FIELDS}
        self._update("tasks", task_id, values)
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> bool:
        cur = self._write("DELETE FROM tasks WHERE id=?", (task_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------ #
    # Comments                                                             #
    # ------------------------------------------------------------------ #

    def create_comment(self, comment: Comment) -> Comment:
        self._insert_comment(comment, "INSERT")
        return comment

    def add_imported_comment(self, comment: Comment) -> bool:
        cur = self._insert_comment(comment, "INSERT OR IGNORE")
        inserted = cur.rowcount > 0
        if not inserted:
            logger.debug(
                "Skipped duplicate remote comment %s on feedback %s",
                comment.remote_comment_id,
                comment.feedback_id,
            )
        return inserted

    def list_comments(self, feedback_id: str) -> list[Comment]:
        rows = self._conn.execute(
            "SELECT * FROM comments WHERE feedback_id=? ORDER BY created_at, rowid",
            (feedback_id,),
        ).fetchall()
        return [self._row_to_comment(r) for r in rows]

    def remote_comment_ids(self, feedback_id: str) -> set[int]:
        rows = self._conn.execute(
            "SELECT remote_comment_id FROM comments WHERE feedback_id=? AND remote_comment_id IS NOT NULL",
            (feedback_id,),
        ).fetchall()
        return {r["remote_comment_id"] for r in rows}

    def set_comment_remote_id(self, comment_id: str, remote_comment_id: int) -> None:
        self._write(
            "UPDATE comments SET remote_comment_id=? WHERE id=?",
            (remote_comment_id, comment_id),
        )

    def delete_comment(self, comment_id: str) -> bool:
        cur = self._write("DELETE FROM comments WHERE id=?", (comment_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _insert_comment(self, comment: Comment, verb: str) -> sqlite3.Cursor:
        return self._write(
            f"""
            {verb} INTO comments
              (id, feedback_id, user_id, content, remote_comment_id, is_from_github, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                comment.id,
                comment.feedback_id,
                comment.user_id,
                comment.content,
                comment.remote_comment_id,
                int(comment.is_from_github),
                comment.created_at,
            ),
        )

    def _write(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute one write statement and commit it while holding the lock."""
        with self._lock:
            try:
                cur = self._conn.execute(sql, params)
                self._conn.commit()
            except sqlite3.Error:
                self._conn.rollback()
                raise
        return cur

    def _update(self, table: str, row_id: str, values: dict, touch: bool = True) -> None:
        if touch:
            values = {**values, "updated_at": utc_now()}
        if not values:
            return
        # Column names come from the per-table whitelists above, never from callers.
        assignments = ", ".join(f"{column}=?" for column in values)
        self._write(
            f"UPDATE {table} SET {assignments} WHERE id=?",
            (*values.values(), row_id),
        )

    @staticmethod
    def _where(**filters) -> tuple[str, tuple]:
        active = {k: v for k, v in filters.items() if v is not None}
        if not active:
            return "", ()
        clause = " AND ".join(f"{column}=?" for column in active)
        return f" WHERE {clause}", tuple(active.values())

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            remote_repo_full_name=row["remote_repo_full_name"],
            api_key=row["api_key"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"] or "",
        )

    @staticmethod
    def _row_to_feedback(row: sqlite3.Row) -> Feedback:
        return Feedback(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row["description"],
            type=row["type"],
            priority=row["priority"],
            status=row["status"],
            source=row["source"],
            remote_issue_id=row["remote_issue_id"],
            remote_url=row["remote_url"],
            assignee_id=row["assignee_id"],
            metadata=json.loads(row["metadata_json"] or "{}"),
            ai_summary=row["ai_summary"],
            ai_suggested_type=row["ai_suggested_type"],
            ai_suggested_priority=row["ai_suggested_priority"],
            ai_confidence=row["ai_confidence"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            priority=row["priority"],
            due_date=row["due_date"],
            feedback_id=row["feedback_id"],
            parent_task_id=row["parent_task_id"],
            story_points=row["story_points"],
            estimated_hours=row["estimated_hours"],
            created_at=row["created_at"] or "",
            updated_at=row["updated_at"] or "",
        )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> Comment:
        return Comment(
            id=row["id"],
            feedback_id=row["feedback_id"],
            user_id=row["user_id"],
            content=row["content"],
            remote_comment_id=row["remote_comment_id"],
            is_from_github=bool(row["is_from_github"]),
            created_at=row["created_at"] or "",
        )
