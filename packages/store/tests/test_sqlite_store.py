"""Tests for SQLiteStore."""

from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from feedhub_store.models import Comment, Feedback, Project, Task, User
from feedhub_store.sqlite import SQLiteStore


def _store(tmp_path) -> SQLiteStore:
    return SQLiteStore(db_path=str(tmp_path / "test.db"))


def _seed(store: SQLiteStore, repo: str | None = "owner/repo"):
    project = store.create_project(Project(name="Web", api_key="fhk_test", remote_repo_full_name=repo))
    user = store.create_user(User(name="Ada", email="ada@example.com"))
    feedback = store.create_feedback(
        Feedback(project_id=project.id, title="Crash on save", description="App crashes when saving a draft")
    )
    return project, user, feedback


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjects:
    def test_create_and_get(self, tmp_path):
        store = _store(tmp_path)
        project, _, _ = _seed(store)

        loaded = store.get_project(project.id)
        assert loaded.name == "Web"
        assert loaded.remote_repo_full_name == "owner/repo"
        assert loaded.is_active is True
        store.close()

    def test_get_by_api_key_only_returns_active(self, tmp_path):
        store = _store(tmp_path)
        project, _, _ = _seed(store)

        assert store.get_project_by_api_key("fhk_test").id == project.id
        store.update_project(project.id, is_active=False)
        assert store.get_project_by_api_key("fhk_test") is None
        store.close()

    def test_unknown_api_key(self, tmp_path):
        store = _store(tmp_path)
        _seed(store)
        assert store.get_project_by_api_key("fhk_nope") is None
        store.close()

    def test_update_project_ignores_unknown_fields(self, tmp_path):
        store = _store(tmp_path)
        project, _, _ = _seed(store)

        updated = store.update_project(project.id, remote_repo_full_name=None, id="hijack")
        assert updated.id == project.id
        assert updated.remote_repo_full_name is None
        store.close()


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class TestFeedback:
    def test_defaults_roundtrip(self, tmp_path):
        store = _store(tmp_path)
        _, _, feedback = _seed(store)

        loaded = store.get_feedback(feedback.id)
        assert loaded.status == "OPEN"
        assert loaded.type == "bug"
        assert loaded.priority == "medium"
        assert loaded.remote_issue_id is None
        assert loaded.metadata == {}
        store.close()

    def test_update_sets_remote_link_and_bumps_updated_at(self, tmp_path):
        store = _store(tmp_path)
        _, _, feedback = _seed(store)

        updated = store.update_feedback(feedback.id, remote_issue_id=7, remote_url="https://github.com/o/r/issues/7")
        assert updated.remote_issue_id == 7
        assert updated.remote_url.endswith("/7")
        assert updated.updated_at >= feedback.updated_at
        store.close()

    def test_update_missing_returns_none(self, tmp_path):
        store = _store(tmp_path)
        assert store.update_feedback("missing", status="CLOSED") is None
        store.close()

    def test_metadata_is_json(self, tmp_path):
        store = _store(tmp_path)
        _, _, feedback = _seed(store)

        store.update_feedback(feedback.id, metadata={"browser": "firefox", "version": 3})
        assert store.get_feedback(feedback.id).metadata == {"browser": "firefox", "version": 3}
        store.close()

    def test_list_filters_and_counts(self, tmp_path):
        store = _store(tmp_path)
        project, _, first = _seed(store)
        second = store.create_feedback(Feedback(project_id=project.id, title="B", description="b"))
        store.update_feedback(second.id, status="RESOLVED")

        assert store.count_feedback(project.id) == 2
        assert [f.id for f in store.list_feedback(project.id, status="RESOLVED")] == [second.id]
        assert store.count_feedback(project.id, status="OPEN") == 1
        assert store.list_feedback(project.id, limit=1, offset=1)[0].id in {first.id, second.id}
        store.close()

    def test_delete_removes_comments_and_detaches_tasks(self, tmp_path):
        store = _store(tmp_path)
        project, user, feedback = _seed(store)
        store.create_comment(Comment(feedback_id=feedback.id, user_id=user.id, content="hi"))
        task = store.create_task(Task(project_id=project.id, title="Fix", feedback_id=feedback.id))

        assert store.delete_feedback(feedback.id) is True
        assert store.get_feedback(feedback.id) is None
        assert store.list_comments(feedback.id) == []
        assert store.get_task(task.id).feedback_id is None
        store.close()

    def test_delete_missing_returns_false(self, tmp_path):
        store = _store(tmp_path)
        assert store.delete_feedback("missing") is False
        store.close()


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TestTasks:
    def test_list_by_parent(self, tmp_path):
        store = _store(tmp_path)
        project, _, _ = _seed(store)
        parent = store.create_task(Task(project_id=project.id, title="Parent"))
        child = store.create_task(Task(project_id=project.id, title="Child", parent_task_id=parent.id))

        assert [t.id for t in store.list_tasks(parent_task_id=parent.id)] == [child.id]
        store.close()

    def test_deleting_parent_deletes_subtasks(self, tmp_path):
        store = _store(tmp_path)
        project, _, _ = _seed(store)
        parent = store.create_task(Task(project_id=project.id, title="Parent"))
        child = store.create_task(Task(project_id=project.id, title="Child", parent_task_id=parent.id))

        store.delete_task(parent.id)
        assert store.get_task(child.id) is None
        store.close()

    def test_update_status(self, tmp_path):
        store = _store(tmp_path)
        project, _, _ = _seed(store)
        task = store.create_task(Task(project_id=project.id, title="T"))

        assert store.update_task(task.id, status="done").status == "done"
        assert store.list_tasks(project.id, status="done")[0].id == task.id
        store.close()


# ---------------------------------------------------------------------------
# Comments and the remote comment dedup key
# ---------------------------------------------------------------------------


class TestComments:
    def test_imported_comment_is_inserted_once(self, tmp_path):
        store = _store(tmp_path)
        _, user, feedback = _seed(store)

        def imported():
            return Comment(
                feedback_id=feedback.id, user_id=user.id, content="x", remote_comment_id=101, is_from_github=True
            )

        assert store.add_imported_comment(imported()) is True
        assert store.add_imported_comment(imported()) is False
        assert len(store.list_comments(feedback.id)) == 1
        store.close()

    def test_same_remote_id_allowed_on_different_feedback(self, tmp_path):
        store = _store(tmp_path)
        project, user, feedback = _seed(store)
        other = store.create_feedback(Feedback(project_id=project.id, title="B", description="b"))

        assert store.add_imported_comment(
            Comment(feedback_id=feedback.id, user_id=user.id, content="x", remote_comment_id=5)
        )
        assert store.add_imported_comment(
            Comment(feedback_id=other.id, user_id=user.id, content="x", remote_comment_id=5)
        )
        store.close()

    def test_local_comments_without_remote_id_do_not_collide(self, tmp_path):
        store = _store(tmp_path)
        _, user, feedback = _seed(store)

        store.create_comment(Comment(feedback_id=feedback.id, user_id=user.id, content="one"))
        store.create_comment(Comment(feedback_id=feedback.id, user_id=user.id, content="two"))
        assert [c.content for c in store.list_comments(feedback.id)] == ["one", "two"]
        assert store.remote_comment_ids(feedback.id) == set()
        store.close()

    def test_set_comment_remote_id(self, tmp_path):
        store = _store(tmp_path)
        _, user, feedback = _seed(store)
        comment = store.create_comment(Comment(feedback_id=feedback.id, user_id=user.id, content="hi"))

        store.set_comment_remote_id(comment.id, 900)
        assert store.remote_comment_ids(feedback.id) == {900}
        assert store.list_comments(feedback.id)[0].is_from_github is False
        store.close()

    def test_persists_across_connections(self, tmp_path):
        db = str(tmp_path / "shared.db")
        store = SQLiteStore(db_path=db)
        _, _, feedback = _seed(store)
        store.close()

        reopened = SQLiteStore(db_path=db)
        assert reopened.get_feedback(feedback.id).title == "Crash on save"
        assert reopened.first_user().name == "Ada"
        reopened.close()

    def test_concurrent_imports_from_worker_threads(self, tmp_path):
        store = _store(tmp_path)
        _, user, feedback = _seed(store)

        def import_all(_):
            return sum(
                store.add_imported_comment(
                    Comment(feedback_id=feedback.id, user_id=user.id, content="x", remote_comment_id=rid)
                )
                for rid in range(25)
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            inserted = sum(pool.map(import_all, range(8)))

        assert inserted == 25
        assert len(store.list_comments(feedback.id)) == 25
        store.close()

    def test_failed_write_leaves_store_usable(self, tmp_path):
        store = _store(tmp_path)
        _, user, feedback = _seed(store)

        with pytest.raises(sqlite3.IntegrityError):
            store.update_feedback(feedback.id, assignee_id="missing-user")

        store.create_comment(Comment(feedback_id=feedback.id, user_id=user.id, content="still works"))
        assert store.get_feedback(feedback.id).assignee_id is None
        assert len(store.list_comments(feedback.id)) == 1
        store.close()
