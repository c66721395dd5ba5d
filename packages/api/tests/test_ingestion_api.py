"""Tests for the public ingestion API."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from feedhub_api.app import create_app
from feedhub_core.gh.issues import RemoteComment, RemoteIssue, TrackerAdapter
from feedhub_core.sync import WARN_ISSUE_FAILED, ReconciliationEngine
from feedhub_store.models import Feedback, Project, User
from feedhub_store.sqlite import SQLiteStore

ISSUE_URL = "https://github.com/owner/repo/issues/7"
KEY = {"X-API-Key": "fhk_test"}


@pytest.fixture
def store(tmp_path):
    s = SQLiteStore(db_path=str(tmp_path / "hub.db"))
    yield s
    s.close()


@pytest.fixture
def tracker():
    t = MagicMock(spec=TrackerAdapter)
    t.create_issue.return_value = RemoteIssue(remote_id=7, url=ISSUE_URL)
    t.list_comments.return_value = []
    return t


@pytest.fixture
def project(store):
    return store.create_project(Project(name="Web", api_key="fhk_test", remote_repo_full_name="owner/repo"))


@pytest.fixture
def client(store, tracker, project):
    engine = ReconciliationEngine(store, tracker, analyzer_factory=lambda cfg: None)
    return TestClient(create_app(engine))


def _submit(client, **overrides):
    body = {
        "title": "Crash on save",
        "description": "App crashes when saving a draft",
        "type": "bug",
        "priority": "high",
    }
    body.update(overrides)
    return client.post("/api/v1/feedback", json=body, headers=KEY)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestApiKey:
    def test_missing_key(self, client):
        response = client.get("/api/v1/feedback")
        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized. Missing API key."

    def test_unknown_key(self, client):
        response = client.get("/api/v1/feedback", headers={"X-API-Key": "fhk_wrong"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized. Invalid API key."

    def test_inactive_project_rejected(self, client, store, project):
        store.update_project(project.id, is_active=False)
        assert _submit(client).status_code == 401


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class TestSubmitFeedback:
    def test_creates_and_links_issue(self, client, tracker):
        response = _submit(client)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "OPEN"
        assert data["type"] == "bug"
        assert data["priority"] == "high"
        assert data["source"] == "api"
        assert data["remote_issue_id"] == 7
        assert data["remote_url"] == ISSUE_URL
        assert data["warning"] is None
        tracker.create_issue.assert_called_once()

    def test_remote_failure_still_created(self, client, tracker, store, project):
        tracker.create_issue.side_effect = RuntimeError("GitHub down")

        response = _submit(client)

        assert response.status_code == 201
        assert response.json()["warning"] == WARN_ISSUE_FAILED
        assert store.count_feedback(project.id) == 1

    def test_validation_errors(self, client, tracker):
        response = _submit(client, title="", priority="urgent")

        assert response.status_code == 400
        errors = response.json()["detail"]["errors"]
        assert set(errors) == {"title", "priority"}
        tracker.create_issue.assert_not_called()

    def test_metadata_roundtrip(self, client):
        response = _submit(client, metadata={"browser": "firefox"})
        assert response.json()["metadata"] == {"browser": "firefox"}


class TestListFeedback:
    def test_paginates(self, client):
        for i in range(3):
            _submit(client, title=f"Item {i}")

        body = client.get("/api/v1/feedback", params={"page": 2, "limit": 2}, headers=KEY).json()

        assert body["total"] == 3
        assert body["page"] == 2
        assert len(body["data"]) == 1

    def test_filters_by_status(self, client):
        first = _submit(client).json()
        _submit(client, title="Other")
        client.patch(f"/api/v1/feedback/{first['id']}", json={"status": "RESOLVED"}, headers=KEY)

        body = client.get("/api/v1/feedback", params={"status": "RESOLVED"}, headers=KEY).json()

        assert [f["id"] for f in body["data"]] == [first["id"]]

    def test_only_own_project(self, client, store):
        other = store.create_project(Project(name="Other", api_key="fhk_other"))
        store.create_feedback(Feedback(project_id=other.id, title="x", description="y"))

        assert client.get("/api/v1/feedback", headers=KEY).json()["total"] == 0


class TestPatchFeedback:
    def test_status_change_closes_issue(self, client, tracker):
        fb = _submit(client).json()

        response = client.patch(f"/api/v1/feedback/{fb['id']}", json={"status": "RESOLVED"}, headers=KEY)

        assert response.status_code == 200
        assert response.json()["status"] == "RESOLVED"
        assert tracker.set_issue_state.call_args.args[1:] == (7, "RESOLVED")

    def test_priority_change(self, client):
        fb = _submit(client).json()
        response = client.patch(f"/api/v1/feedback/{fb['id']}", json={"priority": "critical"}, headers=KEY)
        assert response.json()["priority"] == "critical"

    def test_unknown_assignee_is_400(self, client, store):
        fb = _submit(client).json()

        response = client.patch(f"/api/v1/feedback/{fb['id']}", json={"assignee_id": "nope"}, headers=KEY)

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == {"assignee_id": "Unknown user."}
        assert store.get_feedback(fb["id"]).assignee_id is None

    def test_assign_known_user(self, client, store):
        user = store.create_user(User(name="Ada"))
        fb = _submit(client).json()

        response = client.patch(f"/api/v1/feedback/{fb['id']}", json={"assignee_id": user.id}, headers=KEY)

        assert response.status_code == 200
        assert response.json()["assignee_id"] == user.id

    def test_bad_status(self, client):
        fb = _submit(client).json()
        response = client.patch(f"/api/v1/feedback/{fb['id']}", json={"status": "WONTFIX"}, headers=KEY)
        assert response.status_code == 400

    def test_other_project_is_404(self, client, store):
        other = store.create_project(Project(name="Other", api_key="fhk_other"))
        foreign = store.create_feedback(Feedback(project_id=other.id, title="x", description="y"))

        response = client.patch(f"/api/v1/feedback/{foreign.id}", json={"status": "CLOSED"}, headers=KEY)

        assert response.status_code == 404
        assert store.get_feedback(foreign.id).status == "OPEN"

    def test_unknown_id_is_404(self, client):
        assert client.patch("/api/v1/feedback/nope", json={"status": "CLOSED"}, headers=KEY).status_code == 404


class TestSyncComments:
    def test_imports_once(self, client, tracker):
        fb = _submit(client).json()
        tracker.list_comments.return_value = [RemoteComment(id=1, body="Same here", author="octocat")]

        first = client.post(f"/api/v1/feedback/{fb['id']}/comments/sync", headers=KEY).json()
        second = client.post(f"/api/v1/feedback/{fb['id']}/comments/sync", headers=KEY).json()

        assert first == {"synced": 1, "warning": None}
        assert second["synced"] == 0

    def test_fetch_failure_reported(self, client, tracker):
        fb = _submit(client).json()
        tracker.list_comments.side_effect = RuntimeError("timeout")

        body = client.post(f"/api/v1/feedback/{fb['id']}/comments/sync", headers=KEY).json()

        assert body["synced"] == 0
        assert body["warning"]


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TestTasks:
    def test_create_and_list(self, client):
        fb = _submit(client).json()

        response = client.post(
            "/api/v1/tasks",
            json={"title": "Fix save", "due_date": "2026-11-01", "feedback_id": fb["id"]},
            headers=KEY,
        )

        assert response.status_code == 201
        assert response.json()["feedback_id"] == fb["id"]
        listed = client.get("/api/v1/tasks", headers=KEY).json()["data"]
        assert [t["title"] for t in listed] == ["Fix save"]

    def test_invalid_due_date(self, client):
        response = client.post("/api/v1/tasks", json={"title": "T", "due_date": "soon"}, headers=KEY)
        assert response.status_code == 400
        assert "due_date" in response.json()["detail"]["errors"]

    def test_foreign_feedback_is_404(self, client, store):
        other = store.create_project(Project(name="Other", api_key="fhk_other"))
        foreign = store.create_feedback(Feedback(project_id=other.id, title="x", description="y"))

        response = client.post("/api/v1/tasks", json={"title": "T", "feedback_id": foreign.id}, headers=KEY)

        assert response.status_code == 404
