"""Tests for the GitHub tracker adapter."""

from unittest.mock import MagicMock

import pytest
from github import GithubException

from feedhub_core.gh.issues import (
    ORIGIN_LABEL,
    GitHubTracker,
    RemoteComment,
    get_tracker,
    issue_body,
    issue_labels,
    issue_title,
)
from feedhub_store.models import Feedback, Project, User


def _project(repo="owner/repo"):
    return Project(name="Web", api_key="fhk_x", remote_repo_full_name=repo)


def _feedback(remote_issue_id=None):
    return Feedback(
        project_id="p1",
        title="Crash on save",
        description="App crashes when saving a draft",
        type="bug",
        priority="high",
        remote_issue_id=remote_issue_id,
    )


def _tracker(mocker, token="tok"):
    """Return (tracker, repo mock) with PyGithub patched out."""
    gh_cls = mocker.patch("feedhub_core.gh.issues.Github")
    repo = MagicMock()
    gh_cls.return_value.get_repo.return_value = repo
    return GitHubTracker(token=token, timeout=3), repo, gh_cls


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


class TestIssueFormatting:
    def test_title_prefixes_type(self):
        assert issue_title(_feedback()) == "[BUG] Crash on save"

    def test_labels_carry_type_priority_and_origin(self):
        assert issue_labels(_feedback()) == ["bug", "high", ORIGIN_LABEL]

    def test_body_includes_author_and_description(self):
        fb = _feedback()
        body = issue_body(fb, User(name="Ada", email="ada@example.com"))
        assert "**Author:** Ada (ada@example.com)" in body
        assert fb.id in body
        assert "App crashes when saving a draft" in body
        assert "Created via Feedback Hub" in body

    def test_body_without_author_names_source(self):
        fb = _feedback()
        fb.source = "api"
        assert "**Author:** api submission" in issue_body(fb, None)


# ---------------------------------------------------------------------------
# Not-applicable paths never touch the network
# ---------------------------------------------------------------------------


class TestNotApplicable:
    def test_no_token_create_returns_none(self, mocker):
        tracker, _, gh_cls = _tracker(mocker, token=None)
        assert tracker.create_issue(_project(), _feedback(), None) is None
        gh_cls.assert_not_called()

    def test_no_repo_create_returns_none(self, mocker):
        tracker, repo, _ = _tracker(mocker)
        assert tracker.create_issue(_project(repo=None), _feedback(), None) is None
        repo.create_issue.assert_not_called()

    def test_update_without_issue_returns_false(self, mocker):
        tracker, repo, _ = _tracker(mocker)
        assert tracker.update_issue(_project(), _feedback(remote_issue_id=None)) is False
        repo.get_issue.assert_not_called()

    def test_update_without_repo_returns_false(self, mocker):
        tracker, _, _ = _tracker(mocker)
        assert tracker.update_issue(_project(repo=None), _feedback(remote_issue_id=3)) is False

    def test_list_comments_without_repo_is_empty(self, mocker):
        tracker, _, _ = _tracker(mocker)
        assert tracker.list_comments(_project(repo=None), 3) == []

    def test_create_comment_without_token_is_none(self, mocker):
        tracker, _, _ = _tracker(mocker, token=None)
        assert tracker.create_comment(_project(), 3, "hi", "Ada") is None

    def test_set_state_without_repo_is_false(self, mocker):
        tracker, _, _ = _tracker(mocker)
        assert tracker.set_issue_state(_project(repo=None), 3, "CLOSED") is False

    def test_get_state_without_token_is_none(self, mocker):
        tracker, _, _ = _tracker(mocker, token="")
        assert tracker.get_issue_state(_project(), 3) is None


# ---------------------------------------------------------------------------
# Remote calls
# ---------------------------------------------------------------------------


class TestGitHubCalls:
    def test_client_built_with_timeout_and_no_retry(self, mocker):
        tracker, _, gh_cls = _tracker(mocker)
        tracker.get_issue_state(_project(), 1)
        kwargs = gh_cls.call_args.kwargs
        assert kwargs["timeout"] == 3
        assert kwargs["retry"] is None

    def test_create_issue(self, mocker):
        tracker, repo, _ = _tracker(mocker)
        repo.create_issue.return_value = MagicMock(number=12, html_url="https://github.com/owner/repo/issues/12")

        result = tracker.create_issue(_project(), _feedback(), User(name="Ada"))

        assert result.remote_id == 12
        assert result.url.endswith("/issues/12")
        kwargs = repo.create_issue.call_args.kwargs
        assert kwargs["title"] == "[BUG] Crash on save"
        assert kwargs["labels"] == ["bug", "high", "feedback-hub"]

    def test_update_issue_pushes_title_and_labels(self, mocker):
        tracker, repo, _ = _tracker(mocker)

        assert tracker.update_issue(_project(), _feedback(remote_issue_id=12)) is True
        repo.get_issue.assert_called_once_with(12)
        repo.get_issue.return_value.edit.assert_called_once_with(
            title="[BUG] Crash on save", labels=["bug", "high", "feedback-hub"]
        )

    @pytest.mark.parametrize(
        "status,state,reason",
        [
            ("RESOLVED", "closed", "not_planned"),
            ("CLOSED", "closed", "not_planned"),
            ("OPEN", "open", "reopened"),
            ("ASSIGNED", "open", "reopened"),
        ],
    )
    def test_set_issue_state_uses_status_mapping(self, mocker, status, state, reason):
        tracker, repo, _ = _tracker(mocker)

        assert tracker.set_issue_state(_project(), 12, status) is True
        repo.get_issue.return_value.edit.assert_called_once_with(state=state, state_reason=reason)

    def test_list_comments_maps_fields(self, mocker):
        tracker, repo, _ = _tracker(mocker)
        with_user = MagicMock(id=1, body="First")
        with_user.user.login = "octocat"
        ghost = MagicMock(id=2, body=None, user=None)
        repo.get_issue.return_value.get_comments.return_value = [with_user, ghost]

        result = tracker.list_comments(_project(), 12)

        assert result == [RemoteComment(id=1, body="First", author="octocat"), RemoteComment(id=2, body="", author=None)]

    def test_create_comment_prefixes_author(self, mocker):
        tracker, repo, _ = _tracker(mocker)
        repo.get_issue.return_value.create_comment.return_value = MagicMock(id=555)

        ref = tracker.create_comment(_project(), 12, "Fixed in 1.2", "Ada")

        assert ref.id == 555
        body = repo.get_issue.return_value.create_comment.call_args.args[0]
        assert body == "**Ada** commented via Feedback Hub:\n\nFixed in 1.2"

    def test_transport_errors_propagate(self, mocker):
        tracker, repo, _ = _tracker(mocker)
        repo.create_issue.side_effect = GithubException(401, {"message": "Bad credentials"}, None)

        with pytest.raises(GithubException):
            tracker.create_issue(_project(), _feedback(), None)


def test_get_tracker_reads_config():
    tracker = get_tracker({"github_token": "tok", "tracker_timeout": 4})
    assert isinstance(tracker, GitHubTracker)
    assert tracker._token == "tok"
    assert tracker._timeout == 4
