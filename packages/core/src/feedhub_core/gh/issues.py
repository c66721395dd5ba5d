"""Remote issue tracker adapter.

TrackerAdapter is the narrow capability the reconciliation engine depends on;
GitHubTracker is its only implementation. Every method makes at most one
logical request and never retries.

"Not applicable" (no bound repository, no token, no linked issue) is reported
as None / False / [] so callers can tell it apart from a real failure, which
raises (GithubException or a requests transport error).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from github import Auth, Github

from feedhub_core.status import REMOTE_CLOSED, to_remote_state

if TYPE_CHECKING:
    from feedhub_store.models import Feedback, Project, User

logger = logging.getLogger(__name__)

ORIGIN_LABEL = "feedback-hub"
DEFAULT_TIMEOUT = 10  # seconds per HTTP request


@dataclass
class RemoteIssue:
    remote_id: int
    url: str


@dataclass
class RemoteComment:
    id: int
    body: str
    author: str | None = None  # remote login


@dataclass
class RemoteCommentRef:
    id: int


def issue_title(feedback: Feedback) -> str:
    return f"[{feedback.type.upper()}] {feedback.title}"


def issue_labels(feedback: Feedback) -> list[str]:
    return [feedback.type, feedback.priority, ORIGIN_LABEL]


def issue_body(feedback: Feedback, author: User | None) -> str:
    if author is not None:
        author_line = f"{author.name} ({author.email})" if author.email else author.name
    else:
        author_line = f"{feedback.source} submission"
    return (
        f"**Author:** {author_line}\n"
        f"**Type:** {feedback.type}\n"
        f"**Priority:** {feedback.priority}\n"
        f"**Feedback ID:** {feedback.id}\n"
        f"\n{feedback.description}\n"
        f"\n---\n*Created via Feedback Hub*"
    )


def comment_body(body: str, author_name: str | None) -> str:
    if not author_name:
        return body
    return f"**{author_name}** commented via Feedback Hub:\n\n{body}"


class TrackerAdapter(ABC):
    @abstractmethod
    def create_issue(self, project: Project, feedback: Feedback, author: User | None) -> RemoteIssue | None:
        """Open an issue for feedback. None when the tracker is disabled for project."""

    @abstractmethod
    def update_issue(self, project: Project, feedback: Feedback) -> bool:
        """Push title and labels. False unless a repository and a linked issue exist."""

    @abstractmethod
    def set_issue_state(self, project: Project, remote_issue_id: int, local_status: str) -> bool:
        """Open or close the issue according to to_remote_state(local_status)."""

    @abstractmethod
    def get_issue_state(self, project: Project, remote_issue_id: int) -> str | None: ...

    @abstractmethod
    def list_comments(self, project: Project, remote_issue_id: int) -> list[RemoteComment]: ...

    @abstractmethod
    def create_comment(
        self,
        project: Project,
        remote_issue_id: int,
        body: str,
        author_name: str | None = None,
    ) -> RemoteCommentRef | None: ...


class GitHubTracker(TrackerAdapter):
    """GitHub Issues over PyGithub.

    The client is built with retries disabled and a bounded request timeout so
    a hung GitHub call cannot stall the triggering request indefinitely.
    """

    def __init__(self, token: str | None, timeout: int = DEFAULT_TIMEOUT):
        self._token = token
        self._timeout = timeout
        self._gh: Github | None = None

    def _client(self) -> Github | None:
        if not self._token:
            return None
        if self._gh is None:
            self._gh = Github(auth=Auth.Token(self._token), timeout=self._timeout, retry=None)
        return self._gh

    def _repo(self, project: Project):
        gh = self._client()
        if gh is None or not project.remote_repo_full_name:
            return None
        return gh.get_repo(project.remote_repo_full_name)

    def create_issue(self, project: Project, feedback: Feedback, author: User | None) -> RemoteIssue | None:
        repo = self._repo(project)
        if repo is None:
            return None
        issue = repo.create_issue(
            title=issue_title(feedback),
            body=issue_body(feedback, author),
            labels=issue_labels(feedback),
        )
        logger.debug("Created issue #%d in %s", issue.number, project.remote_repo_full_name)
        return RemoteIssue(remote_id=issue.number, url=issue.html_url)

    def update_issue(self, project: Project, feedback: Feedback) -> bool:
        if not feedback.remote_issue_id:
            return False
        repo = self._repo(project)
        if repo is None:
            return False
        issue = repo.get_issue(feedback.remote_issue_id)
        issue.edit(title=issue_title(feedback), labels=issue_labels(feedback))
        return True

    def set_issue_state(self, project: Project, remote_issue_id: int, local_status: str) -> bool:
        repo = self._repo(project)
        if repo is None:
            return False
        state = to_remote_state(local_status)
        reason = "not_planned" if state == REMOTE_CLOSED else "reopened"
        repo.get_issue(remote_issue_id).edit(state=state, state_reason=reason)
        return True

    def get_issue_state(self, project: Project, remote_issue_id: int) -> str | None:
        repo = self._repo(project)
        if repo is None:
            return None
        return repo.get_issue(remote_issue_id).state

    def list_comments(self, project: Project, remote_issue_id: int) -> list[RemoteComment]:
        repo = self._repo(project)
        if repo is None:
            return []
        return [
            RemoteComment(
                id=c.id,
                body=c.body or "",
                author=c.user.login if c.user else None,
            )
            for c in repo.get_issue(remote_issue_id).get_comments()
        ]

    def create_comment(
        self,
        project: Project,
        remote_issue_id: int,
        body: str,
        author_name: str | None = None,
    ) -> RemoteCommentRef | None:
        repo = self._repo(project)
        if repo is None:
            return None
        comment = repo.get_issue(remote_issue_id).create_comment(comment_body(body, author_name))
        return RemoteCommentRef(id=comment.id)


def get_tracker(config: dict) -> TrackerAdapter:
    return GitHubTracker(
        token=config.get("github_token"),
        timeout=config.get("tracker_timeout") or DEFAULT_TIMEOUT,
    )
