"""Adapter classes to wrap PyGithub objects with our protocol interfaces."""

from typing import Optional
import logging

from github import Auth, Github
from github.IssueComment import IssueComment
from github.Repository import Repository
from github.PullRequest import PullRequest as PyGithubPullRequest
from github.GithubObject import NotSet

from . import (
    PyGithubProtocol,
    GitHubRepoProtocol,
    GitHubPullRequestProtocol,
    GitHubCommentProtocol,
    GitHubRefProtocol,
)

logger = logging.getLogger(__name__)


class PyGithubCommentAdapter(GitHubCommentProtocol):
    """Adapter for PyGithub IssueComment objects."""

    def __init__(self, comment: IssueComment) -> None:
        self._comment = comment

    @property
    def id(self) -> int:
        return self._comment.id

    def edit(self, body: str) -> None:
        self._comment.edit(body)


class PyGithubPullRequestAdapter(GitHubPullRequestProtocol):
    """Adapter for PyGithub PullRequest objects."""

    def __init__(self, pr: PyGithubPullRequest) -> None:
        self._pr = pr

    @property
    def number(self) -> int:
        return self._pr.number

    @property
    def title(self) -> str:
        return self._pr.title

    @property
    def state(self) -> str:
        return self._pr.state

    @property
    def merged(self) -> bool:
        return self._pr.merged

    @property
    def draft(self) -> bool:
        return bool(self._pr.draft)

    @property
    def base(self) -> GitHubRefProtocol:
        return self._pr.base

    @property
    def head(self) -> GitHubRefProtocol:
        return self._pr.head

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Edit the pull request."""
        # Convert None to NotSet for PyGithub
        self._pr.edit(
            title=title if title is not None else NotSet,
            body=body if body is not None else NotSet,
            state=state if state is not None else NotSet,
            base=base if base is not None else NotSet
        )

    def create_issue_comment(self, body: str) -> GitHubCommentProtocol:
        """Add a comment to the pull request."""
        return PyGithubCommentAdapter(self._pr.create_issue_comment(body))

    def get_issue_comment(self, comment_id: int) -> GitHubCommentProtocol:
        return PyGithubCommentAdapter(self._pr.get_issue_comment(comment_id))


class PyGithubRepoAdapter(GitHubRepoProtocol):
    """Adapter for PyGithub Repository objects."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        """Get a pull request by number."""
        return PyGithubPullRequestAdapter(self._repo.get_pull(number))

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        """Create a new pull request."""
        pr = self._repo.create_pull(
            title=title,
            body=body,
            base=base,
            head=head,
            draft=draft
        )
        return PyGithubPullRequestAdapter(pr)


class PyGithubAdapter(PyGithubProtocol):
    """Adapter for the main PyGithub object."""

    def __init__(self, github: Github) -> None:
        self._github = github

    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        return PyGithubRepoAdapter(self._github.get_repo(full_name_or_id))


def create_pygithub_adapter(token: str, github_host: str = "github.com") -> PyGithubAdapter:
    """Create a real PyGithub client for `github_host`, wrapped in our adapter."""
    if github_host == "github.com":
        client = Github(auth=Auth.Token(token))
    else:
        # GitHub Enterprise serves the REST API under /api/v3
        logger.debug(f"Using GitHub Enterprise API at {github_host}")
        client = Github(base_url=f"https://{github_host}/api/v3", auth=Auth.Token(token))
    return PyGithubAdapter(client)
