"""GitHub interfaces and implementation."""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

import yaml
from github import GithubException

from ..config.models import PystConfig
from ..errors import PullRequestNotFoundError, StError
from ..util import ensure

# Get module logger
logger = logging.getLogger(__name__)

@dataclass
class PullRequest:
    """Pull request info."""
    number: int
    state: str  # "open" or "closed"
    base_ref: str
    head_sha: str
    merged: bool = False
    draft: bool = False
    title: str = ""

    @property
    def is_closed(self) -> bool:
        """Whether the PR was closed or merged and can no longer take updates."""
        return self.merged or self.state == "closed"

    def __str__(self) -> str:
        return f"PR #{self.number} - {self.title}"

# Define protocols for GitHub objects
@runtime_checkable
class GitHubRefProtocol(Protocol):
    """Protocol for GitHub ref objects (base/head references)."""
    @property
    def ref(self) -> str:
        """Get the ref name (e.g., 'main', 'feature-branch')."""
        ...

    @property
    def sha(self) -> str:
        """Get the commit SHA."""
        ...

@runtime_checkable
class GitHubCommentProtocol(Protocol):
    """Protocol for issue comments on a pull request."""
    @property
    def id(self) -> int:
        ...

    def edit(self, body: str) -> None:
        ...

@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        ...

    @property
    def title(self) -> str:
        ...

    @property
    def state(self) -> str:
        """Get the PR state (open, closed)."""
        ...

    @property
    def merged(self) -> bool:
        ...

    @property
    def draft(self) -> bool:
        ...

    @property
    def base(self) -> GitHubRefProtocol:
        ...

    @property
    def head(self) -> GitHubRefProtocol:
        ...

    def edit(self, title: Optional[str] = None, body: Optional[str] = None,
             state: Optional[str] = None, base: Optional[str] = None) -> None:
        """Edit the pull request."""
        ...

    def create_issue_comment(self, body: str) -> GitHubCommentProtocol:
        """Add a comment to the pull request."""
        ...

    def get_issue_comment(self, comment_id: int) -> GitHubCommentProtocol:
        """Get a comment on the pull request by id."""
        ...

@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    def get_pull(self, number: int) -> GitHubPullRequestProtocol:
        """Get a pull request by number."""
        ...

    def create_pull(self, title: str, body: str, base: str, head: str,
                    draft: bool = False) -> GitHubPullRequestProtocol:
        """Create a new pull request."""
        ...

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake).

    This protocol defines the interface that both the real PyGithub library
    (through `pyst.github.adapters`) and the test fake must satisfy.
    """
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        ...

def find_github_token(config: Optional[PystConfig] = None) -> Optional[str]:
    """Find GitHub token from env var, the user config, or the gh CLI config."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    if config is not None and config.user.github_token:
        return config.user.github_token

    # Then try gh CLI config at ~/.config/gh/hosts.yml
    host = config.repo.github_host if config is not None else "github.com"
    gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
    if gh_config_path.exists():
        try:
            with open(gh_config_path, "r") as f:
                gh_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading gh CLI config: {e}")
            return None
        if isinstance(gh_config, dict) and isinstance(gh_config.get(host), dict):
            host_config: Dict[str, object] = gh_config[host]
            oauth_token = host_config.get("oauth_token")
            if isinstance(oauth_token, str):
                return oauth_token
    return None

class GitHubClient:
    """GitHub client implementation."""
    def __init__(self, config: PystConfig, github_client: PyGithubProtocol):
        """Initialize with config and a GitHub client implementation (real or fake)."""
        self.config = config
        self.client = github_client
        self._repo: Optional[GitHubRepoProtocol] = None

    @property
    def full_name(self) -> str:
        owner = self.config.repo.github_repo_owner
        name = self.config.repo.github_repo_name
        if not owner or not name:
            raise StError("GitHub repository unknown - set github_repo_owner/github_repo_name "
                          "or add a GitHub remote")
        return f"{owner}/{name}"

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            self._repo = self.client.get_repo(self.full_name)
        return ensure(self._repo)

    def _get_pull(self, number: int) -> GitHubPullRequestProtocol:
        try:
            return self.repo.get_pull(number)
        except GithubException as e:
            if e.status == 404:
                raise PullRequestNotFoundError(number) from e
            raise

    def get_pull_request(self, number: int) -> PullRequest:
        """Fetch a pull request by number."""
        logger.info(f"> github get #{number}")
        gh_pr = self._get_pull(number)
        pr = PullRequest(
            number=gh_pr.number,
            state=gh_pr.state,
            base_ref=gh_pr.base.ref,
            head_sha=gh_pr.head.sha,
            merged=bool(gh_pr.merged),
            draft=bool(gh_pr.draft),
            title=gh_pr.title,
        )
        logger.debug(f"  #{number}: state={pr.state} merged={pr.merged} base={pr.base_ref} head={pr.head_sha[:8]}")
        return pr

    def create_pull_request(self, title: str, head: str, base: str, body: str, draft: bool) -> PullRequest:
        """Create a pull request for `head` targeting `base`."""
        logger.info(f"> github create {head} -> {base} : {title}")
        gh_pr = self.repo.create_pull(title=title, body=body, base=base, head=head, draft=draft)
        return PullRequest(
            number=gh_pr.number,
            state=gh_pr.state,
            base_ref=base,
            head_sha=gh_pr.head.sha,
            draft=draft,
            title=title,
        )

    def update_base(self, number: int, base: str) -> None:
        logger.info(f"> github update #{number} base : {base}")
        self._get_pull(number).edit(base=base)

    def create_comment(self, number: int, body: str) -> int:
        """Comment on a pull request, returning the new comment's id."""
        logger.info(f"> github add comment #{number}")
        comment = self._get_pull(number).create_issue_comment(body)
        return comment.id

    def update_comment(self, number: int, comment_id: int, body: str) -> None:
        logger.info(f"> github update comment #{number} ({comment_id})")
        self._get_pull(number).get_issue_comment(comment_id).edit(body)

    def pull_request_url(self, number: int) -> str:
        return f"https://{self.config.repo.github_host}/{self.full_name}/pull/{number}"
