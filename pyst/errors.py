"""Errors raised by pyst.

Structural and precondition errors end the running command with their message.
Collaborator errors (git, GitHub) are either reported per branch or end the command,
depending on where they happen.
"""

from typing import Optional


class StError(Exception):
    """Base class for all pyst errors."""


# ---- Structural errors ----

class BranchNotTrackedError(StError):
    """A branch was referenced that is not part of the stack tree."""

    def __init__(self, branch_name: str):
        self.branch_name = branch_name
        super().__init__(
            f"Branch `{branch_name}` is not tracked with `pyst`. Track it first with `pyst track`."
        )


class BranchAlreadyTrackedError(StError):
    """The branch is already part of the stack tree."""

    def __init__(self, branch_name: str):
        self.branch_name = branch_name
        super().__init__(f"Branch `{branch_name}` is already tracked with `pyst`.")


class CannotDeleteTrunkError(StError):
    def __init__(self, trunk_name: Optional[str] = None):
        self.trunk_name = trunk_name
        super().__init__("Cannot delete the trunk branch.")


class MissingParentOidCacheError(StError):
    def __init__(self, branch_name: str):
        self.branch_name = branch_name
        super().__init__(f"Branch `{branch_name}` has no cached parent commit.")


class BranchUnavailableError(StError):
    """A tracked branch does not exist in the local repository."""

    def __init__(self, branch_name: str):
        self.branch_name = branch_name
        super().__init__(f"Branch `{branch_name}` was not found in the local git tree.")


# ---- Precondition errors ----

class WorkingTreeDirtyError(StError):
    def __init__(self) -> None:
        super().__init__("Working tree is dirty. Please commit or stash changes before continuing.")


class NeedsRestackError(StError):
    def __init__(self, branch_name: str):
        self.branch_name = branch_name
        super().__init__(
            f"Branch `{branch_name}` needs to be restacked before continuing. "
            "Restack with `pyst restack` before continuing."
        )


class CommitMessageRequiredError(StError):
    def __init__(self) -> None:
        super().__init__("A commit message is required when staging changes (use --message).")


class NotAGitRepositoryError(StError):
    def __init__(self) -> None:
        super().__init__("`pyst` must be used within a git repository.")


class MissingTokenError(StError):
    def __init__(self) -> None:
        super().__init__(
            "No GitHub token found. Try one of:\n"
            "1. Set GITHUB_TOKEN env var\n"
            "2. Run `pyst config`\n"
            "3. Log in with 'gh auth login'"
        )


# ---- Collaborator errors ----

class GitCommandError(StError):
    """A git command failed."""

    def __init__(self, command: str, detail: str = ""):
        self.command = command
        self.detail = detail
        message = f"Git command failed: `git {command}`"
        if detail:
            quoted = "\n".join(f"▌ {line}" for line in detail.strip().splitlines())
            message = f"{message}\n{quoted}"
        super().__init__(message)


class PullRequestNotFoundError(StError):
    def __init__(self, number: int):
        self.number = number
        super().__init__(f"Remote pull request #{number} not found.")


class RemoteNotFoundError(StError):
    def __init__(self, remote_name: str):
        self.remote_name = remote_name
        super().__init__(f"Remote `{remote_name}` not found.")


# ---- Decoding errors ----

class DecodingError(StError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Decoding error: {detail}")
