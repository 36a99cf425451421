"""Common types used across the codebase."""

from pathlib import Path
from typing import List, Literal, NewType, Optional, Protocol, runtime_checkable

# Tip of a branch, as a full hex object id
CommitHash = NewType('CommitHash', str)

# How `create` stages changes before committing
StageMode = Literal['all', 'update']


@runtime_checkable
class GitInterface(Protocol):
    """Git primitives the stack engine relies on.

    Every operation either succeeds or raises; failing commands raise
    `pyst.errors.GitCommandError`.
    """

    @property
    def git_dir(self) -> Path:
        """Path of the repository's `.git` directory."""
        ...

    def current_branch_name(self) -> str:
        """Name of the checked out branch."""
        ...

    def branch_oid(self, branch_name: str) -> Optional[CommitHash]:
        """Tip of a local branch, or None if the branch does not exist."""
        ...

    def local_branches(self) -> List[str]:
        ...

    def is_working_tree_clean(self) -> bool:
        ...

    def checkout_branch(self, branch_name: str) -> None:
        ...

    def create_branch(self, branch_name: str, start_point: str, checkout: bool = False) -> None:
        """Create a branch at `start_point`, optionally switching to it with local changes."""
        ...

    def delete_branch(self, branch_name: str) -> None:
        ...

    def stage_changes(self, mode: StageMode) -> None:
        ...

    def commit(self, message: str) -> None:
        ...

    def rebase_branch_onto(self, branch_name: str, onto: str) -> None:
        ...

    def abort_rebase(self) -> None:
        ...

    def is_rebase_in_progress(self) -> bool:
        ...

    def push_branch(self, branch_name: str, remote_name: str, force: bool = False) -> None:
        ...

    def pull_branch(self, branch_name: str, remote_name: str) -> None:
        ...

    def set_target_to_upstream_ref(self, branch_name: str, remote_name: str) -> None:
        ...

    def remote_url(self, remote_name: str) -> str:
        ...
