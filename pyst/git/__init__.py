"""Git interfaces and implementation."""

import os
import shlex
import logging
from pathlib import Path
from typing import List, Optional, Tuple
import git
from git.exc import GitCommandError as GitPythonCommandError, InvalidGitRepositoryError, NoSuchPathError
from ..errors import (
    DecodingError, GitCommandError, NotAGitRepositoryError, RemoteNotFoundError, WorkingTreeDirtyError,
)
from ..typing import CommitHash, GitInterface, StageMode
from ..config.models import PystConfig

# Get module logger
logger = logging.getLogger(__name__)

__all__ = ['RealGit', 'GitInterface', 'parse_remote_url']

def parse_remote_url(url: str) -> Tuple[str, str]:
    """Parse a GitHub remote URL into an (owner, repository) pair.

    Supports SSH (`git@github.com:owner/repo.git`) and HTTPS
    (`https://github.com/owner/repo.git`) remotes.
    """
    url = url.strip()
    if url.startswith("git@"):
        _, sep, path = url.partition(":")
        if not sep or not path:
            raise DecodingError("Invalid SSH URL format.")
        parts = path.split("/")
    elif url.startswith("https://"):
        parts = url[len("https://"):].split("/")[1:]
    else:
        raise DecodingError("Unsupported remote URL format.")

    parts = [p for p in parts if p]
    if not parts:
        raise DecodingError("Organization not found.")
    if len(parts) < 2:
        raise DecodingError("Repository not found while decoding remote URL.")
    owner, repo = parts[-2], parts[-1]
    if repo.endswith(".git"):
        repo = repo[:-len(".git")]
    if not repo:
        raise DecodingError("Repository not found while decoding remote URL.")
    return owner, repo

class RealGit:
    """Real Git implementation on top of GitPython."""
    def __init__(self, config: PystConfig, path: Optional[str] = None):
        """Open the repository containing `path` (default: the working directory)."""
        self.config: PystConfig = config
        try:
            self.repo = git.Repo(path or os.getcwd(), search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise NotAGitRepositoryError()

    @property
    def git_dir(self) -> Path:
        return Path(self.repo.git_dir)

    def run_cmd(self, command: str) -> str:
        """Run a git command given as a single string, e.g. `rebase main`."""
        return self._run(*shlex.split(command.strip()))

    def _run(self, *args: str) -> str:
        cmd_str = " ".join(args)
        if self.config.user.log_git_commands:
            logger.info(f"> git {cmd_str}")
        else:
            logger.debug(f"> git {cmd_str}")

        method = getattr(self.repo.git, args[0].replace('-', '_'))
        try:
            result = method(*args[1:])
        except GitPythonCommandError as e:
            raise GitCommandError(cmd_str, str(e.stderr or e).strip())
        return result if isinstance(result, str) else str(result)

    def current_branch_name(self) -> str:
        try:
            return self.repo.active_branch.name
        except TypeError:
            raise GitCommandError("rev-parse --abbrev-ref HEAD", "HEAD is detached; check out a branch first.")

    def branch_oid(self, branch_name: str) -> Optional[CommitHash]:
        if branch_name not in self.repo.heads:
            return None
        return CommitHash(self.repo.heads[branch_name].commit.hexsha)

    def local_branches(self) -> List[str]:
        return [head.name for head in self.repo.heads]

    def is_working_tree_clean(self) -> bool:
        """Whether there are no staged, unstaged or untracked changes."""
        return not self.repo.is_dirty(index=True, working_tree=True, untracked_files=True)

    def checkout_branch(self, branch_name: str) -> None:
        """Check out a branch, refusing to do so over uncommitted changes."""
        if not self.is_working_tree_clean():
            raise WorkingTreeDirtyError()
        self._run("checkout", branch_name)

    def create_branch(self, branch_name: str, start_point: str, checkout: bool = False) -> None:
        if checkout:
            # Uncommitted changes are carried over to the new branch
            self._run("checkout", "-b", branch_name, start_point)
        else:
            self._run("branch", branch_name, start_point)

    def delete_branch(self, branch_name: str) -> None:
        self._run("branch", "-D", branch_name)

    def stage_changes(self, mode: StageMode) -> None:
        """Stage every change (`all`) or only changes to tracked files (`update`)."""
        self._run("add", "--all" if mode == 'all' else "--update")

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def rebase_branch_onto(self, branch_name: str, onto: str) -> None:
        """Check out `branch_name` and rebase it onto `onto`."""
        self.checkout_branch(branch_name)
        self._run("rebase", onto)

    def abort_rebase(self) -> None:
        self._run("rebase", "--abort")

    def is_rebase_in_progress(self) -> bool:
        return (self.git_dir / "rebase-merge").exists() or (self.git_dir / "rebase-apply").exists()

    def push_branch(self, branch_name: str, remote_name: str, force: bool = False) -> None:
        args = ["push", remote_name, branch_name]
        if force:
            args.append("--force")
        self._run(*args)

    def pull_branch(self, branch_name: str, remote_name: str) -> None:
        self.checkout_branch(branch_name)
        self._run("pull", remote_name, branch_name)

    def set_target_to_upstream_ref(self, branch_name: str, remote_name: str) -> None:
        """Point a local branch at its remote-tracking ref and check it out."""
        upstream_ref = f"refs/remotes/{remote_name}/{branch_name}"
        self._run("rev-parse", "--verify", upstream_ref)
        if self.current_branch_name() != branch_name:
            # A failed pull may leave the tree mid-merge, so switch without the cleanliness check
            self._run("checkout", "--force", branch_name)
        self._run("reset", "--hard", upstream_ref)

    def remote_url(self, remote_name: str) -> str:
        try:
            return self.repo.remote(remote_name).url
        except ValueError:
            raise RemoteNotFoundError(remote_name)
