"""Stack discovery, staleness checks and restacking."""

import sys
import logging
from typing import List, Optional, Sequence, Tuple

from ..config.models import PystConfig
from ..errors import (
    BranchAlreadyTrackedError, BranchUnavailableError, CannotDeleteTrunkError,
    CommitMessageRequiredError, GitCommandError, MissingParentOidCacheError, NeedsRestackError,
    WorkingTreeDirtyError,
)
from ..git import parse_remote_url
from ..prompt import Prompter
from ..tree import StackTree, TrackedBranch
from ..typing import GitInterface, StageMode

logger = logging.getLogger(__name__)

class StackContext:
    """A loaded stack tree paired with the repository it describes.

    One context lives for the duration of a single command: the tree is loaded at
    start, mutated in memory and persisted by the caller at the end.
    """

    def __init__(self, config: PystConfig, git_cmd: GitInterface, tree: StackTree, prompter: Prompter):
        self.config = config
        self.git_cmd = git_cmd
        self.tree = tree
        self.prompter = prompter
        self.output = sys.stdout

    def echo(self, message: str) -> None:
        """Print an operator-facing message."""
        print(message, file=self.output)

    @property
    def trunk_name(self) -> str:
        return self.tree.trunk_name

    @property
    def remote_name(self) -> str:
        return self.config.repo.github_remote

    def owner_and_repository(self) -> Tuple[str, str]:
        """Parse the GitHub owner and repository from the configured remote's URL."""
        return parse_remote_url(self.git_cmd.remote_url(self.remote_name))

    def discover_stack(self) -> List[str]:
        """Discover the stack of the checked out branch, ordered trunk to tip.

        Downstack resolution follows single children only; at a fork the stack is
        ambiguous and ends at the forking branch.
        """
        current_branch = self.git_cmd.current_branch_name()
        current = self.tree.must_get(current_branch)

        upstack: List[str] = []
        parent = current.parent
        while parent is not None:
            upstack.append(parent)
            parent = self.tree.must_get(parent).parent
        upstack.reverse()

        stack = upstack + [current_branch]
        children = current.children
        while len(children) == 1:
            (child,) = children
            stack.append(child)
            children = self.tree.must_get(child).children

        logger.debug(f"Discovered stack: {stack}")
        return stack

    def _parent_tip(self, parent_name: str) -> str:
        tip = self.git_cmd.branch_oid(parent_name)
        if tip is None:
            raise BranchUnavailableError(parent_name)
        return tip

    def needs_restack(self, branch_name: str) -> bool:
        """Whether a branch must be rebased onto its parent.

        A branch needs restacking when its cached parent tip no longer matches the
        parent, or when any ancestor needs restacking. Trunk never does.
        """
        branch = self.tree.must_get(branch_name)
        if branch.parent is None:
            return False

        if branch.parent_oid_cache is None:
            raise MissingParentOidCacheError(branch_name)
        if self._parent_tip(branch.parent) != branch.parent_oid_cache:
            return True
        return self.needs_restack(branch.parent)

    def restack_branch(self, branch_name: str, parent_name: str) -> bool:
        """Rebase a branch onto `parent_name` if it needs it.

        Returns True if the branch was rebased, False if it was already up to date.
        Rebase failures propagate as `GitCommandError` without touching the cache;
        the caller decides how to recover the repository.
        """
        if not self.needs_restack(branch_name):
            self.echo(f"Branch `{branch_name}` does not need to be restacked onto `{parent_name}`.")
            return False

        try:
            self.git_cmd.rebase_branch_onto(branch_name, parent_name)
        except GitCommandError:
            logger.error(f"Failed to rebase branch `{branch_name}` onto `{parent_name}`")
            raise

        self.tree.must_get(branch_name).parent_oid_cache = self._parent_tip(parent_name)
        self.echo(f"Restacked branch `{branch_name}` onto `{parent_name}`.")
        return True

    def abort_rebase_if_needed(self) -> None:
        """Return the repository to a clean state after a failed rebase."""
        if self.git_cmd.is_rebase_in_progress():
            self.git_cmd.abort_rebase()

    def restack(self) -> None:
        """Restack the current stack, trunk to tip.

        Each branch is rebased only after its parent is correct. On a conflict the
        rebase is aborted and the error propagates.
        """
        original_branch = self.git_cmd.current_branch_name()
        stack = self.discover_stack()

        for parent_name, branch_name in zip(stack, stack[1:]):
            try:
                self.restack_branch(branch_name, parent_name)
            except GitCommandError:
                self.abort_rebase_if_needed()
                raise

        if self.git_cmd.current_branch_name() != original_branch:
            self.git_cmd.checkout_branch(original_branch)

    def check_cleanliness(self, branches: Sequence[str]) -> None:
        """Ensure every branch is restacked and the working tree is clean."""
        for branch in branches:
            if self.needs_restack(branch):
                raise NeedsRestackError(branch)

        if not self.git_cmd.is_working_tree_clean():
            raise WorkingTreeDirtyError()

    def delete_branch(self, branch_name: str, must_delete_from_tree: bool = False) -> bool:
        """Delete a tracked branch locally, after asking the operator.

        Args:
            branch_name: The branch to delete
            must_delete_from_tree: Untrack the branch even if the operator declines
                deleting the git branch

        Returns:
            True if the git branch was deleted
        """
        if branch_name == self.trunk_name:
            raise CannotDeleteTrunkError(branch_name)
        self.tree.must_get(branch_name)

        confirmed = self.prompter.confirm(f"Are you sure you want to delete branch `{branch_name}`?", default=False)
        if not confirmed:
            if must_delete_from_tree:
                self.tree.delete(branch_name)
            return False

        self.git_cmd.checkout_branch(self.trunk_name)
        self.git_cmd.delete_branch(branch_name)
        self.tree.delete(branch_name)
        return True

    def untrack_branch(self, branch_name: str) -> TrackedBranch:
        """Stop tracking a branch without touching the git branch itself."""
        if branch_name == self.trunk_name:
            raise CannotDeleteTrunkError(branch_name)
        return self.tree.delete(branch_name)

    def checkout_branch(self, branch_name: str) -> None:
        self.tree.must_get(branch_name)
        self.git_cmd.checkout_branch(branch_name)

    def create_branch(self, branch_name: str, stage: Optional[StageMode] = None,
                      message: Optional[str] = None) -> None:
        """Create and track a new branch on top of the checked out branch.

        With `stage`, pending changes are staged and committed onto the new branch.
        """
        current_branch = self.git_cmd.current_branch_name()
        self.tree.must_get(current_branch)
        if self.tree.get(branch_name) is not None:
            raise BranchAlreadyTrackedError(branch_name)
        if stage is not None and not message:
            raise CommitMessageRequiredError()
        if stage is None and not self.git_cmd.is_working_tree_clean():
            raise WorkingTreeDirtyError()

        current_tip = self._parent_tip(current_branch)
        self.git_cmd.create_branch(branch_name, current_branch, checkout=True)
        self.tree.insert(current_branch, current_tip, branch_name)

        if stage is not None and message:
            self.git_cmd.stage_changes(stage)
            self.git_cmd.commit(message)
            # `update` leaves untracked files behind; the new branch keeps its commit
            if not self.git_cmd.is_working_tree_clean():
                raise WorkingTreeDirtyError()

        self.echo(f"Successfully created and tracked new branch `{branch_name}` on top of `{current_branch}`")

    def track_branch(self, parent_name: str) -> None:
        """Track the checked out branch on top of `parent_name`, then restack it."""
        current_branch = self.git_cmd.current_branch_name()
        if self.tree.get(current_branch) is not None:
            raise BranchAlreadyTrackedError(current_branch)

        # Cache the branch's own tip so the restack below rebases it onto the parent
        # unless it already sits on the parent's tip
        branch_tip = self._parent_tip(current_branch)
        self.tree.insert(parent_name, branch_tip, current_branch)
        self.restack()

        self.echo(f"Tracked branch `{current_branch}` on top of `{parent_name}`")

    def prune(self) -> List[str]:
        """Untrack branches that no longer exist in the repository."""
        existing = set(self.git_cmd.local_branches())
        pruned: List[str] = []
        for branch_name in self.tree.branch_names():
            if branch_name != self.trunk_name and branch_name not in existing:
                self.tree.delete(branch_name)
                pruned.append(branch_name)
        if pruned:
            logger.info(f"Untracked branches missing from the repository: {', '.join(pruned)}")
        return pruned
