"""Serializable representation of a stack of branches.

A `StackTree` has no knowledge of the repository it describes. Pairing it with a git
handle to make decisions about the tree is the job of `pyst.stack.StackContext`.

Parent and child links are plain branch names that index into `StackTree.branches`,
so re-parenting on deletion never has to chase object references.
"""

import logging
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_serializer, model_validator

from ..errors import BranchAlreadyTrackedError, BranchNotTrackedError

logger = logging.getLogger(__name__)


class RemoteMetadata(BaseModel):
    """Remote metadata for a branch that has been submitted as a pull request."""
    pr_number: int
    # Id of the stack navigation comment on the PR, once one has been posted
    comment_id: Optional[int] = None


class TrackedBranch(BaseModel):
    """A local branch tracked by pyst."""
    name: str
    parent: Optional[str] = None  # None only for trunk
    # Tip of the parent when this branch was last known to be based on it
    parent_oid_cache: Optional[str] = None
    children: Set[str] = Field(default_factory=set)
    remote: Optional[RemoteMetadata] = None

    @field_serializer('children')
    def _serialize_children(self, children: Set[str]) -> List[str]:
        return sorted(children)


class StackTree(BaseModel):
    """An n-ary tree of branches rooted at the trunk branch."""
    trunk_name: str
    branches: Dict[str, TrackedBranch]

    @classmethod
    def new(cls, trunk_name: str) -> "StackTree":
        """Create a tree holding only the trunk branch."""
        return cls(trunk_name=trunk_name, branches={trunk_name: TrackedBranch(name=trunk_name)})

    @model_validator(mode='after')
    def _check_structure(self) -> "StackTree":
        problems = self.structure_errors()
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def structure_errors(self) -> List[str]:
        """List every violated tree invariant. An empty list means the tree is well formed."""
        problems: List[str] = []
        trunk = self.branches.get(self.trunk_name)
        if trunk is None:
            return [f"trunk branch `{self.trunk_name}` is missing"]
        if trunk.parent is not None:
            problems.append(f"trunk branch `{self.trunk_name}` has a parent")

        for key, branch in self.branches.items():
            if branch.name != key:
                problems.append(f"branch stored under `{key}` is named `{branch.name}`")
            if branch.name in branch.children:
                problems.append(f"branch `{key}` is its own child")
            if key != self.trunk_name:
                if branch.parent is None:
                    problems.append(f"branch `{key}` has no parent")
                elif branch.parent not in self.branches:
                    problems.append(f"branch `{key}` has untracked parent `{branch.parent}`")
                elif key not in self.branches[branch.parent].children:
                    problems.append(f"branch `{key}` is missing from the children of `{branch.parent}`")
            for child in branch.children:
                child_branch = self.branches.get(child)
                if child_branch is None:
                    problems.append(f"branch `{key}` has untracked child `{child}`")
                elif child_branch.parent != key:
                    problems.append(f"child `{child}` of `{key}` points at parent `{child_branch.parent}`")

        # Every branch must be reachable from trunk, which also rules out cycles
        seen: Set[str] = set()
        pending = [self.trunk_name]
        while pending:
            name = pending.pop()
            if name in seen or name not in self.branches:
                continue
            seen.add(name)
            pending.extend(self.branches[name].children)
        unreachable = sorted(set(self.branches) - seen)
        if unreachable:
            problems.append(f"branches unreachable from trunk: {', '.join(unreachable)}")
        return problems

    def get(self, branch_name: str) -> Optional[TrackedBranch]:
        """Get a branch by name, or None if it is not tracked.

        The returned branch is the live node, so callers may mutate it in place.
        """
        return self.branches.get(branch_name)

    def must_get(self, branch_name: str) -> TrackedBranch:
        """Get a branch by name, raising `BranchNotTrackedError` if it is not tracked."""
        branch = self.branches.get(branch_name)
        if branch is None:
            raise BranchNotTrackedError(branch_name)
        return branch

    def insert(self, parent_name: str, parent_oid_cache: str, branch_name: str) -> TrackedBranch:
        """Add `branch_name` as a child of `parent_name`.

        Args:
            parent_name: The tracked branch to stack the new branch on
            parent_oid_cache: The parent's tip the new branch is based on
            branch_name: The name of the new branch

        Raises:
            BranchNotTrackedError: If the parent is not tracked
            BranchAlreadyTrackedError: If the branch is already tracked
        """
        parent = self.must_get(parent_name)
        if branch_name in self.branches:
            raise BranchAlreadyTrackedError(branch_name)

        parent.children.add(branch_name)
        child = TrackedBranch(name=branch_name, parent=parent_name, parent_oid_cache=parent_oid_cache)
        self.branches[branch_name] = child
        logger.debug(f"Tracked `{branch_name}` on top of `{parent_name}` @ {parent_oid_cache[:8]}")
        return child

    def delete(self, branch_name: str) -> TrackedBranch:
        """Remove a branch, re-linking its children to its parent.

        Returns the removed branch so callers can inspect its remote metadata.
        """
        branch = self.branches.pop(branch_name, None)
        if branch is None:
            raise BranchNotTrackedError(branch_name)

        if branch.parent is not None:
            parent = self.must_get(branch.parent)
            parent.children.discard(branch_name)

            for child_name in branch.children:
                child = self.must_get(child_name)
                child.parent = branch.parent
                parent.children.add(child_name)
            logger.debug(f"Untracked `{branch_name}`, moved {sorted(branch.children)} onto `{branch.parent}`")

        return branch

    def branch_names(self) -> List[str]:
        """All tracked branch names, pre-order from trunk.

        Parents always come before their descendants; siblings are sorted by name.
        """
        names: List[str] = []
        self._fill_branches(self.trunk_name, names)
        return names

    def _fill_branches(self, name: str, names: List[str]) -> None:
        current = self.must_get(name)
        names.append(current.name)
        for child in sorted(current.children):
            self._fill_branches(child, names)
