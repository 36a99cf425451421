"""Synchronizing stacks with GitHub pull requests."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..errors import GitCommandError, WorkingTreeDirtyError
from ..github import GitHubClient
from ..prompt import Prompter
from ..stack import StackContext
from ..tree import RemoteMetadata, StackTree
from ..typing import GitInterface
from ..util import plural

logger = logging.getLogger(__name__)

COMMENT_HEADER = "## 📚 Stack Overview"
COMMENT_FOOTER = "_This comment was automatically generated by `pyst`._"
CURRENT_MARKER = " 👈"

PULL_CONTINUE = "Continue"
PULL_OVERWRITE = "Overwrite local with remote version"

NOT_TRUNK_PARENT = "n/a: trunk branch"

@dataclass
class PRCreationMetadata:
    """Answers gathered from the operator before opening a pull request."""
    title: str
    body: str
    is_draft: bool

@dataclass
class StatusRow:
    """One line of `pyst status` output."""
    branch_name: str
    parent: str
    stack_status: str
    pr_status: str
    pr_url: Optional[str] = None

class RemoteSync:
    """Submits and syncs the stacks of a `StackContext` with GitHub."""

    def __init__(self, ctx: StackContext, github: GitHubClient, prompter: Prompter):
        self.ctx = ctx
        self.github = github
        self.prompter = prompter

    @property
    def git_cmd(self) -> GitInterface:
        return self.ctx.git_cmd

    @property
    def tree(self) -> StackTree:
        return self.ctx.tree

    def delete_closed_branches(self, branches: Sequence[str]) -> int:
        """Offer to delete local branches whose pull requests were closed or merged.

        Returns the number of branches removed from the tree.
        """
        deleted = 0
        for branch_name in branches:
            branch = self.tree.must_get(branch_name)
            if branch.remote is None:
                continue

            pr = self.github.get_pull_request(branch.remote.pr_number)
            if not pr.is_closed:
                continue

            if self.prompter.confirm(
                    f"Pull request for branch `{branch_name}` is closed. "
                    "Would you like to delete the local branch?", default=False):
                self.ctx.delete_branch(branch_name, must_delete_from_tree=True)
                deleted += 1
        return deleted

    def submit(self, force: bool = False) -> None:
        """Push the current stack and open or update a pull request for each branch."""
        original_branch = self.git_cmd.current_branch_name()
        stack = self.ctx.discover_stack()
        self.ctx.check_cleanliness(stack)

        deleted = self.delete_closed_branches(stack[1:])
        if deleted:
            self.ctx.echo(f"Deleted {plural(deleted, 'branch')} with closed pull requests. "
                          "Run `pyst restack` to restack the remaining branches.")
            # Deleting a branch checks out trunk; rediscover from where the operator was
            restore = original_branch
            if self.tree.get(original_branch) is None or self.git_cmd.branch_oid(original_branch) is None:
                restore = self.tree.trunk_name
            if self.git_cmd.current_branch_name() != restore:
                self.git_cmd.checkout_branch(restore)
            stack = self.ctx.discover_stack()

        self.submit_stack(stack, force)
        self.update_pr_comments(stack)

    def submit_stack(self, stack: Sequence[str], force: bool = False) -> None:
        for parent_name, branch_name in zip(stack, stack[1:]):
            branch = self.tree.must_get(branch_name)

            if branch.remote is None:
                self.git_cmd.push_branch(branch_name, self.ctx.remote_name, force)
                metadata = self.prompt_pr_metadata(branch_name, parent_name)
                pr = self.github.create_pull_request(
                    title=metadata.title,
                    head=branch_name,
                    base=parent_name,
                    body=metadata.body,
                    draft=metadata.is_draft,
                )
                branch.remote = RemoteMetadata(pr_number=pr.number)
                self.ctx.echo(f"Submitted new pull request for branch `{branch_name}` @ "
                              f"{self.github.pull_request_url(pr.number)}")
                continue

            pr = self.github.get_pull_request(branch.remote.pr_number)
            if pr.base_ref != parent_name:
                self.github.update_base(pr.number, parent_name)
                self.ctx.echo(f"Updated base branch of #{pr.number} to `{parent_name}`")

            if pr.head_sha == self.git_cmd.branch_oid(branch_name):
                self.ctx.echo(f"Branch `{branch_name}` is up-to-date with the remote. Skipping push.")
                continue

            self.git_cmd.push_branch(branch_name, self.ctx.remote_name, force)
            self.ctx.echo(f"Updated pull request #{pr.number} for branch `{branch_name}`")

    def prompt_pr_metadata(self, branch_name: str, parent_name: str) -> PRCreationMetadata:
        self.ctx.echo(f"Submitting `{branch_name}` on top of `{parent_name}`")
        title = self.prompter.text("Title of pull request")
        body = self.prompter.editor("Pull request description")
        is_draft = self.prompter.confirm("Is this PR a draft?",
                                         default=self.ctx.config.user.draft_by_default)
        return PRCreationMetadata(title=title, body=body, is_draft=is_draft)

    def update_pr_comments(self, stack: Sequence[str]) -> None:
        """Create or refresh the stack navigation comment on every PR of the stack."""
        for branch_name in stack[1:]:
            branch = self.tree.must_get(branch_name)
            if branch.remote is None:
                continue

            body = self.render_pr_comment(branch_name, stack)
            if branch.remote.comment_id is None:
                branch.remote.comment_id = self.github.create_comment(branch.remote.pr_number, body)
            else:
                self.github.update_comment(branch.remote.pr_number, branch.remote.comment_id, body)

    def render_pr_comment(self, current_branch: str, stack: Sequence[str]) -> str:
        """Render the navigation comment posted on the PR of `current_branch`."""
        lines = [COMMENT_HEADER, "", "Pulls submitted in this stack:"]
        lines.append(f"* `{self.tree.trunk_name}`")
        for branch_name in stack[1:]:
            branch = self.tree.must_get(branch_name)
            if branch.remote is None:
                continue
            marker = CURRENT_MARKER if branch_name == current_branch else ""
            lines.append(f"* #{branch.remote.pr_number}{marker}")
        lines.extend(["", COMMENT_FOOTER])
        return "\n".join(lines)

    def sync(self) -> List[str]:
        """Pull remote changes, drop merged branches and restack everything.

        Returns the branches that could not be restacked.
        """
        if not self.git_cmd.is_working_tree_clean():
            raise WorkingTreeDirtyError()

        original_branch = self.git_cmd.current_branch_name()
        trunk_name = self.tree.trunk_name

        non_trunk = [name for name in self.tree.branch_names() if name != trunk_name]
        deleted = self.delete_closed_branches(non_trunk)
        if deleted:
            self.ctx.echo(f"Deleted {plural(deleted, 'branch')} with closed pull requests.")

        self.pull_changes()
        failed = self.try_restack_branches()

        if failed:
            self.ctx.echo(f"Failed to restack {plural(len(failed), 'branch')}: {', '.join(failed)}. "
                          "Check out each one and run `pyst restack` to resolve the conflicts.")

        restore = original_branch if self.git_cmd.branch_oid(original_branch) is not None else trunk_name
        if self.git_cmd.current_branch_name() != restore:
            self.git_cmd.checkout_branch(restore)
        return failed

    def pull_changes(self) -> None:
        """Pull the trunk and every submitted branch from the remote."""
        remote_name = self.ctx.remote_name
        for branch_name in self.tree.branch_names():
            branch = self.tree.must_get(branch_name)
            if branch_name != self.tree.trunk_name and branch.remote is None:
                continue

            try:
                self.git_cmd.pull_branch(branch_name, remote_name)
            except GitCommandError as e:
                logger.warning(f"Failed to pull `{branch_name}` from `{remote_name}`: {e}")
                choice = self.prompter.select(
                    f"Pulling `{branch_name}` failed. How would you like to proceed?",
                    [PULL_CONTINUE, PULL_OVERWRITE],
                )
                if choice == PULL_OVERWRITE:
                    self.git_cmd.set_target_to_upstream_ref(branch_name, remote_name)
                    self.ctx.echo(f"Overwrote local `{branch_name}` with `{remote_name}/{branch_name}`")
                continue

            self.ctx.echo(f"Pulled remote changes for `{branch_name}`")

    def try_restack_branches(self) -> List[str]:
        """Restack every tracked branch onto its parent, collecting the ones that conflict."""
        failed: List[str] = []
        for branch_name in self.tree.branch_names():
            parent_name = self.tree.must_get(branch_name).parent
            if parent_name is None:
                continue
            try:
                self.ctx.restack_branch(branch_name, parent_name)
            except GitCommandError:
                self.ctx.abort_rebase_if_needed()
                self.ctx.echo(f"Branch `{branch_name}` could not be restacked onto `{parent_name}`.")
                failed.append(branch_name)
        return failed

    def status(self) -> List[StatusRow]:
        """Describe every branch of the current stack."""
        rows: List[StatusRow] = []
        for branch_name in self.ctx.discover_stack():
            branch = self.tree.must_get(branch_name)
            stack_status = "Needs Restack" if self.ctx.needs_restack(branch_name) else "Restacked"

            pr_url = None
            if branch.remote is None:
                pr_status = "Not Submitted"
            else:
                pr = self.github.get_pull_request(branch.remote.pr_number)
                if pr.draft:
                    pr_status = "Draft"
                elif pr.merged:
                    pr_status = "Merged"
                elif pr.state == "closed":
                    pr_status = "Closed"
                else:
                    pr_status = "In Review"
                pr_url = self.github.pull_request_url(pr.number)

            rows.append(StatusRow(
                branch_name=branch_name,
                parent=branch.parent or NOT_TRUNK_PARENT,
                stack_status=stack_status,
                pr_status=pr_status,
                pr_url=pr_url,
            ))
        return rows
