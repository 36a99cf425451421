"""Tests for stack discovery, staleness and restacking against the git fake."""

import pytest

from pyst.errors import (
    BranchAlreadyTrackedError, BranchNotTrackedError, BranchUnavailableError, CannotDeleteTrunkError,
    CommitMessageRequiredError, GitCommandError, MissingParentOidCacheError, NeedsRestackError,
    WorkingTreeDirtyError,
)
from pyst.stack import StackContext
from pyst.tests.fakes import FakeGit, ScriptedPrompter, build_stack
from pyst.tree import StackTree


class TestDiscoverStack:
    def test_linear_stack_from_the_middle(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b", "c"])
        git.current = "b"
        assert ctx.discover_stack() == ["main", "a", "b", "c"]

    def test_from_trunk_follows_single_children(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        assert ctx.discover_stack() == ["main", "a", "b"]

    def test_stops_at_fork(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        build_stack(git, tree, "a", ["x"])

        git.current = "a"
        assert ctx.discover_stack() == ["main", "a"]
        git.current = "x"
        assert ctx.discover_stack() == ["main", "a", "x"]

    def test_untracked_current_branch(self, ctx: StackContext, git: FakeGit) -> None:
        git.branches["loose"] = "loose-0"
        git.current = "loose"
        with pytest.raises(BranchNotTrackedError):
            ctx.discover_stack()


class TestNeedsRestack:
    def test_fresh_stack_is_up_to_date(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        assert [ctx.needs_restack(name) for name in ("main", "a", "b")] == [False, False, False]

    def test_moved_trunk_makes_whole_stack_stale(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.add_commit("main")

        assert not ctx.needs_restack("main")
        assert ctx.needs_restack("a")
        assert ctx.needs_restack("b")

    def test_moved_middle_branch(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.add_commit("a")

        assert not ctx.needs_restack("a")
        assert ctx.needs_restack("b")

    def test_missing_cache(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        tree.must_get("a").parent_oid_cache = None
        with pytest.raises(MissingParentOidCacheError):
            ctx.needs_restack("a")

    def test_parent_missing_from_repository(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        del git.branches["a"]
        with pytest.raises(BranchUnavailableError) as exc_info:
            ctx.needs_restack("b")
        assert exc_info.value.branch_name == "a"

    def test_untracked_branch(self, ctx: StackContext) -> None:
        with pytest.raises(BranchNotTrackedError):
            ctx.needs_restack("nope")


class TestRestack:
    def test_restack_branch_skips_up_to_date_branch(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        assert ctx.restack_branch("a", "main") is False
        assert git.rebases == []
        assert "does not need to be restacked" in ctx.output.getvalue()

    def test_restack_branch_updates_cache(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        new_trunk = git.add_commit("main")

        assert ctx.restack_branch("a", "main") is True
        assert git.rebases == [("a", "main")]
        assert tree.must_get("a").parent_oid_cache == new_trunk
        assert not ctx.needs_restack("a")

    def test_restack_branch_conflict_keeps_cache(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        git.add_commit("main")
        git.conflicts.add("a")

        with pytest.raises(GitCommandError):
            ctx.restack_branch("a", "main")
        assert tree.must_get("a").parent_oid_cache == "main-0"

    def test_restack_walks_trunk_to_tip(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.current = "b"
        git.add_commit("main")

        ctx.restack()

        assert git.rebases == [("a", "main"), ("b", "a")]
        assert tree.must_get("a").parent_oid_cache == git.branches["main"]
        assert tree.must_get("b").parent_oid_cache == git.branches["a"]
        assert not ctx.needs_restack("b")
        assert git.current == "b"

    def test_restack_returns_to_original_branch(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.current = "a"
        git.add_commit("main")

        ctx.restack()

        assert git.current == "a"

    def test_restack_conflict_aborts_rebase(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.current = "b"
        git.add_commit("main")
        git.conflicts.add("b")

        with pytest.raises(GitCommandError):
            ctx.restack()

        assert not git.rebase_in_progress
        assert "rebase --abort" in git.commands
        # The branch below the conflict was restacked and keeps its new cache
        assert not ctx.needs_restack("a")
        assert tree.must_get("b").parent_oid_cache == "a-0"

    def test_restack_up_to_date_stack_is_a_no_op(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        ctx.restack()
        assert git.rebases == []


class TestCheckCleanliness:
    def test_clean_stack_passes(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        ctx.check_cleanliness(["main", "a", "b"])

    def test_stale_branch_reported_first(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.add_commit("main")
        with pytest.raises(NeedsRestackError) as exc_info:
            ctx.check_cleanliness(["main", "a", "b"])
        assert exc_info.value.branch_name == "a"

    def test_dirty_tree(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        git.dirty = True
        with pytest.raises(WorkingTreeDirtyError):
            ctx.check_cleanliness(["main", "a"])


class TestDeleteBranch:
    def test_trunk_is_refused(self, ctx: StackContext) -> None:
        with pytest.raises(CannotDeleteTrunkError):
            ctx.delete_branch("main")

    def test_untracked_is_refused(self, ctx: StackContext) -> None:
        with pytest.raises(BranchNotTrackedError):
            ctx.delete_branch("nope")

    def test_confirmed_delete(self, ctx: StackContext, git: FakeGit, tree: StackTree,
                              prompter: ScriptedPrompter) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        git.current = "a"
        prompter.confirms.append(True)

        assert ctx.delete_branch("a") is True

        assert git.current == "main"
        assert "a" not in git.branches
        assert tree.get("a") is None
        assert tree.must_get("b").parent == "main"

    def test_declined_delete_keeps_everything(self, ctx: StackContext, git: FakeGit, tree: StackTree,
                                              prompter: ScriptedPrompter) -> None:
        build_stack(git, tree, "main", ["a"])
        prompter.confirms.append(False)

        assert ctx.delete_branch("a") is False
        assert "a" in git.branches
        assert tree.get("a") is not None

    def test_declined_delete_still_untracks_when_required(self, ctx: StackContext, git: FakeGit,
                                                          tree: StackTree, prompter: ScriptedPrompter) -> None:
        build_stack(git, tree, "main", ["a"])
        prompter.confirms.append(False)

        assert ctx.delete_branch("a", must_delete_from_tree=True) is False
        assert "a" in git.branches
        assert tree.get("a") is None


class TestLocalManagement:
    def test_untrack_keeps_git_branch(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b"])
        removed = ctx.untrack_branch("a")

        assert removed.name == "a"
        assert "a" in git.branches
        assert tree.must_get("b").parent == "main"

    def test_untrack_trunk_refused(self, ctx: StackContext) -> None:
        with pytest.raises(CannotDeleteTrunkError):
            ctx.untrack_branch("main")

    def test_checkout_tracked_only(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        git.branches["loose"] = "loose-0"

        with pytest.raises(BranchNotTrackedError):
            ctx.checkout_branch("loose")
        ctx.checkout_branch("a")
        assert git.current == "a"

    def test_create_branch(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        ctx.create_branch("feature")

        assert git.current == "feature"
        assert git.branches["feature"] == "main-0"
        branch = tree.must_get("feature")
        assert branch.parent == "main"
        assert branch.parent_oid_cache == "main-0"
        assert "Successfully created and tracked new branch `feature`" in ctx.output.getvalue()

    def test_create_branch_commits_staged_changes(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        git.dirty = True
        ctx.create_branch("feature", stage='all', message="Add feature")

        assert "add --all" in git.commands
        assert git.commits == [("feature", "Add feature")]
        assert git.is_working_tree_clean()
        assert git.branches["feature"] != git.branches["main"]
        assert tree.must_get("feature").parent_oid_cache == "main-0"
        assert not ctx.needs_restack("feature")

    def test_create_branch_update_leaves_untracked_files(self, ctx: StackContext, git: FakeGit,
                                                         tree: StackTree) -> None:
        git.dirty = True
        git.untracked = True

        with pytest.raises(WorkingTreeDirtyError):
            ctx.create_branch("feature", stage='update', message="Add feature")

        assert "add --update" in git.commands
        assert git.commits == [("feature", "Add feature")]
        assert tree.must_get("feature").parent == "main"
        assert "Successfully created" not in ctx.output.getvalue()

    def test_create_branch_all_stages_untracked_files(self, ctx: StackContext, git: FakeGit) -> None:
        git.untracked = True
        ctx.create_branch("feature", stage='all', message="Add feature")
        assert git.is_working_tree_clean()

    def test_create_branch_requires_message_when_staging(self, ctx: StackContext, tree: StackTree) -> None:
        with pytest.raises(CommitMessageRequiredError):
            ctx.create_branch("feature", stage='update')
        assert tree.get("feature") is None

    def test_create_branch_requires_clean_tree(self, ctx: StackContext, git: FakeGit) -> None:
        git.dirty = True
        with pytest.raises(WorkingTreeDirtyError):
            ctx.create_branch("feature")
        assert "feature" not in git.branches

    def test_create_branch_from_untracked_branch(self, ctx: StackContext, git: FakeGit) -> None:
        git.branches["loose"] = "loose-0"
        git.current = "loose"
        with pytest.raises(BranchNotTrackedError):
            ctx.create_branch("feature")

    def test_create_existing_branch(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        with pytest.raises(BranchAlreadyTrackedError):
            ctx.create_branch("a")

    def test_track_branch_restacks_onto_parent(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        git.branches["loose"] = "loose-0"
        git.current = "loose"

        ctx.track_branch("main")

        assert tree.must_get("loose").parent == "main"
        assert git.rebases == [("loose", "main")]
        assert tree.must_get("loose").parent_oid_cache == git.branches["main"]
        assert git.current == "loose"

    def test_track_already_tracked(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a"])
        git.current = "a"
        with pytest.raises(BranchAlreadyTrackedError):
            ctx.track_branch("main")

    def test_track_onto_untracked_parent(self, ctx: StackContext, git: FakeGit) -> None:
        git.branches["loose"] = "loose-0"
        git.current = "loose"
        with pytest.raises(BranchNotTrackedError):
            ctx.track_branch("nope")

    def test_prune_untracks_vanished_branches(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        build_stack(git, tree, "main", ["a", "b", "c"])
        del git.branches["b"]

        assert ctx.prune() == ["b"]
        assert tree.get("b") is None
        assert tree.must_get("c").parent == "a"

    def test_prune_keeps_trunk(self, ctx: StackContext, git: FakeGit, tree: StackTree) -> None:
        del git.branches["main"]
        assert ctx.prune() == []
        assert tree.get("main") is not None

    def test_owner_and_repository(self, ctx: StackContext, git: FakeGit) -> None:
        assert ctx.owner_and_repository() == ("acme", "widgets")
        git.remotes["origin"] = "https://github.com/octo/tools"
        assert ctx.owner_and_repository() == ("octo", "tools")
