"""CLI entry point."""

import os
import sys
import click
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, TypeVar
from click import Context

from ...config import Config, default_config
from ...config.config_parser import parse_config, save_user_config
from ...errors import MissingTokenError
from ...git import RealGit
from ...github import GitHubClient, find_github_token
from ...github.adapters import create_pygithub_adapter
from ...pretty import print_header, print_tree, status_table, tree_lines
from ...prompt import ClickPrompter, Prompter
from ...remote import RemoteSync
from ...stack import StackContext
from ...store import load_tree, save_tree, store_path
from ...tree import StackTree
from ...typing import StageMode

# Get module logger
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

class AliasedGroup(click.Group):
    """Command group with support for aliases."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        """Initialize with aliases map."""
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        """Add an alias for a command."""
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)

    def format_commands(self, ctx: Context, formatter: click.HelpFormatter) -> None:
        rows = []
        for name in self.list_commands(ctx):
            command = self.get_command(ctx, name)
            if command is None or command.hidden:
                continue
            aliases = sorted(a for a, target in self.aliases.items() if target == name)
            label = f"{name} ({', '.join(aliases)})" if aliases else name
            rows.append((label, command.get_short_help_str()))
        if rows:
            with formatter.section("Commands"):
                formatter.write_dl(rows)

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """pyst - Stacked branches and pull requests on GitHub."""
    ctx.obj = {}

def common_options(f: F) -> F:
    """Options accepted by every command."""
    f = click.option('-v', '--verbose', count=True,
                     help="Increase verbosity (can be used multiple times for more verbosity)")(f)
    f = click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
                     help='Run as if pyst was started in DIRECTORY instead of the current working directory')(f)
    return f

def prompt_for_trunk(git_cmd: RealGit, prompter: Prompter) -> str:
    """Ask which local branch is the trunk of a repository pyst has not seen before."""
    branches = sorted(git_cmd.local_branches())
    if not branches:
        raise click.ClickException("The repository has no branches yet; make an initial commit first.")
    click.echo("No stack found for this repository.")
    return prompter.select("Select the trunk branch", branches)

def setup_git(directory: Optional[str] = None) -> Tuple[Config, RealGit]:
    """Setup Git command and config."""
    if directory:
        os.chdir(directory)

    git_cmd = RealGit(default_config())
    config = Config(parse_config(git_cmd))
    return config, RealGit(config)

def create_github_client(config: Config) -> GitHubClient:
    token = find_github_token(config)
    if not token:
        raise MissingTokenError()
    return GitHubClient(config, create_pygithub_adapter(token, config.repo.github_host))

@contextmanager
def stack_context(directory: Optional[str] = None, prompter: Optional[Prompter] = None) -> Iterator[StackContext]:
    """Load the stack tree of the repository and persist it once the command is done.

    The tree is written back even when the command fails, so work completed before
    the failure (restacked branches, created pull requests) is not forgotten.
    """
    config, git_cmd = setup_git(directory)
    prompter = prompter or ClickPrompter()

    path = store_path(git_cmd.git_dir)
    tree = load_tree(path)
    if tree is None:
        tree = StackTree.new(prompt_for_trunk(git_cmd, prompter))

    ctx = StackContext(config, git_cmd, tree, prompter)
    try:
        ctx.prune()
        yield ctx
    finally:
        save_tree(path, ctx.tree)

def run(directory: Optional[str], verbose: int, action: Callable[[StackContext], None]) -> None:
    """Run `action` inside a stack context, exiting with status 1 on failure."""
    from ... import setup_logging
    setup_logging(verbose)

    try:
        with stack_context(directory) as ctx:
            action(ctx)
    except (click.ClickException, click.Abort):
        raise
    except Exception as e:
        logger.error(f"{e}")
        sys.exit(1)

def select_branch(ctx: StackContext, message: str) -> str:
    """Let the operator pick a tracked branch from the rendered tree."""
    lines = tree_lines(ctx, pr_urls=False, color=False)
    choice = ctx.prompter.select(message, [line for _, line in lines])
    return next(name for name, line in lines if line == choice)

@cli.command(name="sync", help="Sync the remote branches with local branches")
@common_options
def sync(directory: Optional[str], verbose: int) -> None:
    def action(ctx: StackContext) -> None:
        remote = RemoteSync(ctx, create_github_client(ctx.config), ctx.prompter)
        failed = remote.sync()
        if not failed:
            click.echo("Synced all tracked branches.")
    run(directory, verbose, action)

@cli.command(name="submit", help="Submit the current stack to GitHub")
@common_options
@click.option('-f', '--force', is_flag=True, help="Force push branches to the remote")
def submit(directory: Optional[str], verbose: int, force: bool) -> None:
    def action(ctx: StackContext) -> None:
        remote = RemoteSync(ctx, create_github_client(ctx.config), ctx.prompter)
        remote.submit(force=force)
        click.echo("Submitted the current stack.")
    run(directory, verbose, action)

@cli.command(name="checkout", help="Checkout a branch that is tracked")
@common_options
@click.argument('branch_name', required=False)
def checkout(directory: Optional[str], verbose: int, branch_name: Optional[str]) -> None:
    def action(ctx: StackContext) -> None:
        name = branch_name or select_branch(ctx, "Select a branch to checkout")
        ctx.checkout_branch(name)
    run(directory, verbose, action)

@cli.command(name="create", help="Create and track a new branch on top of the current branch")
@common_options
@click.argument('branch_name', required=False)
@click.option('-a', '--all', 'stage_all', is_flag=True, help="Stage all changes, including untracked files, and commit them")
@click.option('-u', '--update', 'stage_update', is_flag=True, help="Stage changes to tracked files and commit them")
@click.option('-m', '--message', help="Commit message for the staged changes")
def create(directory: Optional[str], verbose: int, branch_name: Optional[str],
           stage_all: bool, stage_update: bool, message: Optional[str]) -> None:
    if stage_all and stage_update:
        raise click.UsageError("--all and --update are mutually exclusive")
    stage: Optional[StageMode] = 'all' if stage_all else 'update' if stage_update else None

    def action(ctx: StackContext) -> None:
        name = branch_name or ctx.prompter.text("Name of new branch")
        ctx.create_branch(name, stage=stage, message=message)
    run(directory, verbose, action)

@cli.command(name="delete", help="Delete a branch that is tracked")
@common_options
@click.argument('branch_name', required=False)
def delete(directory: Optional[str], verbose: int, branch_name: Optional[str]) -> None:
    def action(ctx: StackContext) -> None:
        name = branch_name or select_branch(ctx, "Select a branch to delete")
        if ctx.delete_branch(name):
            click.echo(f"Successfully deleted branch `{name}`.")
    run(directory, verbose, action)

@cli.command(name="restack", help="Restack the current stack")
@common_options
def restack(directory: Optional[str], verbose: int) -> None:
    run(directory, verbose, lambda ctx: ctx.restack())

@cli.command(name="log", help="Print a tree of all tracked stacks")
@common_options
def log(directory: Optional[str], verbose: int) -> None:
    run(directory, verbose, lambda ctx: print_tree(ctx))

@cli.command(name="status", help="Show the status of the current stack on GitHub")
@common_options
def status(directory: Optional[str], verbose: int) -> None:
    def action(ctx: StackContext) -> None:
        rows = RemoteSync(ctx, create_github_client(ctx.config), ctx.prompter).status()
        print_header("Stack Status")
        click.echo(status_table(rows))
    run(directory, verbose, action)

@cli.command(name="track", help="Track the current branch on top of a tracked branch")
@common_options
@click.option('-p', '--parent', 'parent_name', help="Parent branch; prompts when omitted")
def track(directory: Optional[str], verbose: int, parent_name: Optional[str]) -> None:
    def action(ctx: StackContext) -> None:
        current = ctx.git_cmd.current_branch_name()
        parent = parent_name or select_branch(ctx, f"Select the parent of `{current}`")
        ctx.track_branch(parent)
    run(directory, verbose, action)

@cli.command(name="untrack", help="Untrack a branch without deleting it")
@common_options
@click.argument('branch_name', required=False)
def untrack(directory: Optional[str], verbose: int, branch_name: Optional[str]) -> None:
    def action(ctx: StackContext) -> None:
        name = branch_name or select_branch(ctx, "Select a branch to untrack")
        ctx.untrack_branch(name)
        click.echo(f"Successfully untracked branch `{name}`.")
    run(directory, verbose, action)

@cli.command(name="config", help="Configure pyst")
@common_options
def config(directory: Optional[str], verbose: int) -> None:
    from ... import setup_logging
    setup_logging(verbose)

    try:
        current, _ = setup_git(directory)
        values: Dict[str, Any] = {}
        token = click.prompt("GitHub personal access token (leave empty to keep the current one)",
                             default="", show_default=False, hide_input=True)
        if token:
            values['github_token'] = token
        values['draft_by_default'] = click.confirm("Open new pull requests as drafts by default?",
                                                   default=current.user.draft_by_default)
        path = save_user_config(values)
    except (click.ClickException, click.Abort):
        raise
    except Exception as e:
        logger.error(f"{e}")
        sys.exit(1)
    click.echo(f"Saved configuration to {path}")

ALIASES: List[Tuple[str, str]] = [
    ('rs', 'sync'), ('sy', 'sync'),
    ('s', 'submit'), ('ss', 'submit'),
    ('co', 'checkout'),
    ('c', 'create'),
    ('d', 'delete'), ('del', 'delete'),
    ('r', 'restack'), ('sr', 'restack'),
    ('l', 'log'), ('ls', 'log'),
    ('st', 'status'), ('stat', 'status'),
    ('tr', 'track'),
    ('ut', 'untrack'),
    ('cfg', 'config'),
]

for _alias, _command in ALIASES:
    cli.add_alias(_alias, _command)

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
