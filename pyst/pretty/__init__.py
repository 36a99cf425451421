"""Pretty formatting utilities for CLI output."""

import shutil
import sys
from typing import IO, List, Optional, Sequence, Tuple

import click

from ..remote import StatusRow
from ..stack import StackContext

FILLED_CIRCLE = "●"
EMPTY_CIRCLE = "○"
BOTTOM_LEFT_BOX = "└"
LEFT_FORK_BOX = "├"
VERTICAL_BOX = "│"
HORIZONTAL_BOX = "─"

# Cycled per tree depth
COLORS = ["blue", "cyan", "green", "magenta", "yellow", "red"]

STATUS_HEADERS = ["Branch Name", "Parent Branch", "Stack Status", "PR Status"]

STATUS_ICONS = {
    "Needs Restack": "🔴",
    "Restacked": "✅",
    "Draft": "📝",
    "Merged": "✅",
    "Closed": "❌",
    "In Review": "🔍",
    "Not Submitted": "🚧",
}

def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    try:
        return shutil.get_terminal_size().columns
    except OSError:
        return 80


def header(text: str, use_emoji: bool = True) -> str:
    """Create a boxed header with optional emoji."""
    width = get_term_width()
    h_line = HORIZONTAL_BOX * (width - 2)
    emoji = "📚 " if use_emoji else ""
    title = f" {emoji}{text}"
    return "\n".join([
        f"┌{h_line}┐",
        f"{VERTICAL_BOX}{title}{' ' * max(width - len(title) - 3, 0)}{VERTICAL_BOX}",
        f"└{h_line}┘",
    ])


def print_header(text: str, use_emoji: bool = True, file: Optional[IO[str]] = None) -> None:
    """Print a header to file (default stdout)."""
    if file is None:
        file = sys.stdout
    print(header(text, use_emoji), file=file)


def tree_lines(ctx: StackContext, pr_urls: bool = True, color: bool = True) -> List[Tuple[str, str]]:
    """Render the stack tree as `(branch name, log line)` pairs, pre-order from trunk.

    The checked out branch gets a filled circle. Branches that need restacking and
    branches with a pull request are annotated.
    """
    checked_out = ctx.git_cmd.current_branch_name()
    lines: List[Tuple[str, str]] = []

    def paint(text: str, depth: int) -> str:
        return click.style(text, fg=COLORS[depth % len(COLORS)]) if color else text

    def walk(name: str, depth: int, prefix: str, connection: str) -> None:
        branch = ctx.tree.must_get(name)
        icon = FILLED_CIRCLE if name == checked_out else EMPTY_CIRCLE
        line = prefix + paint(f"{connection}{icon} {name}", depth)
        if ctx.needs_restack(name):
            line += " (needs restack)"
        if pr_urls and branch.remote is not None:
            owner, repo = ctx.owner_and_repository()
            url = f"https://{ctx.config.repo.github_host}/{owner}/{repo}/pull/{branch.remote.pr_number}"
            line += " (" + (click.style(url, fg="magenta", italic=True) if color else url) + ")"
        lines.append((name, line))

        children = sorted(branch.children)
        for index, child in enumerate(children):
            is_last = index == len(children) - 1
            child_connection = (BOTTOM_LEFT_BOX if is_last else LEFT_FORK_BOX) + HORIZONTAL_BOX
            if depth > 0:
                child_prefix = prefix + ("  " if connection.startswith(BOTTOM_LEFT_BOX)
                                         else paint(VERTICAL_BOX, depth) + " ")
            else:
                child_prefix = prefix
            walk(child, depth + 1, child_prefix, child_connection)

    walk(ctx.tree.trunk_name, 0, "", "")
    return lines


def print_tree(ctx: StackContext, file: Optional[IO[str]] = None) -> None:
    """Print the stack tree to file (default stdout), dropping colors off a terminal."""
    for _, line in tree_lines(ctx):
        click.echo(line, file=file)


def status_table(rows: Sequence[StatusRow], use_emoji: bool = True) -> str:
    """Format status rows as an aligned table."""
    def decorate(value: str) -> str:
        icon = STATUS_ICONS.get(value)
        return f"{icon} {value}" if use_emoji and icon else value

    cells = [[row.branch_name, row.parent, decorate(row.stack_status), decorate(row.pr_status)]
             for row in rows]
    widths = [max(len(h), *(len(c[i]) for c in cells)) if cells else len(h)
              for i, h in enumerate(STATUS_HEADERS)]

    def format_row(values: Sequence[str]) -> str:
        return " │ ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    separator = "─┼─".join(HORIZONTAL_BOX * w for w in widths)
    out = [click.style(format_row(STATUS_HEADERS), bold=True), separator]
    out.extend(format_row(c) for c in cells)
    for row in rows:
        if row.pr_url:
            out.append(f"  {row.branch_name}: {row.pr_url}")
    return "\n".join(out)
