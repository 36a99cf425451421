"""Interactive prompting.

The stack engine only consumes answers through the `Prompter` protocol; the CLI
provides `ClickPrompter`, tests provide a scripted fake.
"""

from typing import List, Protocol, runtime_checkable

import click


@runtime_checkable
class Prompter(Protocol):
    """Source of answers to interactive questions."""

    def confirm(self, message: str, default: bool = False) -> bool:
        ...

    def text(self, message: str) -> str:
        ...

    def editor(self, message: str) -> str:
        """Free-form, possibly multi-line text."""
        ...

    def select(self, message: str, options: List[str]) -> str:
        """Pick one of `options`."""
        ...


class ClickPrompter:
    """Prompter backed by click's terminal helpers."""

    def confirm(self, message: str, default: bool = False) -> bool:
        return click.confirm(message, default=default)

    def text(self, message: str) -> str:
        return click.prompt(message, type=str)

    def editor(self, message: str) -> str:
        """Open the operator's editor; an empty or aborted edit yields an empty body."""
        marker = f"<!-- {message}. Lines above this marker are kept. -->\n"
        edited = click.edit(f"\n{marker}", extension=".md")
        if edited is None:
            return ""
        return edited.split(marker, 1)[0].strip()

    def select(self, message: str, options: List[str]) -> str:
        for index, option in enumerate(options, start=1):
            click.echo(f"  {index}) {option}")
        choice = click.prompt(
            message,
            type=click.Choice([str(i) for i in range(1, len(options) + 1)]),
            show_choices=False,
        )
        return options[int(choice) - 1]
