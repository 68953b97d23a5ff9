"""Click base classes that give every command an ``--examples`` page.

``--help`` stays short; ``--examples`` prints the ``examples=`` text passed
to the decorator and exits.
"""

from __future__ import annotations

import textwrap
from typing import Any

import click


def _examples_option(examples: str) -> click.Option:
    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value or ctx.resilient_parsing:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(textwrap.indent(examples, "  "))
        ctx.exit(0)

    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show,
        help="Show usage examples and exit.",
    )


class PipeCommand(click.Command):
    """Command accepting an ``examples`` keyword."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = textwrap.dedent(examples).strip("\n") if examples else None

    def get_params(self, ctx: click.Context) -> list[click.Parameter]:
        params = super().get_params(ctx)
        if self.examples:
            params.append(_examples_option(self.examples))
        return params


class PipeGroup(PipeCommand, click.Group):
    """Group whose subcommands are PipeCommands by default."""

    command_class = PipeCommand
