"""Subcommand modules for cmdpipe.

Provides register_commands() which uses deferred imports to keep
``cmdpipe --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from cmdpipe.commands.check import check
    from cmdpipe.commands.dispatch import dispatch

    cli.add_command(check)
    cli.add_command(dispatch)
