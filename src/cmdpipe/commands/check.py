"""Command: startup-time wiring check for a registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from cmdpipe.commands._base import PipeCommand

if TYPE_CHECKING:
    from cmdpipe.commands._context import AppContext


@click.command(
    cls=PipeCommand,
    examples="""\
  cmdpipe check myapp.wiring:registry
  cmdpipe check myapp.wiring:build_registry
  cmdpipe --json check myapp.wiring:registry""",
)
@click.argument("target")
@click.pass_obj
def check(app: AppContext, target: str) -> None:
    """Load TARGET (module:attribute) and report its command wiring.

    Exits 1 when the registry has issues, 2 when it cannot be loaded.
    """
    from cmdpipe.domain.errors import ConfigurationError
    from cmdpipe.output.renderers import render_report
    from cmdpipe.services.contracts import build_report
    from cmdpipe.services.loader import load_registry

    try:
        registry = load_registry(target, plugin_manager=app.plugins)
    except ConfigurationError as exc:
        app.fail_configuration(str(exc))
        return

    report = build_report(target, registry, plugins=app.plugins.list_plugin_names())
    app.emit(render_report(report, json_output=app.json_output), ok=report.healthy)
