"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Configures logging, lazily loads plugins, and
centralizes output emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from cmdpipe.config.settings import PipeSettings
    from cmdpipe.plugins.manager import PluginManager

# Exit code for wiring defects, distinct from an unsuccessful result (1).
EXIT_CONFIGURATION = 2


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Plugins are discovered on first use so ``--help`` and ``--version``
    never import third-party plugin code.
    """

    def __init__(self, settings: PipeSettings) -> None:
        self.settings = settings
        self._plugins: PluginManager | None = None

        from cmdpipe.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from cmdpipe.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager (discovered lazily on first access)."""
        if self._plugins is None:
            from cmdpipe.plugins.manager import PluginManager

            self._plugins = PluginManager()
            if self.settings.plugins.enabled:
                local_dir = self.settings.plugins.local_dir
                self._plugins.discover_and_load(local_dir=Path(local_dir) if local_dir else None)
        return self._plugins

    @property
    def json_output(self) -> bool:
        return self.settings.wants_json

    def emit(self, output: str, *, ok: bool) -> None:
        """Write *output*; failures go to stderr and exit with code 1."""
        if ok:
            click.echo(output)
            return
        click.echo(output, err=True)
        raise SystemExit(1)

    def fail_configuration(self, message: str) -> None:
        """Report a wiring defect and exit with code 2."""
        click.echo(f"CONFIGURATION ERROR: {message}", err=True)
        raise SystemExit(EXIT_CONFIGURATION)
