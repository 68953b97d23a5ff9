"""Root CLI group for cmdpipe with global flags and command registration."""

from __future__ import annotations

from typing import Any

import click
from pydantic import ValidationError

from cmdpipe import __version__
from cmdpipe.commands import register_commands
from cmdpipe.commands._base import PipeGroup
from cmdpipe.commands._context import AppContext
from cmdpipe.config.settings import PipeSettings
from cmdpipe.domain.errors import ConfigurationError


@click.group(
    cls=PipeGroup,
    invoke_without_command=True,
    examples="""\
  cmdpipe check myapp.wiring:registry
  cmdpipe dispatch myapp.wiring:registry CreateWidget --data '{"name": "sprocket"}'
  cmdpipe --json -v dispatch myapp.wiring:registry DeleteWidget -d '{"id": 7}'""",
)
@click.version_option(version=__version__, prog_name="cmdpipe")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and dispatch timing.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """cmdpipe — inspect and exercise command dispatch wiring."""
    # Only pass flags that were set so env vars and TOML still apply.
    flags: dict[str, Any] = {
        key: True
        for key, value in (
            ("json_output", json_output),
            ("verbose", verbose),
            ("log_json", log_json),
        )
        if value
    }
    try:
        settings = PipeSettings.load(config_path=config_path, **flags)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc
    except ValidationError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
