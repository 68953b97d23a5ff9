"""Command: build one command from JSON and dispatch it."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

import click
from pydantic import BaseModel, ValidationError

from cmdpipe.commands._base import PipeCommand
from cmdpipe.domain.faults import ValidationFault, Violation
from cmdpipe.domain.result import CommandResult
from cmdpipe.plugins.hookspecs import hookimpl

if TYPE_CHECKING:
    from cmdpipe.commands._context import AppContext


class _TelemetryCapture:
    """Internal plugin that keeps the span tree of the last dispatch."""

    def __init__(self) -> None:
        self.telemetry: dict[str, Any] | None = None

    @hookimpl
    def post_dispatch(self, telemetry: dict[str, Any] | None) -> None:
        self.telemetry = telemetry


def _violations_from(exc: ValidationError) -> list[Violation]:
    return [
        Violation(
            field=".".join(str(part) for part in err["loc"]) or None,
            message=err["msg"],
            code=err["type"],
        )
        for err in exc.errors()
    ]


def _build_command(command_type: type, data: dict[str, Any]) -> Any:
    if issubclass(command_type, BaseModel):
        return command_type.model_validate(data)
    return command_type(**data)


@click.command(
    cls=PipeCommand,
    examples="""\
  cmdpipe dispatch myapp.wiring:registry CreateWidget --data '{"name": "sprocket"}'
  cmdpipe dispatch myapp.wiring:registry RenameWidget -d '{"id": 7, "name": "x"}' --timeout 2
  cmdpipe --json -v dispatch myapp.wiring:registry DeleteWidget -d '{"id": 7}'""",
)
@click.argument("target")
@click.argument("command_name")
@click.option("-d", "--data", default="{}", help="Command fields as a JSON object.")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Cancel after this many seconds.",
)
@click.pass_obj
def dispatch(
    app: AppContext,
    target: str,
    command_name: str,
    data: str,
    timeout: float | None,
) -> None:
    """Dispatch COMMAND_NAME from the registry at TARGET.

    Exits 1 when the result is unsuccessful, 2 on wiring errors.
    """
    from cmdpipe.domain.cancellation import CancellationToken
    from cmdpipe.domain.errors import ConfigurationError
    from cmdpipe.output.renderers import render_result
    from cmdpipe.plugins.event_bus import EventBus
    from cmdpipe.services.dispatcher import Dispatcher
    from cmdpipe.services.loader import load_registry

    try:
        fields = json.loads(data)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--data") from exc
    if not isinstance(fields, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--data")

    try:
        registry = load_registry(target, plugin_manager=app.plugins)
        command_type = registry.find(command_name)
    except (ConfigurationError, KeyError) as exc:
        app.fail_configuration(exc.args[0] if exc.args else str(exc))
        return

    capture = _TelemetryCapture()
    app.plugins.register_plugin(capture, name="cmdpipe.cli.telemetry")
    bus = EventBus(app.plugins)
    dispatcher = Dispatcher(registry, settings=app.settings, event_bus=bus)

    try:
        command = _build_command(command_type, fields)
    except ValidationError as exc:
        result = CommandResult.error(ValidationFault.from_violations(_violations_from(exc)))
    except (TypeError, ValueError) as exc:
        # Dataclass commands: unknown fields or a rejecting __post_init__.
        result = CommandResult.error(ValidationFault.from_violations([Violation(message=str(exc))]))
    else:
        token = CancellationToken.with_timeout(timeout) if timeout is not None else None
        result = asyncio.run(dispatcher.dispatch(command, token))
    finally:
        bus.shutdown()

    output = render_result(
        result,
        op=command_type.__name__,
        json_output=app.json_output,
        telemetry=capture.telemetry,
    )
    app.emit(output, ok=result.successful)
