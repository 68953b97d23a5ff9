"""Sample wiring used by CLI tests as ``tests.sample_app:<attr>``."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from cmdpipe import CancellationToken, Command, CommandResult, Registry
from cmdpipe.domain.rules import max_length, not_empty


class CreateWidget(Command):
    name: str


class DeleteWidget(Command):
    widget_id: int


class ExplodeWidget(Command):
    reason: str = "boom"


class SlowWidget(Command):
    seconds: float = 5.0


@dataclass(frozen=True)
class PingWidget:
    """Plain dataclass command, no Command base."""

    label: str = "ping"

    def __post_init__(self) -> None:
        if not self.label:
            raise ValueError("label must not be empty")


def build_registry() -> Registry:
    """Fresh registry backed by its own in-memory store."""
    store: dict[int, str] = {}
    registry = Registry()

    registry.register_validator(CreateWidget, not_empty("name"))
    registry.register_validator(CreateWidget, max_length("name", 20))

    @registry.handles(CreateWidget)
    def create_widget(command: CreateWidget, cancellation: CancellationToken) -> CommandResult:
        widget_id = len(store) + 1
        store[widget_id] = command.name
        return CommandResult.success(widget_id)

    @registry.handles(DeleteWidget)
    async def delete_widget(command: DeleteWidget, cancellation: CancellationToken) -> CommandResult:
        if store.pop(command.widget_id, None) is None:
            return CommandResult.not_found("Widget", command.widget_id)
        return CommandResult.success(command.widget_id)

    @registry.handles(ExplodeWidget)
    async def explode_widget(command: ExplodeWidget, cancellation: CancellationToken) -> CommandResult:
        raise RuntimeError(command.reason)

    @registry.handles(SlowWidget)
    async def slow_widget(command: SlowWidget, cancellation: CancellationToken) -> CommandResult:
        await asyncio.sleep(command.seconds)
        return CommandResult.success()

    @registry.handles(PingWidget)
    def ping_widget(command: PingWidget, cancellation: CancellationToken) -> CommandResult:
        return CommandResult.success(command.label)

    return registry


registry = build_registry()


def build_broken_registry() -> Registry:
    broken = Registry()
    broken.register_validator(DeleteWidget, not_empty("widget_id"))
    broken.register(CreateWidget, lambda command, cancellation: CommandResult.success())
    return broken


empty_registry = Registry()


def empty_registry_factory() -> Registry:
    return Registry()


frozen_registry = build_registry().freeze()

not_a_registry = 42
