"""Concurrent dispatches never share state or leak results into each other."""

from __future__ import annotations

import asyncio

import pytest

from cmdpipe import CancellationToken, Command, CommandResult, Dispatcher, Registry
from cmdpipe.domain.faults import CancellationFault, ValidationFault
from cmdpipe.domain.rules import rule
from cmdpipe.services.telemetry import enable_telemetry, get_current_span, trace_span


class Echo(Command):
    n: int


def _echo_registry() -> Registry:
    registry = Registry()
    registry.register_validator(Echo, rule(lambda c: c.n % 7 != 0, "multiples of 7 rejected", field="n"))

    @registry.handles(Echo)
    async def echo(command: Echo, cancellation: CancellationToken) -> CommandResult:
        # Interleave: later commands finish first.
        await asyncio.sleep((1000 - command.n) / 100_000)
        return CommandResult.success(command.n)

    return registry


class TestConcurrentDispatch:
    @pytest.mark.asyncio
    async def test_thousand_dispatches_get_their_own_result(self) -> None:
        dispatcher = Dispatcher(_echo_registry())
        commands = [Echo(n=n) for n in range(1000)]

        results = await asyncio.gather(*(dispatcher.dispatch(c) for c in commands))

        for command, result in zip(commands, results, strict=True):
            if command.n % 7 == 0:
                assert isinstance(result.fault, ValidationFault)
                assert result.fault.violations[0].field == "n"
            else:
                assert result.successful is True
                assert result.object_id == command.n

    @pytest.mark.asyncio
    async def test_cancelling_one_leaves_others(self) -> None:
        dispatcher = Dispatcher(_echo_registry())
        tokens = [CancellationToken.none() for _ in range(20)]
        tokens[3].cancel("only this one")

        results = await asyncio.gather(
            *(dispatcher.dispatch(Echo(n=n + 1), t) for n, t in enumerate(tokens))
        )

        assert isinstance(results[3].fault, CancellationFault)
        assert all(r.successful for i, r in enumerate(results) if i != 3)

    @pytest.mark.asyncio
    async def test_spans_do_not_cross_tasks(self) -> None:
        seen: dict[int, str] = {}
        registry = Registry()

        @registry.handles(Echo)
        async def traced(command: Echo, cancellation: CancellationToken) -> CommandResult:
            with trace_span(f"work-{command.n}"):
                await asyncio.sleep(0.001)
                span = get_current_span()
                assert span is not None
                seen[command.n] = span.name
            return CommandResult.success(command.n)

        enable_telemetry()
        dispatcher = Dispatcher(registry)
        await asyncio.gather(*(dispatcher.dispatch(Echo(n=n)) for n in range(50)))

        assert seen == {n: f"work-{n}" for n in range(50)}
