"""Tests for EventBus: plugin failures never become dispatch errors."""

from __future__ import annotations

import logging
import threading
from typing import Any

import pytest

from cmdpipe.plugins.event_bus import EventBus
from cmdpipe.plugins.hookspecs import hookimpl
from cmdpipe.plugins.manager import PluginManager


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []

    @hookimpl
    def pre_dispatch(self, command_type: str, command: Any) -> None:
        self.calls.append((command_type, threading.get_ident()))


class _Raising:
    @hookimpl
    def pre_dispatch(self, command_type: str) -> None:
        raise ValueError("plugin bug")


def _bus(*plugins: object, sync: bool = True) -> EventBus:
    pm = PluginManager()
    for plugin in plugins:
        pm.register_plugin(plugin)
    return EventBus(pm, sync=sync)


class TestSyncBus:
    def test_runs_inline(self) -> None:
        recorder = _Recorder()
        bus = _bus(recorder)
        bus.dispatch("pre_dispatch", {"command_type": "CreateWidget", "command": None})
        assert recorder.calls == [("CreateWidget", threading.get_ident())]

    def test_failure_counted_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        bus = _bus(_Raising())
        with caplog.at_level(logging.WARNING, logger="cmdpipe"):
            bus.dispatch("pre_dispatch", {"command_type": "CreateWidget", "command": None})
        assert bus.failures == 1
        assert any("pre_dispatch" in r.getMessage() for r in caplog.records)

    def test_unknown_hook_ignored(self) -> None:
        bus = _bus()
        bus.dispatch("not_a_hook", {})
        assert bus.failures == 0


class TestAsyncBus:
    def test_drain_waits_for_workers(self) -> None:
        recorder = _Recorder()
        bus = _bus(recorder, sync=False)
        for name in ("A", "B", "C"):
            bus.dispatch("pre_dispatch", {"command_type": name, "command": None})

        bus.drain()
        assert bus.pending == 0
        assert sorted(c for c, _ in recorder.calls) == ["A", "B", "C"]
        assert all(ident != threading.get_ident() for _, ident in recorder.calls)
        bus.shutdown()

    def test_shutdown_is_idempotent(self) -> None:
        bus = _bus(_Raising(), sync=False)
        bus.dispatch("pre_dispatch", {"command_type": "X", "command": None})
        bus.shutdown()
        bus.shutdown()
        assert bus.failures == 1

    def test_finished_calls_are_not_retained(self) -> None:
        gate = threading.Event()

        class _Gated:
            @hookimpl
            def pre_dispatch(self, command_type: str) -> None:
                gate.wait(5)

        bus = _bus(_Gated(), sync=False)
        for _ in range(50):
            bus.dispatch("pre_dispatch", {"command_type": "X", "command": None})
        assert bus.pending > 0

        gate.set()
        assert bus.drain() <= 50
        assert bus.pending == 0
        bus.shutdown()
