"""Shared pytest fixtures and test helpers for cmdpipe tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from cmdpipe import CancellationToken, CommandResult, Dispatcher, Registry
from cmdpipe.services.telemetry import _current_span, disable_telemetry
from tests.sample_app import build_registry


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """The CLI's -v flag enables telemetry in the test's context."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """configure_logging replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("cmdpipe").setLevel(logging.NOTSET)
    structlog.reset_defaults()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def _isolated_cwd(tmp_path: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run from an empty temp dir so no stray cmdpipe.toml is discovered."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CMDPIPE_CONFIG", raising=False)


@pytest.fixture
def registry() -> Registry:
    """Fresh, still-open registry with the sample widget handlers."""
    return build_registry()


@pytest.fixture
def dispatcher(registry: Registry) -> Dispatcher:
    return Dispatcher(registry)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


class CountingHandler:
    """Object-style handler that records every command it sees."""

    def __init__(self, result: CommandResult | None = None) -> None:
        self.calls: list[Any] = []
        self._result = result or CommandResult.success()

    async def handle(self, command: Any, cancellation: CancellationToken) -> CommandResult:
        self.calls.append(command)
        return self._result
