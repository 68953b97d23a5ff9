"""Per-dispatch timing spans.

A dispatch opens a root span when telemetry is on (``-v``) or forced by
``[dispatch] trace = true``; the dispatcher nests ``validate`` and
``handle`` under it. The finished tree is logged through structlog and
handed to the ``post_dispatch`` hook.

Spans live in ContextVars, so every asyncio task sees only its own tree.
With telemetry off the cost is one ContextVar lookup per span.
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog

_enabled: ContextVar[bool] = ContextVar("cmdpipe_telemetry", default=False)
_current_span: ContextVar[Span | None] = ContextVar("cmdpipe_current_span", default=None)

log = structlog.get_logger("cmdpipe.telemetry")


@dataclass
class Span:
    """One timed step. ``children`` are the steps opened inside it."""

    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def end(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def child(self, name: str) -> Span:
        span = Span(name=name)
        self.children.append(span)
        return span

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@contextmanager
def _activate(span: Span) -> Generator[Span]:
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


@contextmanager
def root_span(name: str, *, force: bool = False) -> Generator[Span | None]:
    """Open the top-level span of one dispatch.

    Yields None when telemetry is off and *force* is False.
    """
    if not (force or _enabled.get()):
        yield None
        return
    span = Span(name=name)
    try:
        with _activate(span):
            yield span
    finally:
        log.debug(
            "span.complete",
            span_name=span.name,
            duration_ms=round(span.duration_ms, 2),
            children=len(span.children),
            **span.annotations,
        )


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child of the current span; yields None outside a root span."""
    parent = _current_span.get()
    if parent is None:
        yield None
        return
    with _activate(parent.child(name)) as span:
        yield span


def enable_telemetry() -> None:
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def telemetry_enabled() -> bool:
    return _enabled.get()


def get_current_span() -> Span | None:
    """The innermost open span, for manual annotation inside a handler."""
    return _current_span.get()
