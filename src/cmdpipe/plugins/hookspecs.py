"""Pluggy hook specifications for dispatch lifecycle events.

Five lifecycle events fire around each dispatch. One setup-time hook lets
plugins contribute handlers and validators before the registry is frozen.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from cmdpipe.domain.faults import Fault
    from cmdpipe.domain.result import CommandResult
    from cmdpipe.services.registry import Registry

hookspec = pluggy.HookspecMarker("cmdpipe")
hookimpl = pluggy.HookimplMarker("cmdpipe")


class CmdpipeHookSpec:
    """Hook specifications for the cmdpipe plugin system."""

    @hookspec
    def pre_dispatch(self, command_type: str, command: Any) -> None:
        """Called after resolution, before validators run."""

    @hookspec
    def post_dispatch(
        self,
        command_type: str,
        command: Any,
        result: CommandResult,
        state: str,
        duration_ms: float,
        telemetry: dict[str, Any] | None,
    ) -> None:
        """Called once per dispatch with the final result and terminal state."""

    @hookspec
    def post_validation_failure(
        self,
        command_type: str,
        violations: list[dict[str, Any]],
    ) -> None:
        """Called when validation short-circuits a dispatch."""

    @hookspec
    def post_handler_fault(self, command_type: str, fault: Fault) -> None:
        """Called when an unexpected error is normalized into a result."""

    @hookspec
    def post_cancellation(self, command_type: str, reason: str | None) -> None:
        """Called when a dispatch ends because its token fired."""

    @hookspec
    def register_handlers(self, registry: Registry) -> None:
        """Register handlers/validators on *registry* before it is frozen."""
