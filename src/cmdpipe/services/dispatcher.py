"""Dispatcher — resolve, validate, invoke, normalize.

INVARIANT: ``dispatch`` returns a CommandResult for every command whose type
is registered. The only exceptions that leave it are ``HandlerNotFoundError``
(a wiring defect) and ``asyncio.CancelledError`` when the calling task
itself is cancelled.

Per-call states::

    RESOLVED → VALIDATING → SHORT_CIRCUITED
                          → INVOKING → RETURNED
                                     → NORMALIZED
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

from cmdpipe.config.models import DispatchConfig
from cmdpipe.domain.cancellation import CancellationToken
from cmdpipe.domain.errors import OperationCancelled
from cmdpipe.domain.faults import CancellationFault, HandlerFault, ValidationFault
from cmdpipe.domain.result import CommandResult
from cmdpipe.services.telemetry import root_span, trace_span
from cmdpipe.services.validation import ValidationStage

if TYPE_CHECKING:
    from cmdpipe.config.settings import PipeSettings
    from cmdpipe.domain.commands import HandlerFunc
    from cmdpipe.plugins.event_bus import EventBus
    from cmdpipe.services.registry import Registry, Resolution

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class DispatchState(StrEnum):
    RESOLVED = "resolved"
    VALIDATING = "validating"
    SHORT_CIRCUITED = "short_circuited"
    INVOKING = "invoking"
    RETURNED = "returned"
    NORMALIZED = "normalized"


async def _invoke(handler: HandlerFunc, command: Any, token: CancellationToken) -> Any:
    out = handler(command, token)
    if inspect.isawaitable(out):
        return await out
    # A synchronous handler blocks the loop, so the token could not interrupt it.
    token.raise_if_cancelled()
    return out


def _consume(task: asyncio.Future[Any]) -> None:
    # Abandoned work: retrieve the outcome so asyncio does not warn about it.
    if not task.cancelled():
        task.exception()


async def _race(work: Awaitable[_T], token: CancellationToken) -> _T:
    """Await *work* unless *token* fires first.

    Raises:
        OperationCancelled: The token fired before *work* finished. *work*
            is cancelled and left to unwind on its own.
    """
    if token.cancelled:
        if inspect.iscoroutine(work):
            work.close()
        raise OperationCancelled(token.reason)
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        watcher.cancel()

    if task.done():
        return task.result()
    task.cancel()
    task.add_done_callback(_consume)
    raise OperationCancelled(token.reason)


class Dispatcher:
    """Single runtime entry point: one command in, one CommandResult out.

    The dispatcher owns its registry and freezes it on construction;
    registration has to finish before dispatch traffic starts.

    Parameters:
        registry: Fully populated registry.
        settings: Source of ``[dispatch]`` defaults (timeout, tracing).
        event_bus: Optional plugin event fan-out.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        settings: PipeSettings | None = None,
        event_bus: EventBus | None = None,
        validation: ValidationStage | None = None,
    ) -> None:
        self._registry = registry.freeze()
        self._config = settings.dispatch if settings is not None else DispatchConfig()
        self._bus = event_bus
        self._validation = validation or ValidationStage()

    @property
    def registry(self) -> Registry:
        return self._registry

    def new_token(self) -> CancellationToken:
        """Token honoring ``[dispatch] default_timeout``."""
        if self._config.default_timeout is None:
            return CancellationToken.none()
        return CancellationToken.with_timeout(self._config.default_timeout)

    async def dispatch(
        self,
        command: Any,
        cancellation: CancellationToken | None = None,
    ) -> CommandResult:
        """Run *command* through validation and its handler.

        An async handler is cancelled as soon as the token fires. A synchronous
        handler runs to completion; if the token fired meanwhile, its return
        value is discarded and a CancellationFault is returned instead.

        Raises:
            HandlerNotFoundError: No handler is registered for ``type(command)``.
        """
        resolution = self._registry.resolve(type(command))
        token = cancellation if cancellation is not None else self.new_token()
        name = resolution.command_type.__qualname__
        started = time.perf_counter()

        with root_span(f"dispatch:{name}", force=self._config.trace) as span:
            self._emit("pre_dispatch", command_type=name, command=command)
            result, state = await self._run(resolution, command, token)
            if span is not None:
                span.annotate("command", name)
                span.annotate("state", state.value)

        duration_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.debug(
            "dispatch.complete command=%s state=%s successful=%s duration_ms=%s",
            name,
            state.value,
            result.successful,
            duration_ms,
        )
        self._emit(
            "post_dispatch",
            command_type=name,
            command=command,
            result=result,
            state=state.value,
            duration_ms=duration_ms,
            telemetry=span.to_dict() if span is not None else None,
        )
        return result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _run(
        self,
        resolution: Resolution,
        command: Any,
        token: CancellationToken,
    ) -> tuple[CommandResult, DispatchState]:
        name = resolution.command_type.__qualname__
        try:
            if resolution.validators:
                with trace_span("validate"):
                    rejected = await _race(
                        self._validation.run(command, resolution.validators, token),
                        token,
                    )
                if rejected is not None:
                    self._report_rejection(name, rejected)
                    return rejected, DispatchState.SHORT_CIRCUITED

            with trace_span("handle"):
                outcome = await _race(_invoke(resolution.handler, command, token), token)
        except OperationCancelled as exc:
            return self._cancelled(name, exc.reason), DispatchState.NORMALIZED
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            # The handler's own task was cancelled from inside.
            return self._cancelled(name, token.reason), DispatchState.NORMALIZED
        except Exception as exc:
            return self._normalize(name, HandlerFault.from_exception(exc)), DispatchState.NORMALIZED

        if not isinstance(outcome, CommandResult):
            fault = HandlerFault(
                message=f"Handler for {name} returned {type(outcome).__name__}, "
                "expected CommandResult",
            )
            return self._normalize(name, fault), DispatchState.NORMALIZED
        return outcome, DispatchState.RETURNED

    def _normalize(self, name: str, fault: HandlerFault) -> CommandResult:
        logger.warning(
            "dispatch.fault command=%s fault=%s",
            name,
            fault.message,
            exc_info=fault.exception,
        )
        self._emit("post_handler_fault", command_type=name, fault=fault)
        return CommandResult.error(fault)

    def _cancelled(self, name: str, reason: str | None) -> CommandResult:
        logger.info("dispatch.cancelled command=%s reason=%s", name, reason)
        self._emit("post_cancellation", command_type=name, reason=reason)
        return CommandResult.error(CancellationFault.from_reason(reason))

    def _report_rejection(self, name: str, rejected: CommandResult) -> None:
        fault = rejected.fault
        if isinstance(fault, ValidationFault):
            logger.debug("dispatch.rejected command=%s violations=%d", name, len(fault.violations))
            self._emit(
                "post_validation_failure",
                command_type=name,
                violations=[v.model_dump() for v in fault.violations],
            )
        elif isinstance(fault, HandlerFault):
            self._emit("post_handler_fault", command_type=name, fault=fault)

    def _emit(self, hook_name: str, **payload: Any) -> None:
        if self._bus is not None:
            self._bus.dispatch(hook_name, payload)
