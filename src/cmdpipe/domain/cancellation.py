"""CancellationToken — explicit cancellation/deadline value.

The token travels alongside a command into every validator and the
handler. It fires when ``cancel()`` is called, when its deadline passes,
or when its parent fires. Once fired it stays fired.

Tokens are bound to the event loop that first awaits ``wait()``; cancel
from other threads via ``loop.call_soon_threadsafe(token.cancel)``.
"""

from __future__ import annotations

import asyncio
import time

from cmdpipe.domain.errors import OperationCancelled

DEADLINE_EXCEEDED = "deadline exceeded"


def _deadline_after(seconds: float) -> float:
    if seconds < 0:
        msg = f"timeout must be non-negative, got {seconds}"
        raise ValueError(msg)
    return time.monotonic() + seconds


class CancellationToken:
    """Cooperative cancellation signal with an optional monotonic deadline.

    Usage::

        token = CancellationToken.with_timeout(2.0)
        result = await dispatcher.dispatch(command, token)

        async def handler(command, token):
            token.raise_if_cancelled()
            ...
    """

    def __init__(
        self,
        *,
        deadline: float | None = None,
        parent: CancellationToken | None = None,
    ) -> None:
        self._deadline = deadline
        self._parent = parent
        self._event = asyncio.Event()
        self._reason: str | None = None

    @classmethod
    def none(cls) -> CancellationToken:
        """A token that only fires if ``cancel()`` is called."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> CancellationToken:
        return cls(deadline=_deadline_after(seconds))

    def child(self, timeout: float | None = None) -> CancellationToken:
        """A token that fires with this one or after *timeout* seconds."""
        deadline = None if timeout is None else _deadline_after(timeout)
        return CancellationToken(deadline=deadline, parent=self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def deadline(self) -> float | None:
        """Earliest deadline across this token and its parents."""
        deadlines = [t._deadline for t in self._chain() if t._deadline is not None]
        return min(deadlines) if deadlines else None

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    @property
    def reason(self) -> str | None:
        """Why the token fired, or None while it is still live."""
        for token in self._chain():
            if token._event.is_set():
                return token._reason
            if token._deadline is not None and time.monotonic() >= token._deadline:
                return DEADLINE_EXCEEDED
        return None

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or None without one."""
        deadline = self.deadline
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0.0)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        reason = self.reason
        if reason is not None:
            raise OperationCancelled(reason)

    async def wait(self) -> None:
        """Return once the token fires."""
        # asyncio may wake a timeout slightly before the deadline; re-check.
        while not self.cancelled:
            waiters = [asyncio.ensure_future(t._event.wait()) for t in self._chain()]
            try:
                await asyncio.wait(
                    waiters,
                    timeout=self.remaining(),
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                for waiter in waiters:
                    waiter.cancel()

    def _chain(self) -> list[CancellationToken]:
        chain: list[CancellationToken] = []
        token: CancellationToken | None = self
        while token is not None:
            chain.append(token)
            token = token._parent
        return chain

    def __repr__(self) -> str:
        state = f"cancelled={self.reason!r}" if self.cancelled else "live"
        return f"<CancellationToken {state} deadline={self.deadline}>"
