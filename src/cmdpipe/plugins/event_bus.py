"""Lifecycle event fan-out via pluggy, inline or on a ThreadPoolExecutor.

The dispatcher emits events through this bus so that no plugin can alter
or break a dispatch result.

INVARIANT: Plugin failures are warnings, never errors.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cmdpipe.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class EventBus:
    """Fire pluggy hooks for dispatch lifecycle events.

    Parameters:
        plugin_manager: Loaded PluginManager for hook dispatch.
        sync: Run hooks inline on the dispatching thread (default). When
            False, hooks run on a ThreadPoolExecutor and ``drain()`` waits
            for them.
        max_workers: ThreadPoolExecutor worker count.
    """

    def __init__(
        self,
        plugin_manager: PluginManager,
        *,
        sync: bool = True,
        max_workers: int = 2,
    ) -> None:
        self._pm = plugin_manager
        self._sync = sync
        self._executor: ThreadPoolExecutor | None = (
            None if sync else ThreadPoolExecutor(max_workers=max_workers)
        )
        self._futures: set[Future[bool]] = set()
        self._failures = 0
        self._lock = threading.Lock()

    @property
    def failures(self) -> int:
        """Number of hook calls that raised since construction."""
        return self._failures

    @property
    def pending(self) -> int:
        """Hook calls submitted to the worker pool and not yet finished."""
        with self._lock:
            return len(self._futures)

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> None:
        """Fire *hook_name* with *payload* as keyword arguments."""
        if self._executor is None:
            self._execute_hook(hook_name, payload)
            return
        future = self._executor.submit(self._execute_hook, hook_name, payload)
        with self._lock:
            self._futures.add(future)
        # Runs immediately if the hook already finished.
        future.add_done_callback(self._forget)

    def drain(self) -> int:
        """Wait for in-flight hook calls. Returns how many were still pending."""
        with self._lock:
            futures = list(self._futures)
        for future in futures:
            future.result(timeout=30)
        with self._lock:
            self._futures.difference_update(futures)
        return len(futures)

    def shutdown(self) -> None:
        """Wait for pending hook calls and stop the worker pool."""
        self.drain()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _forget(self, future: Future[bool]) -> None:
        with self._lock:
            self._futures.discard(future)

    def _execute_hook(self, hook_name: str, payload: dict[str, Any]) -> bool:
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return True
        try:
            hook_fn(**payload)
        except Exception:
            with self._lock:
                self._failures += 1
            logger.warning("Plugin hook %s failed", hook_name, exc_info=True)
            return False
        return True
