"""Tests for CancellationToken."""

from __future__ import annotations

import asyncio
import time

import pytest

from cmdpipe.domain.cancellation import DEADLINE_EXCEEDED, CancellationToken
from cmdpipe.domain.errors import OperationCancelled


class TestState:
    def test_none_token_is_live(self) -> None:
        token = CancellationToken.none()
        assert token.cancelled is False
        assert token.reason is None
        assert token.deadline is None
        assert token.remaining() is None
        token.raise_if_cancelled()

    def test_cancel_sets_reason(self) -> None:
        token = CancellationToken.none()
        token.cancel("user pressed stop")
        assert token.cancelled is True
        assert token.reason == "user pressed stop"

    def test_first_cancel_reason_wins(self) -> None:
        token = CancellationToken.none()
        token.cancel("first")
        token.cancel("second")
        assert token.reason == "first"

    def test_raise_if_cancelled(self) -> None:
        token = CancellationToken.none()
        token.cancel("stop")
        with pytest.raises(OperationCancelled) as excinfo:
            token.raise_if_cancelled()
        assert excinfo.value.reason == "stop"

    def test_expired_deadline(self) -> None:
        token = CancellationToken.with_timeout(0)
        assert token.cancelled is True
        assert token.reason == DEADLINE_EXCEEDED
        assert token.remaining() == 0.0

    def test_future_deadline(self) -> None:
        token = CancellationToken.with_timeout(60)
        assert token.cancelled is False
        remaining = token.remaining()
        assert remaining is not None
        assert 0 < remaining <= 60

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValueError):
            CancellationToken.with_timeout(-1)


class TestChild:
    def test_child_fires_with_parent(self) -> None:
        parent = CancellationToken.none()
        child = parent.child()
        parent.cancel("shutdown")
        assert child.cancelled is True
        assert child.reason == "shutdown"

    def test_child_cancel_does_not_touch_parent(self) -> None:
        parent = CancellationToken.none()
        child = parent.child()
        child.cancel("just me")
        assert parent.cancelled is False

    def test_child_inherits_earlier_deadline(self) -> None:
        parent = CancellationToken.with_timeout(1)
        child = parent.child(timeout=60)
        assert child.deadline == parent.deadline

    def test_child_own_deadline(self) -> None:
        parent = CancellationToken.none()
        child = parent.child(timeout=0)
        assert child.cancelled is True
        assert parent.cancelled is False

    def test_child_negative_timeout_rejected(self) -> None:
        parent = CancellationToken.none()
        with pytest.raises(ValueError, match="non-negative"):
            parent.child(timeout=-0.5)


class TestWait:
    @pytest.mark.asyncio
    async def test_wait_returns_on_cancel(self) -> None:
        token = CancellationToken.none()
        asyncio.get_running_loop().call_later(0.01, token.cancel, "later")
        await asyncio.wait_for(token.wait(), timeout=1)
        assert token.reason == "later"

    @pytest.mark.asyncio
    async def test_wait_returns_on_deadline(self) -> None:
        token = CancellationToken.with_timeout(0.02)
        started = time.monotonic()
        await asyncio.wait_for(token.wait(), timeout=1)
        assert time.monotonic() - started >= 0.015
        assert token.reason == DEADLINE_EXCEEDED

    @pytest.mark.asyncio
    async def test_wait_returns_on_parent_cancel(self) -> None:
        parent = CancellationToken.none()
        child = parent.child()
        asyncio.get_running_loop().call_later(0.01, parent.cancel, "parent")
        await asyncio.wait_for(child.wait(), timeout=1)
        assert child.reason == "parent"

    @pytest.mark.asyncio
    async def test_wait_on_fired_token_is_immediate(self) -> None:
        token = CancellationToken.none()
        token.cancel()
        await asyncio.wait_for(token.wait(), timeout=0.1)
