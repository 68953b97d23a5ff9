"""Reusable validator building blocks.

Each factory returns a plain validator callable that reports every
violation it finds on a single command.
"""

from __future__ import annotations

from collections.abc import Callable, Sized
from typing import TYPE_CHECKING, Any

from cmdpipe.domain.faults import Violation

if TYPE_CHECKING:
    from cmdpipe.domain.cancellation import CancellationToken

RuleFunc = Callable[[Any, "CancellationToken"], list[Violation]]


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def not_empty(*fields: str) -> RuleFunc:
    """Reject None, blank strings and empty collections on *fields*."""
    if not fields:
        msg = "not_empty() needs at least one field name"
        raise ValueError(msg)

    def check(command: Any, cancellation: CancellationToken) -> list[Violation]:
        return [
            Violation(field=name, message="must not be empty", code="empty")
            for name in fields
            if _is_empty(getattr(command, name, None))
        ]

    check.__name__ = f"not_empty({', '.join(fields)})"
    return check


def max_length(field: str, limit: int) -> RuleFunc:
    """Reject values of *field* longer than *limit*."""

    def check(command: Any, cancellation: CancellationToken) -> list[Violation]:
        value = getattr(command, field, None)
        if isinstance(value, Sized) and len(value) > limit:
            return [
                Violation(
                    field=field,
                    message=f"must be at most {limit} long (got {len(value)})",
                    code="too_long",
                )
            ]
        return []

    check.__name__ = f"max_length({field}, {limit})"
    return check


def rule(
    predicate: Callable[[Any], bool],
    message: str,
    *,
    field: str | None = None,
    code: str = "invalid",
) -> RuleFunc:
    """Wrap a boolean *predicate* over the command into a validator."""

    def check(command: Any, cancellation: CancellationToken) -> list[Violation]:
        if predicate(command):
            return []
        return [Violation(field=field, message=message, code=code)]

    check.__name__ = f"rule({code})"
    return check
