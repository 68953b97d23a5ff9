"""Structured faults carried inside a failed CommandResult.

Faults are values, not exceptions. The one exception-shaped thing a fault
may hold is the original error behind a ``HandlerFault``, kept for
diagnostics and excluded from serialization.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cmdpipe.domain.errors import OperationCancelled


class FaultCategory(StrEnum):
    """High-level fault categories for routing and rendering."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    HANDLER = "handler"
    CANCELLED = "cancelled"


class Violation(BaseModel):
    """One broken rule reported by a validator."""

    model_config = ConfigDict(frozen=True)

    message: str
    field: str | None = None
    code: str = "invalid"

    def describe(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


class Fault(BaseModel):
    """Base fault: a category plus a human-readable message.

    Attributes:
        category: Which branch of the taxonomy this fault belongs to.
        message: Text surfaced as ``CommandResult.error_message``.
        exception: Underlying error, if any. Never serialized.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    category: FaultCategory
    message: str
    exception: BaseException | None = Field(default=None, exclude=True, repr=False)


class ValidationFault(Fault):
    """One or more rule violations found before the handler ran."""

    category: FaultCategory = FaultCategory.VALIDATION
    message: str = "Validation failed."
    violations: tuple[Violation, ...] = ()

    @classmethod
    def from_violations(cls, violations: list[Violation] | tuple[Violation, ...]) -> ValidationFault:
        if not violations:
            msg = "ValidationFault requires at least one violation"
            raise ValueError(msg)
        detail = "; ".join(v.describe() for v in violations)
        return cls(message=f"Validation failed: {detail}", violations=tuple(violations))


class EntityNotFoundFault(Fault):
    """A handler looked up an entity that does not exist."""

    category: FaultCategory = FaultCategory.NOT_FOUND
    entity_name: str
    object_id: str

    @classmethod
    def for_entity(cls, entity_name: str, object_id: Any) -> EntityNotFoundFault:
        oid = str(object_id)
        return cls(
            message=f"{entity_name} with id '{oid}' was not found.",
            entity_name=entity_name,
            object_id=oid,
        )


class HandlerFault(Fault):
    """An unexpected error escaped a handler or validator.

    ``stage`` records where it happened (``"handler"`` or ``"validation"``).
    """

    category: FaultCategory = FaultCategory.HANDLER
    exception_type: str | None = None
    stage: str = "handler"

    @classmethod
    def from_exception(cls, exc: BaseException, *, stage: str = "handler") -> HandlerFault:
        text = str(exc)
        name = type(exc).__name__
        return cls(
            message=f"{name}: {text}" if text else name,
            exception=exc,
            exception_type=f"{type(exc).__module__}.{type(exc).__qualname__}",
            stage=stage,
        )


class CancellationFault(Fault):
    """Dispatch stopped because the cancellation token fired."""

    category: FaultCategory = FaultCategory.CANCELLED
    message: str = "Operation was cancelled."
    reason: str | None = None

    @classmethod
    def from_reason(cls, reason: str | None) -> CancellationFault:
        if not reason:
            return cls()
        return cls(message=f"Operation was cancelled: {reason}", reason=reason)


def fault_from_exception(exc: BaseException, *, stage: str = "handler") -> Fault:
    """Map a raised exception onto the fault taxonomy."""
    if isinstance(exc, OperationCancelled):
        return CancellationFault.from_reason(exc.reason).model_copy(update={"exception": exc})
    return HandlerFault.from_exception(exc, stage=stage)
