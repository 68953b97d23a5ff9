"""CommandResult — the uniform dispatch envelope.

INVARIANT: Every dispatch returns exactly one of four shapes, built by the
factories below: ``error``, ``not_found``, ``success()`` or
``success(object_id)``. Callers only ever branch on ``successful``.
"""

from __future__ import annotations

from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, SerializeAsAny, computed_field, model_validator

from cmdpipe.domain.faults import EntityNotFoundFault, Fault, fault_from_exception

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."

ObjectId = UUID | int | str


class CommandResult(BaseModel):
    """Outcome of a single dispatch.

    Attributes:
        successful: Whether the command took effect.
        object_id: Identifier of the affected entity, success only.
        fault: Structured cause, failure only.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    successful: bool
    object_id: ObjectId | None = None
    fault: SerializeAsAny[Fault] | None = None

    @model_validator(mode="after")
    def _check_shape(self) -> Self:
        if self.successful and self.fault is not None:
            msg = "A successful result cannot carry a fault"
            raise ValueError(msg)
        if not self.successful and self.fault is None:
            msg = "A failed result must carry a fault"
            raise ValueError(msg)
        if not self.successful and self.object_id is not None:
            msg = "object_id is only set on successful results"
            raise ValueError(msg)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def error_message(self) -> str:
        if self.fault is None:
            return UNKNOWN_ERROR_MESSAGE
        return self.fault.message

    # -- factories --------------------------------------------------------

    @classmethod
    def error(cls, cause: Fault | BaseException) -> CommandResult:
        """Failed result. Exceptions are wrapped in a HandlerFault."""
        if cause is None:
            msg = "CommandResult.error() requires a cause"
            raise TypeError(msg)
        if isinstance(cause, BaseException):
            cause = fault_from_exception(cause)
        if not isinstance(cause, Fault):
            msg = f"cause must be a Fault or an exception, got {type(cause).__name__}"
            raise TypeError(msg)
        return cls(successful=False, fault=cause)

    @classmethod
    def not_found(cls, entity_name: str, object_id: Any) -> CommandResult:
        return cls(successful=False, fault=EntityNotFoundFault.for_entity(entity_name, object_id))

    @classmethod
    def success(cls, object_id: ObjectId | None = None) -> CommandResult:
        return cls(successful=True, object_id=object_id)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe payload for transport collaborators."""
        return self.model_dump(mode="json")
