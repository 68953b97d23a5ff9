"""Command values and the callables that act on them.

A command is an immutable intent-to-act value. It carries input only and
is identified by its concrete class: the registry keys on ``type(command)``.
Subclassing :class:`Command` is the common path, but any class works.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from cmdpipe.domain.cancellation import CancellationToken
    from cmdpipe.domain.faults import Violation
    from cmdpipe.domain.result import CommandResult


class Command(BaseModel):
    """Base class for pydantic command values. Frozen after construction."""

    model_config = ConfigDict(frozen=True)


ValidatorOutput = Iterable["Violation | str"]


class HandlerFunc(Protocol):
    def __call__(
        self, command: Any, cancellation: CancellationToken
    ) -> CommandResult | Awaitable[CommandResult]: ...


class ValidatorFunc(Protocol):
    def __call__(
        self, command: Any, cancellation: CancellationToken
    ) -> ValidatorOutput | Awaitable[ValidatorOutput]: ...


@runtime_checkable
class CommandHandler(Protocol):
    """Object-style handler: anything with a ``handle`` method."""

    def handle(
        self, command: Any, cancellation: CancellationToken
    ) -> CommandResult | Awaitable[CommandResult]: ...


@runtime_checkable
class CommandValidator(Protocol):
    """Object-style validator: anything with a ``validate`` method."""

    def validate(
        self, command: Any, cancellation: CancellationToken
    ) -> ValidatorOutput | Awaitable[ValidatorOutput]: ...


Handler = HandlerFunc | CommandHandler
Validator = ValidatorFunc | CommandValidator
