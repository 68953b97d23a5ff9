"""Registry — command type → one handler, many validators.

Built once at startup, then frozen. Lookups after freezing are plain
dict reads, safe under any amount of concurrent dispatch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from cmdpipe.domain.commands import (
    CommandHandler,
    CommandValidator,
    Handler,
    HandlerFunc,
    Validator,
    ValidatorFunc,
)
from cmdpipe.domain.errors import DuplicateHandlerError, HandlerNotFoundError, RegistryFrozenError

logger = logging.getLogger(__name__)

_F = TypeVar("_F")


@dataclass(frozen=True)
class Resolution:
    """What the dispatcher needs to run one command type."""

    command_type: type
    handler: HandlerFunc
    validators: tuple[ValidatorFunc, ...]


def _as_callable(obj: Any, protocol: type, method: str, role: str) -> Callable[..., Any]:
    """Accept a plain callable or an instance exposing *method*.

    Raises:
        TypeError: *obj* is a class (its *method* would be unbound), or
            neither callable nor an instance of *protocol*.
    """
    if isinstance(obj, type):
        msg = f"{role} {obj.__qualname__} is a class; register an instance of it"
        raise TypeError(msg)
    if isinstance(obj, protocol):
        bound = getattr(obj, method)
        if callable(bound):
            return bound
    if callable(obj):
        return obj
    msg = f"{role} must be callable or define {method}(), got {type(obj).__name__}"
    raise TypeError(msg)


def _check_command_type(command_type: Any) -> None:
    if not isinstance(command_type, type):
        msg = f"command_type must be a class, got {command_type!r}"
        raise TypeError(msg)


class Registry:
    """Binding table for command dispatch.

    Usage::

        registry = Registry()

        @registry.handles(CreateWidget)
        async def create_widget(command, cancellation):
            ...
            return CommandResult.success(widget.id)

        registry.register_validator(CreateWidget, not_empty("name"))
    """

    def __init__(self) -> None:
        self._handlers: dict[type, HandlerFunc] = {}
        self._validators: dict[type, list[ValidatorFunc]] = {}
        self._frozen = False

    # ------------------------------------------------------------------
    # Registration (startup only)
    # ------------------------------------------------------------------

    def register(self, command_type: type, handler: Handler) -> None:
        """Bind *handler* to *command_type*.

        Raises:
            DuplicateHandlerError: *command_type* already has a handler.
            RegistryFrozenError: The registry has been frozen.
            TypeError: *command_type* is not a class, or *handler* is a class or
                neither callable nor a CommandHandler.
        """
        _check_command_type(command_type)
        self._ensure_mutable(command_type)
        if command_type in self._handlers:
            raise DuplicateHandlerError(command_type)
        self._handlers[command_type] = _as_callable(handler, CommandHandler, "handle", "handler")
        logger.debug("Registered handler for %s", command_type.__qualname__)

    def register_validator(self, command_type: type, validator: Validator) -> None:
        """Append *validator* to the validators of *command_type*.

        Raises:
            RegistryFrozenError: The registry has been frozen.
            TypeError: Same rules as :meth:`register`.
        """
        _check_command_type(command_type)
        self._ensure_mutable(command_type)
        fn = _as_callable(validator, CommandValidator, "validate", "validator")
        self._validators.setdefault(command_type, []).append(fn)
        logger.debug("Registered validator for %s", command_type.__qualname__)

    def handles(self, command_type: type) -> Callable[[_F], _F]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: _F) -> _F:
            self.register(command_type, handler)
            return handler

        return decorator

    def validates(self, command_type: type) -> Callable[[_F], _F]:
        """Decorator form of :meth:`register_validator`."""

        def decorator(validator: _F) -> _F:
            self.register_validator(command_type, validator)
            return validator

        return decorator

    def freeze(self) -> Registry:
        """Reject further registration. Idempotent."""
        if not self._frozen:
            self._frozen = True
            logger.debug("Registry frozen with %d command types", len(self._handlers))
        return self

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, command_type: type) -> Resolution:
        """Return the handler and ordered validators for *command_type*.

        Raises:
            HandlerNotFoundError: No handler is registered for the type.
        """
        handler = self._handlers.get(command_type)
        if handler is None:
            raise HandlerNotFoundError(command_type)
        return Resolution(
            command_type=command_type,
            handler=handler,
            validators=tuple(self._validators.get(command_type, ())),
        )

    def command_types(self) -> list[type]:
        return list(self._handlers)

    def validator_count(self, command_type: type) -> int:
        return len(self._validators.get(command_type, ()))

    def find(self, name: str) -> type:
        """Look up a registered command class by name or qualified name.

        Raises:
            KeyError: No registered command type matches, or the short name
                is ambiguous.
        """
        by_qualified = [
            t for t in self._handlers if f"{t.__module__}.{t.__qualname__}" == name
        ]
        if by_qualified:
            return by_qualified[0]
        matches = [t for t in self._handlers if name in (t.__name__, t.__qualname__)]
        if len(matches) == 1:
            return matches[0]
        if matches:
            msg = f"Command name {name!r} is ambiguous; use the qualified name"
            raise KeyError(msg)
        msg = f"No registered command type named {name!r}"
        raise KeyError(msg)

    def audit(self) -> list[str]:
        """Return wiring problems a startup check should flag."""
        issues: list[str] = []
        for command_type in self._validators:
            if command_type not in self._handlers:
                issues.append(
                    f"{command_type.__qualname__} has validators but no handler"
                )
        return issues

    def __contains__(self, command_type: object) -> bool:
        return command_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<Registry {len(self._handlers)} handlers {state}>"

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_mutable(self, command_type: type) -> None:
        if self._frozen:
            raise RegistryFrozenError(command_type)
