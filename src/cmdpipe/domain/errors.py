"""Exceptions raised directly to callers.

These are wiring defects, not business outcomes. They are never folded into
a CommandResult: a missing or duplicate handler means the system is built
wrong, not that an operation failed.

``OperationCancelled`` is the one exception here that lives on the hot path.
Handlers raise it via ``CancellationToken.raise_if_cancelled()`` and the
dispatcher turns it into a ``CancellationFault``.
"""

from __future__ import annotations


def _type_name(command_type: object) -> str:
    return getattr(command_type, "__qualname__", None) or repr(command_type)


class CmdpipeError(Exception):
    """Base class for all cmdpipe exceptions."""


class ConfigurationError(CmdpipeError):
    """The registry or dispatcher is wired incorrectly."""


class DuplicateHandlerError(ConfigurationError):
    """A second handler was registered for a command type."""

    def __init__(self, command_type: type) -> None:
        self.command_type = command_type
        super().__init__(f"A handler is already registered for {_type_name(command_type)}")


class HandlerNotFoundError(ConfigurationError):
    """A command was dispatched but no handler exists for its type."""

    def __init__(self, command_type: type) -> None:
        self.command_type = command_type
        super().__init__(f"No handler registered for command type {_type_name(command_type)}")


class RegistryFrozenError(ConfigurationError):
    """Registration was attempted after the registry was frozen."""

    def __init__(self, command_type: type) -> None:
        self.command_type = command_type
        super().__init__(
            f"Cannot register {_type_name(command_type)}: registry is frozen "
            "(registration must finish before dispatch starts)"
        )


class OperationCancelled(CmdpipeError):
    """The cancellation token fired while work was in progress."""

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        super().__init__(reason or "Operation was cancelled.")
