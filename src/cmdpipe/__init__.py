"""cmdpipe — typed command dispatch with a uniform result envelope."""

from cmdpipe.domain.cancellation import CancellationToken
from cmdpipe.domain.commands import Command
from cmdpipe.domain.errors import (
    CmdpipeError,
    ConfigurationError,
    DuplicateHandlerError,
    HandlerNotFoundError,
    OperationCancelled,
    RegistryFrozenError,
)
from cmdpipe.domain.faults import (
    CancellationFault,
    EntityNotFoundFault,
    Fault,
    FaultCategory,
    HandlerFault,
    ValidationFault,
    Violation,
)
from cmdpipe.domain.result import CommandResult
from cmdpipe.services.dispatcher import Dispatcher
from cmdpipe.services.registry import Registry

__version__ = "0.3.0"

__all__ = [
    "CancellationFault",
    "CancellationToken",
    "CmdpipeError",
    "Command",
    "CommandResult",
    "ConfigurationError",
    "Dispatcher",
    "DuplicateHandlerError",
    "EntityNotFoundFault",
    "Fault",
    "FaultCategory",
    "HandlerFault",
    "HandlerNotFoundError",
    "OperationCancelled",
    "Registry",
    "RegistryFrozenError",
    "ValidationFault",
    "Violation",
    "__version__",
]
