"""ValidationStage — runs every validator before the handler.

INVARIANT: Violations aggregate across all validators, in registration
order. A non-empty aggregate short-circuits dispatch.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from cmdpipe.domain.errors import OperationCancelled
from cmdpipe.domain.faults import HandlerFault, ValidationFault, Violation
from cmdpipe.domain.result import CommandResult

if TYPE_CHECKING:
    from cmdpipe.domain.cancellation import CancellationToken
    from cmdpipe.domain.commands import ValidatorFunc, ValidatorOutput

logger = logging.getLogger(__name__)


def _normalize(raw: ValidatorOutput | None, validator: ValidatorFunc) -> list[Violation]:
    if raw is None:
        return []
    if isinstance(raw, (str, Violation)):
        raw = [raw]
    violations: list[Violation] = []
    for item in raw:
        if isinstance(item, Violation):
            violations.append(item)
        elif isinstance(item, str):
            violations.append(Violation(message=item))
        else:
            name = getattr(validator, "__name__", type(validator).__name__)
            msg = f"Validator {name} yielded {type(item).__name__}, expected Violation or str"
            raise TypeError(msg)
    return violations


class ValidationStage:
    """Run validators for one command and decide whether to proceed."""

    async def run(
        self,
        command: Any,
        validators: tuple[ValidatorFunc, ...],
        cancellation: CancellationToken,
    ) -> CommandResult | None:
        """Return an error result to short-circuit, or None to proceed.

        The token is checked before each validator; a fired token raises
        ``OperationCancelled`` for the dispatcher to normalize.
        """
        collected: list[Violation] = []
        for validator in validators:
            cancellation.raise_if_cancelled()
            try:
                raw = validator(command, cancellation)
                if inspect.isawaitable(raw):
                    raw = await raw
                collected.extend(_normalize(raw, validator))
            except OperationCancelled:
                raise
            except Exception as exc:
                logger.warning(
                    "Validator %r raised for %s",
                    validator,
                    type(command).__qualname__,
                    exc_info=True,
                )
                return CommandResult.error(HandlerFault.from_exception(exc, stage="validation"))

        if collected:
            return CommandResult.error(ValidationFault.from_violations(collected))
        return None
