"""Typed payload contracts for the CLI boundary.

Reports are validated models so the JSON the CLI prints keeps a stable
shape.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from cmdpipe.services.registry import Registry


class CommandEntry(BaseModel):
    """One registered command type."""

    model_config = ConfigDict(frozen=True)

    name: str
    qualified_name: str
    handler: str
    validators: int


class RegistryReport(BaseModel):
    """Payload for ``cmdpipe check``."""

    model_config = ConfigDict(frozen=True)

    target: str
    count: int
    commands: list[CommandEntry] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)
    plugins: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def healthy(self) -> bool:
        return not self.issues and self.count > 0


def _callable_name(fn: Any) -> str:
    owner = getattr(fn, "__self__", None)
    if owner is not None:
        return f"{type(owner).__qualname__}.{fn.__name__}"
    return getattr(fn, "__qualname__", None) or type(fn).__qualname__


def build_report(target: str, registry: Registry, *, plugins: list[str] | None = None) -> RegistryReport:
    """Summarize *registry* for startup checks."""
    commands = [
        CommandEntry(
            name=t.__name__,
            qualified_name=f"{t.__module__}.{t.__qualname__}",
            handler=_callable_name(registry.resolve(t).handler),
            validators=registry.validator_count(t),
        )
        for t in sorted(registry.command_types(), key=lambda t: t.__qualname__)
    ]
    issues = registry.audit()
    if not commands:
        issues.append("No command handlers registered")
    return RegistryReport(
        target=target,
        count=len(commands),
        commands=commands,
        issues=issues,
        plugins=plugins or [],
    )
