"""Render CommandResult and RegistryReport for humans or machines.

Human output goes through Rich (tables, styled status lines); ``--json``
returns the pydantic JSON dump unchanged.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from cmdpipe.domain.faults import ValidationFault
from cmdpipe.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from cmdpipe.domain.result import CommandResult
    from cmdpipe.services.contracts import RegistryReport


# ── Public API ────────────────────────────────────────────────────────


def render_result(
    result: CommandResult,
    *,
    op: str,
    json_output: bool = False,
    telemetry: dict[str, Any] | None = None,
) -> str:
    """Render the outcome of dispatching command *op*."""
    if json_output:
        payload = {"op": op, **result.to_dict()}
        if telemetry is not None:
            payload["telemetry"] = telemetry
        return json.dumps(payload, indent=2)

    console = create_console()
    if result.successful:
        _status_line(console, "OK", "pipe.ok", op)
        if result.object_id is not None:
            _field(console, "object_id", result.object_id, style="pipe.id")
    else:
        _render_failure(console, result, op)
    if telemetry is not None:
        console.print(Text("  telemetry:", style="pipe.key"))
        _render_span(console, telemetry, indent=4)
    return get_output(console).rstrip("\n")


def render_report(report: RegistryReport, *, json_output: bool = False) -> str:
    """Render a ``cmdpipe check`` report."""
    if json_output:
        return report.model_dump_json(indent=2)

    console = create_console()
    if report.healthy:
        _status_line(console, "OK", "pipe.ok", f"check {report.target}")
    else:
        _status_line(console, "ERROR", "pipe.error", f"check {report.target}")

    if report.commands:
        table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
        table.add_column("Command", style="pipe.id")
        table.add_column("Handler")
        table.add_column("Validators", justify="right")
        for entry in report.commands:
            table.add_row(entry.qualified_name, entry.handler, str(entry.validators))
        console.print(table)
    console.print(f"\n{report.count} command types")

    if report.plugins:
        _field(console, "plugins", ", ".join(report.plugins))
    for issue in report.issues:
        console.print(Text("  issue: ", style="pipe.warning"), Text(issue), sep="")
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, label: str, style: str, op: str) -> None:
    console.print(Text(label, style=style), Text(f"  {op}", style="pipe.op"), sep="", end="")
    console.print()


def _field(console: Console, key: str, value: Any, *, style: str | None = None) -> None:
    k = Text(f"  {key}: ", style="pipe.key")
    console.print(k, Text(str(value), style=style or ""), sep="", end="")
    console.print()


def _render_failure(console: Console, result: CommandResult, op: str) -> None:
    console.print(
        Text("ERROR", style="pipe.error"),
        Text(f"  {op}", style="pipe.op"),
        Text(" — "),
        Text(result.error_message),
        sep="",
    )
    fault = result.fault
    if fault is None:
        return
    _field(console, "category", fault.category.value, style="pipe.category")
    if isinstance(fault, ValidationFault):
        for violation in fault.violations:
            console.print(f"    - {violation.describe()} [{violation.code}]", markup=False)


def _render_span(console: Console, span: dict[str, Any], indent: int) -> None:
    prefix = " " * indent
    console.print(f"{prefix}{span.get('name', '?')} {span.get('duration_ms', 0.0)}ms", markup=False)
    for child in span.get("children", []):
        _render_span(console, child, indent + 2)
