"""Tests for result and report rendering."""

from __future__ import annotations

import json

from cmdpipe import CommandResult
from cmdpipe.domain.faults import HandlerFault, ValidationFault, Violation
from cmdpipe.output.renderers import render_report, render_result
from cmdpipe.services.contracts import build_report
from tests.sample_app import build_broken_registry, build_registry


class TestRenderResult:
    def test_success_human(self) -> None:
        out = render_result(CommandResult.success(7), op="CreateWidget")
        assert out.splitlines()[0] == "OK  CreateWidget"
        assert "object_id: 7" in out

    def test_success_without_id(self) -> None:
        out = render_result(CommandResult.success(), op="PingWidget")
        assert out == "OK  PingWidget"

    def test_not_found_human(self) -> None:
        out = render_result(CommandResult.not_found("Widget", 3), op="DeleteWidget")
        assert out.startswith("ERROR  DeleteWidget")
        assert "Widget with id '3' was not found." in out
        assert "category: not_found" in out

    def test_violations_listed(self) -> None:
        fault = ValidationFault.from_violations(
            [
                Violation(field="name", message="must not be empty", code="empty"),
                Violation(message="widgets are closed today"),
            ]
        )
        out = render_result(CommandResult.error(fault), op="CreateWidget")
        assert "    - name: must not be empty [empty]" in out
        assert "    - widgets are closed today [invalid]" in out

    def test_json_payload(self) -> None:
        result = CommandResult.error(HandlerFault.from_exception(RuntimeError("boom")))
        payload = json.loads(render_result(result, op="ExplodeWidget", json_output=True))
        assert payload["op"] == "ExplodeWidget"
        assert payload["successful"] is False
        assert payload["error_message"] == "RuntimeError: boom"
        assert payload["fault"]["category"] == "handler"
        assert "telemetry" not in payload

    def test_json_with_telemetry(self) -> None:
        tree = {"name": "dispatch:PingWidget", "duration_ms": 0.1}
        payload = json.loads(
            render_result(CommandResult.success(), op="PingWidget", json_output=True, telemetry=tree)
        )
        assert payload["telemetry"] == tree

    def test_human_telemetry_tree(self) -> None:
        tree = {
            "name": "dispatch:PingWidget",
            "duration_ms": 1.5,
            "children": [{"name": "handle", "duration_ms": 1.2}],
        }
        out = render_result(CommandResult.success(), op="PingWidget", telemetry=tree)
        assert "    dispatch:PingWidget 1.5ms" in out
        assert "      handle 1.2ms" in out


class TestRenderReport:
    def test_healthy_table(self) -> None:
        out = render_report(build_report("tests.sample_app:registry", build_registry()))
        assert out.startswith("OK  check tests.sample_app:registry")
        assert "CreateWidget" in out
        assert "5 command types" in out
        assert "issue:" not in out

    def test_issues_listed(self) -> None:
        out = render_report(build_report("app:broken", build_broken_registry()))
        assert out.startswith("ERROR  check app:broken")
        assert "issue: DeleteWidget has validators but no handler" in out

    def test_json(self) -> None:
        report = build_report("app:registry", build_registry(), plugins=["Audit"])
        payload = json.loads(render_report(report, json_output=True))
        assert payload["healthy"] is True
        assert payload["plugins"] == ["Audit"]
        assert len(payload["commands"]) == 5
