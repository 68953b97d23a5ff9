"""Tests for the root CLI group and global flags."""

from __future__ import annotations

import click
import pytest
from click.testing import CliRunner

from cmdpipe import __version__
from cmdpipe.cli import cli


@pytest.mark.usefixtures("_isolated_cwd")
class TestRootGroup:
    def test_no_subcommand_prints_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "check" in result.output
        assert "dispatch" in result.output

    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_flags_stored_on_context(self, cli_runner: CliRunner) -> None:
        seen = {}

        @cli.command("probe", hidden=True)
        def probe() -> None:
            app = click.get_current_context().obj
            seen["json"] = app.json_output
            seen["verbose"] = app.settings.verbose

        try:
            result = cli_runner.invoke(cli, ["--json", "-v", "probe"])
        finally:
            cli.commands.pop("probe", None)

        assert result.exit_code == 0, result.output
        assert seen == {"json": True, "verbose": True}

    def test_json_from_config(self, cli_runner: CliRunner, tmp_path) -> None:
        (tmp_path / "cmdpipe.toml").write_text("[output]\njson_output = true\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["dispatch", "tests.sample_app:build_registry", "PingWidget"])
        assert result.exit_code == 0, result.output
        assert result.output.lstrip().startswith("{")

    def test_explicit_config_flag(self, cli_runner: CliRunner, tmp_path) -> None:
        config = tmp_path / "alt.toml"
        config.write_text("[output]\njson_output = true\n", encoding="utf-8")
        result = cli_runner.invoke(
            cli, ["-c", str(config), "dispatch", "tests.sample_app:build_registry", "PingWidget"]
        )
        assert result.output.lstrip().startswith("{")

    def test_invalid_config_reported(self, cli_runner: CliRunner, tmp_path) -> None:
        (tmp_path / "cmdpipe.toml").write_text("[dispatch\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["check", "tests.sample_app:build_registry"])
        assert result.exit_code == 1
        assert "Invalid TOML" in result.output

    def test_root_examples(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--examples"])
        assert result.exit_code == 0
        assert result.output.startswith("Examples for 'cli':")
        assert "  cmdpipe check myapp.wiring:registry" in result.output
