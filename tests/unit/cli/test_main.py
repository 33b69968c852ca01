"""Tests for the courier app entry point."""

from __future__ import annotations

from typer.testing import CliRunner

from courier.cli.main import app

runner = CliRunner()


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("courier ")


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.output.startswith("courier ")


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("init", "sync-store", "ingest-file", "respond", "status", "tenant"):
        assert command in result.output


def test_verbose_flag_accepted(cli_project):
    result = runner.invoke(app, ["-v", "status"])
    assert result.exit_code == 0, result.output
