"""Tests for courier init command."""

from __future__ import annotations

from pathlib import Path

import yaml
from typer.testing import CliRunner

from courier.cli.main import app
from courier.db.connection import Database
from courier.db.schema import schema_version

runner = CliRunner()


def _tables(db_path: Path) -> set[str]:
    with Database(db_path) as conn:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {r["name"] for r in rows}


def test_init_creates_config_and_database(tmp_path: Path, no_global_config) -> None:
    result = runner.invoke(app, ["init", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "courier.yaml").exists()
    assert (tmp_path / "courier.db").exists()
    assert {"chunks", "catalog_stores", "files", "phone_mappings", "messages"} <= _tables(
        tmp_path / "courier.db"
    )


def test_init_config_is_loadable_yaml(tmp_path: Path, no_global_config) -> None:
    runner.invoke(app, ["init", str(tmp_path)])
    data = yaml.safe_load((tmp_path / "courier.yaml").read_text(encoding="utf-8"))
    assert data["database"]["path"] == "courier.db"
    assert data["retrieval"]["top_k"] == 5


def test_init_keeps_existing_config(tmp_path: Path, no_global_config) -> None:
    (tmp_path / "courier.yaml").write_text("database:\n  path: data/tenants.db\n", encoding="utf-8")

    result = runner.invoke(app, ["init", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Keeping existing" in result.output
    assert (tmp_path / "data" / "tenants.db").exists()
    assert not (tmp_path / "courier.db").exists()


def test_init_is_idempotent(tmp_path: Path, no_global_config) -> None:
    runner.invoke(app, ["init", str(tmp_path)])
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0
    with Database(tmp_path / "courier.db") as conn:
        assert schema_version(conn) >= 1


def test_init_creates_missing_directory(tmp_path: Path, no_global_config) -> None:
    target = tmp_path / "new" / "project"
    result = runner.invoke(app, ["init", str(target)])
    assert result.exit_code == 0, result.output
    assert (target / "courier.db").exists()


def test_init_invalid_config_exits(tmp_path: Path, no_global_config) -> None:
    (tmp_path / "courier.yaml").write_text("retrieval:\n  top_k: 0\n", encoding="utf-8")

    result = runner.invoke(app, ["init", str(tmp_path)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
