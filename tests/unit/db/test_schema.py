"""Tests for database schema initialization."""

from __future__ import annotations

import sqlite3

import pytest

from courier.db.connection import Database
from courier.db.migrations import MIGRATIONS, run_migrations
from courier.db.schema import CURRENT_VERSION, initialize, schema_version


def _table_columns(conn, table: str) -> set[str]:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return {row["name"] for row in rows}


def _table_exists(conn, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    return row is not None


@pytest.mark.parametrize(
    "table", ["chunks", "catalog_stores", "files", "phone_mappings", "messages", "schema_version"]
)
def test_tables_exist(tmp_db, table):
    assert _table_exists(tmp_db, table)


def test_chunks_columns(tmp_db):
    cols = _table_columns(tmp_db, "chunks")
    assert cols == {
        "owner_id",
        "content_type",
        "content_id",
        "title",
        "text",
        "embedding",
        "metadata",
        "created_at",
    }


def test_messages_columns(tmp_db):
    cols = _table_columns(tmp_db, "messages")
    assert {"message_id", "direction", "auto_respond_sent", "response_sent_at"} <= cols


def test_chunks_reject_unknown_content_type(tmp_db):
    with pytest.raises(sqlite3.IntegrityError):
        tmp_db.execute(
            "INSERT INTO chunks (owner_id, content_type, content_id, text, embedding) "
            "VALUES ('o', 'video', 'c', 't', x'00')"
        )


def test_schema_version_recorded(tmp_db):
    assert schema_version(tmp_db) == CURRENT_VERSION


def test_initialize_idempotent(tmp_db):
    initialize(tmp_db)
    rows = tmp_db.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert rows == len(MIGRATIONS)


def test_schema_version_zero_on_fresh_db(tmp_path):
    conn = Database(tmp_path / "fresh.db").connect()
    conn.execute(
        "CREATE TABLE schema_version (version INTEGER NOT NULL, applied_at DATETIME)"
    )
    assert schema_version(conn) == 0
    run_migrations(conn)
    assert schema_version(conn) == CURRENT_VERSION
    conn.close()
