"""Tests for the forward-only migration runner."""

from __future__ import annotations

import sqlite3

import pytest

from courier.db.connection import Database
from courier.db.migrations import MIGRATIONS, run_migrations


@pytest.fixture
def conn(tmp_path):
    """Open a new connection with all migrations applied."""
    c = Database(tmp_path / "test.db").connect()
    run_migrations(c)
    yield c
    c.close()


def _tables(conn) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {r[0] for r in rows}


# --- Versioning ---

def test_records_latest_version(conn):
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]


def test_rerun_is_noop(conn):
    conn.execute("INSERT INTO files (id, name) VALUES ('f1', 'faq.md')")
    conn.commit()
    run_migrations(conn)
    assert conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0] == len(MIGRATIONS)
    assert conn.execute("SELECT COUNT(*) FROM files").fetchone()[0] == 1


def test_migrations_are_ascending():
    versions = [v for v, _ in MIGRATIONS]
    assert versions == sorted(set(versions))


# --- Tables and constraints ---

def test_creates_all_tables(conn):
    assert {"chunks", "catalog_stores", "files", "phone_mappings", "messages"} <= _tables(conn)


def test_chunk_content_type_is_checked(conn):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO chunks (owner_id, content_type, content_id, text, embedding) "
            "VALUES ('s1', 'video', 'v1', 'x', x'00')"
        )


def test_chunk_text_is_unique_per_owner_and_content(conn):
    sql = (
        "INSERT INTO chunks (owner_id, content_type, content_id, text, embedding) "
        "VALUES (?, 'product', 'p1', 'Product: Blue Mug', x'00')"
    )
    conn.execute(sql, ("s1",))
    conn.execute(sql, ("s2",))
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(sql, ("s1",))


def test_mapping_data_source_is_checked(conn):
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO phone_mappings (phone_number, data_source) VALUES ('+1', 'web')"
        )


def test_message_id_is_primary_key(conn):
    sql = (
        "INSERT INTO messages (message_id, from_number, to_number, received_at, direction) "
        "VALUES ('m1', '+1', '+2', '2026-01-01', 'inbound')"
    )
    conn.execute(sql)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(sql)
