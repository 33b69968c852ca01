"""Forward-only migration runner for Courier's database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS chunks (
    owner_id        TEXT NOT NULL,
    content_type    TEXT NOT NULL
                    CHECK (content_type IN ('product', 'page', 'collection', 'document')),
    content_id      TEXT NOT NULL,
    title           TEXT NOT NULL DEFAULT '',
    text            TEXT NOT NULL,
    embedding       BLOB NOT NULL,
    metadata        TEXT NOT NULL DEFAULT '{}',
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (owner_id, content_id, text)
);

CREATE INDEX IF NOT EXISTS idx_chunks_owner ON chunks(owner_id);

CREATE TABLE IF NOT EXISTS catalog_stores (
    id                  TEXT PRIMARY KEY,
    store_domain        TEXT NOT NULL,
    storefront_token    TEXT NOT NULL,
    created_at          DATETIME NOT NULL DEFAULT (datetime('now')),
    last_synced_at      DATETIME
);

CREATE TABLE IF NOT EXISTS files (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    ingested_at     DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS phone_mappings (
    phone_number    TEXT NOT NULL,
    data_source     TEXT NOT NULL CHECK (data_source IN ('files', 'catalog')),
    file_id         TEXT,
    store_id        TEXT,
    system_prompt   TEXT,
    intent          TEXT,
    auth_token      TEXT,
    origin          TEXT,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_phone_mappings_phone ON phone_mappings(phone_number);

CREATE TABLE IF NOT EXISTS messages (
    message_id          TEXT PRIMARY KEY,
    channel             TEXT NOT NULL DEFAULT 'whatsapp',
    from_number         TEXT NOT NULL,
    to_number           TEXT NOT NULL,
    received_at         DATETIME NOT NULL,
    content_type        TEXT NOT NULL DEFAULT 'text',
    content_text        TEXT,
    sender_name         TEXT,
    direction           TEXT NOT NULL,
    auto_respond_sent   INTEGER,
    response_sent_at    DATETIME,
    raw_payload         TEXT NOT NULL DEFAULT '{}'
);

CREATE INDEX IF NOT EXISTS idx_messages_from ON messages(from_number, received_at);
CREATE INDEX IF NOT EXISTS idx_messages_to ON messages(to_number, received_at);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
