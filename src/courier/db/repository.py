"""Repository pattern for all Courier database operations.

Single interface for: chunks (write + vector search), catalog stores, document
files, phone mappings, and the message log. Every chunk query and write is
scoped to exactly one owner id.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from courier.db.models import (
    CatalogStore,
    Chunk,
    ContentType,
    DataSourceKind,
    Direction,
    DocumentFile,
    Message,
    PhoneMapping,
    metadata_from_json,
    metadata_to_json,
)
from courier.db.vectors import serialize_embedding

_CHUNK_COLUMNS = "rowid, owner_id, content_type, content_id, title, text, metadata, created_at"
_MESSAGE_COLUMNS = (
    "message_id, channel, from_number, to_number, received_at, content_type, "
    "content_text, sender_name, direction, auto_respond_sent, response_sent_at, raw_payload"
)
_MAPPING_COLUMNS = (
    "phone_number, data_source, file_id, store_id, system_prompt, intent, auth_token, origin"
)


class DuplicateChunkError(Exception):
    """Raised when a chunk with the same owner, content id and text already exists."""


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (sortable as text)."""
    return datetime.now(timezone.utc).isoformat()


class Repository:
    """Data access layer for all Courier database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection, dimensions: int | None = None) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see courier.db.schema.initialize).
            dimensions: Expected embedding length; enforced on every write.
        """
        self._conn = conn
        self._dimensions = dimensions

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def add_chunk(self, chunk: Chunk) -> int:
        """Insert *chunk* with its embedding. Returns the new rowid.

        Raises:
            DuplicateChunkError: If (owner_id, content_id, text) already exists.
            ValueError: If the chunk has no embedding or the wrong dimensions.
            sqlite3.Error: On any other write failure.
        """
        if chunk.embedding is None:
            raise ValueError(f"chunk for {chunk.content_id!r} has no embedding")
        blob = serialize_embedding(chunk.embedding, self._dimensions)
        try:
            cur = self._conn.execute(
                """
                INSERT INTO chunks (owner_id, content_type, content_id, title, text, embedding, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    chunk.owner_id,
                    ContentType(chunk.content_type).value,
                    chunk.content_id,
                    chunk.title,
                    chunk.text,
                    blob,
                    metadata_to_json(chunk.metadata),
                ),
            )
        except sqlite3.IntegrityError as exc:
            self._conn.rollback()
            if "UNIQUE constraint failed" in str(exc):
                raise DuplicateChunkError(
                    f"duplicate chunk for {chunk.owner_id}/{chunk.content_id}"
                ) from exc
            raise
        self._conn.commit()
        chunk.rowid = cur.lastrowid
        return cur.lastrowid

    def list_chunks_by_owner(self, owner_id: str) -> list[Chunk]:
        """Return all chunks of *owner_id* in insertion order."""
        rows = self._conn.execute(
            f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE owner_id = ? ORDER BY rowid",
            (owner_id,),
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def count_chunks_by_owner(self, owner_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE owner_id = ?", (owner_id,)
        ).fetchone()[0]

    def count_chunks_per_owner(self) -> list[tuple[str, int]]:
        """Return [(owner_id, chunk_count), ...] ordered by owner id."""
        rows = self._conn.execute(
            "SELECT owner_id, COUNT(*) AS n FROM chunks GROUP BY owner_id ORDER BY owner_id"
        ).fetchall()
        return [(r["owner_id"], r["n"]) for r in rows]

    def delete_chunks_by_owner(self, owner_id: str) -> int:
        """Delete every chunk of *owner_id*. Returns the number of rows removed."""
        cur = self._conn.execute("DELETE FROM chunks WHERE owner_id = ?", (owner_id,))
        self._conn.commit()
        return cur.rowcount

    def search_cosine(
        self, owner_id: str, embedding: list[float], limit: int = 5
    ) -> list[tuple[Chunk, float]]:
        """Nearest chunks of *owner_id* by cosine distance. Returns (chunk, distance)."""
        return self._search("vec_distance_cosine", owner_id, embedding, limit)

    def search_l2(
        self, owner_id: str, embedding: list[float], limit: int = 5
    ) -> list[tuple[Chunk, float]]:
        """Nearest chunks of *owner_id* by euclidean distance. Returns (chunk, distance)."""
        return self._search("vec_distance_l2", owner_id, embedding, limit)

    def _search(
        self, distance_fn: str, owner_id: str, embedding: list[float], limit: int
    ) -> list[tuple[Chunk, float]]:
        blob = serialize_embedding(embedding, self._dimensions)
        rows = self._conn.execute(
            f"""
            SELECT {_CHUNK_COLUMNS}, {distance_fn}(embedding, ?) AS distance
            FROM chunks
            WHERE owner_id = ?
            ORDER BY distance
            LIMIT ?
            """,
            (blob, owner_id, limit),
        ).fetchall()
        return [(_row_to_chunk(r), r["distance"]) for r in rows]

    # ------------------------------------------------------------------
    # Catalog stores
    # ------------------------------------------------------------------

    def add_catalog_store(self, store: CatalogStore) -> None:
        self._conn.execute(
            """
            INSERT INTO catalog_stores (id, store_domain, storefront_token)
            VALUES (?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                store_domain = excluded.store_domain,
                storefront_token = excluded.storefront_token
            """,
            (store.id, store.store_domain, store.storefront_token),
        )
        self._conn.commit()

    def get_catalog_store(self, store_id: str) -> CatalogStore | None:
        row = self._conn.execute(
            """
            SELECT id, store_domain, storefront_token, created_at, last_synced_at
            FROM catalog_stores WHERE id = ?
            """,
            (store_id,),
        ).fetchone()
        return _row_to_store(row) if row else None

    def list_catalog_stores(self) -> list[CatalogStore]:
        rows = self._conn.execute(
            """
            SELECT id, store_domain, storefront_token, created_at, last_synced_at
            FROM catalog_stores ORDER BY created_at
            """
        ).fetchall()
        return [_row_to_store(r) for r in rows]

    def mark_store_synced(self, store_id: str, synced_at: str | None = None) -> None:
        self._conn.execute(
            "UPDATE catalog_stores SET last_synced_at = ? WHERE id = ?",
            (synced_at or utc_now_iso(), store_id),
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Document files
    # ------------------------------------------------------------------

    def upsert_file(self, file: DocumentFile) -> None:
        """Register *file*, refreshing name and ingested_at when it already exists."""
        self._conn.execute(
            """
            INSERT INTO files (id, name) VALUES (?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                ingested_at = datetime('now')
            """,
            (file.id, file.name),
        )
        self._conn.commit()

    def get_file(self, file_id: str) -> DocumentFile | None:
        row = self._conn.execute(
            "SELECT id, name, ingested_at FROM files WHERE id = ?", (file_id,)
        ).fetchone()
        return DocumentFile(id=row["id"], name=row["name"], ingested_at=row["ingested_at"]) if row else None

    def list_files(self) -> list[DocumentFile]:
        rows = self._conn.execute(
            "SELECT id, name, ingested_at FROM files ORDER BY ingested_at"
        ).fetchall()
        return [DocumentFile(id=r["id"], name=r["name"], ingested_at=r["ingested_at"]) for r in rows]

    # ------------------------------------------------------------------
    # Phone mappings (tenant configuration)
    # ------------------------------------------------------------------

    def add_phone_mapping(self, mapping: PhoneMapping) -> None:
        self._insert_mapping(mapping)
        self._conn.commit()

    def replace_phone_mappings(self, phone_number: str, mappings: list[PhoneMapping]) -> None:
        """Replace every mapping row for *phone_number* with *mappings* in one transaction."""
        try:
            self._conn.execute(
                "DELETE FROM phone_mappings WHERE phone_number = ?", (phone_number,)
            )
            for mapping in mappings:
                if mapping.phone_number != phone_number:
                    raise ValueError(
                        f"mapping for {mapping.phone_number} passed to replace {phone_number}"
                    )
                self._insert_mapping(mapping)
        except (sqlite3.Error, ValueError):
            self._conn.rollback()
            raise
        self._conn.commit()

    def _insert_mapping(self, mapping: PhoneMapping) -> None:
        self._conn.execute(
            f"INSERT INTO phone_mappings ({_MAPPING_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                mapping.phone_number,
                DataSourceKind(mapping.data_source).value,
                mapping.file_id,
                mapping.store_id,
                mapping.system_prompt,
                mapping.intent,
                mapping.auth_token,
                mapping.origin,
            ),
        )

    def get_phone_mappings(self, phone_number: str) -> list[PhoneMapping]:
        """Return every mapping row for *phone_number*, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_MAPPING_COLUMNS} FROM phone_mappings WHERE phone_number = ? ORDER BY rowid",
            (phone_number,),
        ).fetchall()
        return [_row_to_mapping(r) for r in rows]

    def get_data_source_kind(self, phone_number: str) -> DataSourceKind | None:
        row = self._conn.execute(
            "SELECT data_source FROM phone_mappings WHERE phone_number = ? ORDER BY rowid LIMIT 1",
            (phone_number,),
        ).fetchone()
        return DataSourceKind(row["data_source"]) if row else None

    def get_file_ids(self, phone_number: str) -> list[str]:
        """Distinct file ids mapped to *phone_number*, in mapping order."""
        rows = self._conn.execute(
            """
            SELECT file_id FROM phone_mappings
            WHERE phone_number = ? AND data_source = 'files' AND file_id IS NOT NULL
            ORDER BY rowid
            """,
            (phone_number,),
        ).fetchall()
        return list(dict.fromkeys(r["file_id"] for r in rows))

    def get_store_id(self, phone_number: str) -> str | None:
        row = self._conn.execute(
            """
            SELECT store_id FROM phone_mappings
            WHERE phone_number = ? AND data_source = 'catalog' AND store_id IS NOT NULL
            ORDER BY rowid LIMIT 1
            """,
            (phone_number,),
        ).fetchone()
        return row["store_id"] if row else None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(self, message: Message, ignore_existing: bool = False) -> bool:
        """Insert *message*. Returns False if it already existed and was ignored.

        Args:
            message: Message to persist.
            ignore_existing: Skip silently when message_id is already stored
                instead of raising sqlite3.IntegrityError.
        """
        verb = "INSERT OR IGNORE" if ignore_existing else "INSERT"
        cur = self._conn.execute(
            f"{verb} INTO messages ({_MESSAGE_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                message.message_id,
                message.channel,
                message.from_number,
                message.to_number,
                message.received_at,
                message.content_type,
                message.content_text,
                message.sender_name,
                str(getattr(message.direction, "value", message.direction)),
                None if message.auto_respond_sent is None else int(message.auto_respond_sent),
                message.response_sent_at,
                message.raw_payload,
            ),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def get_message(self, message_id: str) -> Message | None:
        row = self._conn.execute(
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE message_id = ?", (message_id,)
        ).fetchone()
        return _row_to_message(row) if row else None

    def get_conversation(
        self,
        customer: str,
        business: str,
        limit: int = 20,
        exclude_message_id: str | None = None,
    ) -> list[Message]:
        """Latest *limit* messages between *customer* and *business*, oldest first."""
        rows = self._conn.execute(
            f"""
            SELECT {_MESSAGE_COLUMNS} FROM messages
            WHERE ((from_number = ? AND to_number = ?) OR (from_number = ? AND to_number = ?))
              AND message_id != ?
            ORDER BY received_at DESC, rowid DESC
            LIMIT ?
            """,
            (customer, business, business, customer, exclude_message_id or "", limit),
        ).fetchall()
        return [_row_to_message(r) for r in reversed(rows)]

    def mark_auto_response(
        self, message_id: str, sent: bool, sent_at: str | None = None
    ) -> None:
        """Record an auto-response attempt on an inbound message."""
        self._conn.execute(
            "UPDATE messages SET auto_respond_sent = ?, response_sent_at = ? WHERE message_id = ?",
            (int(sent), sent_at or utc_now_iso(), message_id),
        )
        self._conn.commit()


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    content_type = ContentType(row["content_type"])
    return Chunk(
        rowid=row["rowid"],
        owner_id=row["owner_id"],
        content_type=content_type,
        content_id=row["content_id"],
        title=row["title"],
        text=row["text"],
        metadata=metadata_from_json(content_type, row["metadata"]),
        created_at=row["created_at"],
    )


def _row_to_store(row: sqlite3.Row) -> CatalogStore:
    return CatalogStore(
        id=row["id"],
        store_domain=row["store_domain"],
        storefront_token=row["storefront_token"],
        created_at=row["created_at"],
        last_synced_at=row["last_synced_at"],
    )


def _row_to_mapping(row: sqlite3.Row) -> PhoneMapping:
    return PhoneMapping(
        phone_number=row["phone_number"],
        data_source=DataSourceKind(row["data_source"]),
        file_id=row["file_id"],
        store_id=row["store_id"],
        system_prompt=row["system_prompt"],
        intent=row["intent"],
        auth_token=row["auth_token"],
        origin=row["origin"],
    )


def _parse_direction(raw: str) -> Direction | str:
    # Other event kinds (status callbacks etc.) are kept verbatim
    try:
        return Direction(raw)
    except ValueError:
        return raw


def _row_to_message(row: sqlite3.Row) -> Message:
    sent = row["auto_respond_sent"]
    return Message(
        message_id=row["message_id"],
        channel=row["channel"],
        from_number=row["from_number"],
        to_number=row["to_number"],
        received_at=row["received_at"],
        content_type=row["content_type"],
        content_text=row["content_text"],
        sender_name=row["sender_name"],
        direction=_parse_direction(row["direction"]),
        auto_respond_sent=None if sent is None else bool(sent),
        response_sent_at=row["response_sent_at"],
        raw_payload=row["raw_payload"],
    )
