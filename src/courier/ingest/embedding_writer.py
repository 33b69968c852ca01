"""Embedding writer: embed each chunk, then persist it with its vector.

The chunk text is embedded as-is and stored unchanged. A duplicate
(owner_id, content_id, text) row is logged and skipped; any other write
failure, or an embedder that returns nothing, aborts the run.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from courier.db.models import Chunk
from courier.db.repository import DuplicateChunkError, Repository
from courier.rag.llm_client import Embedder

logger = logging.getLogger(__name__)


class IngestError(RuntimeError):
    """Fatal ingestion failure; the owner's chunk set may be incomplete."""


@dataclass
class WriteStats:
    written: int = 0
    duplicates: int = 0


class EmbeddingWriter:
    """Write chunks to the DB with embeddings from an injected ``Embedder``.

    Args:
        repo:     Open Repository instance.
        embedder: Anything with ``embed(text) -> list[float] | None``.
    """

    def __init__(self, repo: Repository, embedder: Embedder) -> None:
        self._repo = repo
        self._embedder = embedder

    def write(self, chunks: list[Chunk]) -> WriteStats:
        """Embed *chunks* and persist them in order.

        Raises:
            IngestError: If an embedding is missing or a non-duplicate
                write fails.
        """
        stats = WriteStats()
        for chunk in chunks:
            embedding = self._embedder.embed(chunk.text)
            if embedding is None:
                raise IngestError(
                    f"Failed to generate embedding for {chunk.content_type.value} "
                    f"{chunk.content_id!r}"
                )
            chunk.embedding = embedding

            try:
                self._repo.add_chunk(chunk)
            except DuplicateChunkError:
                logger.info(
                    "Skipping duplicate chunk for %s/%s", chunk.owner_id, chunk.content_id
                )
                stats.duplicates += 1
                continue
            except (sqlite3.Error, ValueError) as exc:
                raise IngestError(
                    f"Failed to store chunk for {chunk.owner_id}/{chunk.content_id}: {exc}"
                ) from exc
            stats.written += 1
        return stats
