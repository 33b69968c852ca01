"""Vector retrieval over the per-owner chunk store.

Three modes:
  single source  — cosine ranking inside one owner, similarity = 1 - distance
  multi source   — each source queried for its own top-K (sequentially),
                   results concatenated, stably sorted by similarity and
                   truncated to K. This is merge-then-truncate, not a global
                   KNN across sources.
  tenant store   — L2 ranking inside one owner; similarity is reported as
                   0.0, only the order is meaningful

All functions are read-only and return [] when nothing matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from courier.db.models import Chunk
from courier.db.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


@dataclass
class ScoredChunk:
    """A retrieved chunk and its similarity score (higher = more relevant)."""

    chunk: Chunk
    similarity: float

    @property
    def text(self) -> str:
        return self.chunk.text


def retrieve_from_source(
    repo: Repository,
    vector: list[float],
    source_id: str,
    limit: int = DEFAULT_TOP_K,
) -> list[ScoredChunk]:
    """Top *limit* chunks of *source_id* by cosine distance."""
    results = repo.search_cosine(source_id, vector, limit=limit)
    return [ScoredChunk(chunk=chunk, similarity=1.0 - distance) for chunk, distance in results]


def retrieve_from_sources(
    repo: Repository,
    vector: list[float],
    source_ids: list[str],
    limit: int = DEFAULT_TOP_K,
) -> list[ScoredChunk]:
    """Merge per-source top-K lists and keep the best *limit* overall."""
    if not source_ids:
        return []
    if len(source_ids) == 1:
        return retrieve_from_source(repo, vector, source_ids[0], limit)

    merged: list[ScoredChunk] = []
    for source_id in source_ids:
        merged.extend(retrieve_from_source(repo, vector, source_id, limit))

    # sorted() is stable: equal scores keep source order
    merged = sorted(merged, key=lambda sc: sc.similarity, reverse=True)
    logger.debug(
        "Merged %d candidates from %d sources, keeping %d",
        len(merged),
        len(source_ids),
        min(limit, len(merged)),
    )
    return merged[:limit]


def retrieve_from_store(
    repo: Repository,
    vector: list[float],
    owner_id: str,
    limit: int = DEFAULT_TOP_K,
) -> list[ScoredChunk]:
    """Top *limit* chunks of a catalog store by L2 distance."""
    results = repo.search_l2(owner_id, vector, limit=limit)
    return [ScoredChunk(chunk=chunk, similarity=0.0) for chunk, _ in results]
