"""Embedding serialization for sqlite-vec distance functions."""

from __future__ import annotations

import sqlite_vec


def serialize_embedding(embedding: list[float], dimensions: int | None = None) -> bytes:
    """Pack *embedding* as a float32 BLOB understood by ``vec_distance_*``.

    Args:
        embedding: Vector to serialize.
        dimensions: Expected vector length; checked when given.

    Raises:
        ValueError: If the vector is empty or its length does not match.
    """
    if not embedding:
        raise ValueError("embedding must not be empty")
    if dimensions is not None and len(embedding) != dimensions:
        raise ValueError(
            f"embedding has {len(embedding)} dimensions, expected {dimensions}"
        )
    return sqlite_vec.serialize_float32(embedding)

