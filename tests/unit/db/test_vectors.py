"""Tests for embedding serialization."""

from __future__ import annotations

import pytest

from courier.db.vectors import serialize_embedding


def test_serialize_is_float32_blob():
    blob = serialize_embedding([0.5, 1.0, -2.0])
    assert isinstance(blob, bytes)
    assert len(blob) == 12


def test_serialize_rejects_empty():
    with pytest.raises(ValueError, match="empty"):
        serialize_embedding([])


def test_serialize_checks_dimensions():
    with pytest.raises(ValueError, match="expected 3"):
        serialize_embedding([0.1, 0.2], dimensions=3)


def test_blob_usable_by_vec_distance(tmp_db):
    a = serialize_embedding([1.0, 0.0, 0.0])
    b = serialize_embedding([0.0, 1.0, 0.0])
    same = tmp_db.execute("SELECT vec_distance_cosine(?, ?)", (a, a)).fetchone()[0]
    orth = tmp_db.execute("SELECT vec_distance_cosine(?, ?)", (a, b)).fetchone()[0]
    assert same == pytest.approx(0.0, abs=1e-6)
    assert orth == pytest.approx(1.0, abs=1e-6)
