"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from courier.db.connection import Database
from courier.db.repository import Repository
from courier.db.schema import initialize

DIMS = 3


class KeywordEmbedder:
    """Deterministic 3-d embedder: one axis per keyword group, never all-zero."""

    AXES = (("mug", "cup", "coffee"), ("ship", "delivery", "return"), ("hours", "open", "store"))

    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[str] = []
        self.fail_on = fail_on

    def embed(self, text: str) -> list[float] | None:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            return None
        lowered = text.lower()
        return [
            1.0 if any(word in lowered for word in words) else 0.05
            for words in self.AXES
        ]


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "courier.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db, dimensions=DIMS)


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def embedder_factory():
    """Build a KeywordEmbedder with custom failure behaviour."""
    return KeywordEmbedder


@pytest.fixture
def no_global_config(tmp_path, monkeypatch):
    """Point the global config at a missing file and clear COURIER_* overrides."""
    monkeypatch.setattr("courier.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml")
    for var in ("COURIER_GENERATION_MODEL", "COURIER_EMBEDDING_MODEL", "COURIER_DB"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def cli_project(tmp_path, monkeypatch, no_global_config):
    """CWD set to a project with a 3-d courier.yaml and an initialized courier.db."""
    (tmp_path / "courier.yaml").write_text(
        "database:\n  path: courier.db\nembedding:\n  dimensions: 3\n", encoding="utf-8"
    )
    conn = Database(tmp_path / "courier.db").connect()
    initialize(conn)
    conn.close()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def open_repo(cli_project):
    """Open the CLI project's database; connections are closed after the test."""
    conns = []

    def _open() -> Repository:
        conn = Database(cli_project / "courier.db").connect()
        conns.append(conn)
        return Repository(conn, dimensions=DIMS)

    yield _open
    for conn in conns:
        conn.close()
