"""Courier database layer."""

from courier.db.connection import Database
from courier.db.migrations import MIGRATIONS, run_migrations
from courier.db.repository import DuplicateChunkError, Repository
from courier.db.schema import initialize

__all__ = [
    "Database",
    "DuplicateChunkError",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
