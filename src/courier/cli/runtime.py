"""Shared CLI plumbing: config loading, database opening, model construction."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from courier.cli.errors import err_config, err_no_api_key, err_no_db
from courier.config import ConfigError, CourierConfig, load_config
from courier.db.connection import Database
from courier.db.repository import Repository
from courier.db.schema import initialize
from courier.rag.llm_client import LiteLLMChat, LiteLLMEmbedder, validate_api_key


def load_config_or_exit(console: Console) -> CourierConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def resolve_db(db: Path | None, cfg: CourierConfig) -> Path:
    return db if db is not None else Path(cfg.database.path)


def open_db(db_path: Path) -> sqlite3.Connection:
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def open_repository_or_exit(
    db_path: Path, cfg: CourierConfig, console: Console
) -> Repository:
    """Open an existing database; exit 1 with a hint if it is missing."""
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    return Repository(open_db(db_path), dimensions=cfg.embedding.dimensions)


def require_api_key(model: str, console: Console) -> None:
    try:
        validate_api_key(model)
    except EnvironmentError:
        console.print(err_no_api_key(model))
        raise typer.Exit(1)


def build_embedder(cfg: CourierConfig, console: Console) -> LiteLLMEmbedder:
    require_api_key(cfg.embedding.model, console)
    return LiteLLMEmbedder(cfg.embedding.model, dimensions=cfg.embedding.dimensions)


def build_chat(cfg: CourierConfig, console: Console) -> LiteLLMChat:
    require_api_key(cfg.generation.model, console)
    return LiteLLMChat(cfg.generation.model)
