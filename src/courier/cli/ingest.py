"""courier ingest-file: chunk, embed and store a plain-text document."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from courier.cli.errors import err_ingest_failed, err_unsupported_file
from courier.cli.runtime import (
    build_embedder,
    load_config_or_exit,
    open_repository_or_exit,
    resolve_db,
)
from courier.ingest.chunker import TextChunker
from courier.ingest.documents import DocumentIngestor
from courier.ingest.embedding_writer import IngestError

console = Console()

_TEXT_EXTS = [".txt", ".md", ".markdown", ".text"]


def ingest_file_cmd(
    path: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Text or Markdown file."),
    ],
    file_id: Annotated[
        str | None,
        typer.Option("--id", help="File id used in mappings (default: the file stem)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: database.path from config)."),
    ] = None,
) -> None:
    """Ingest one document file; re-ingesting the same id replaces its chunks."""
    if path.suffix.lower() not in _TEXT_EXTS:
        console.print(err_unsupported_file(str(path), _TEXT_EXTS))
        raise typer.Exit(1)

    text = path.read_text(encoding="utf-8", errors="replace")
    fid = file_id or path.stem

    cfg = load_config_or_exit(console)
    repo = open_repository_or_exit(resolve_db(db, cfg), cfg, console)
    try:
        embedder = build_embedder(cfg, console)
        ingestor = DocumentIngestor(repo, embedder, TextChunker(cfg.ingest.chunk_size))
        try:
            report = ingestor.ingest(fid, path.name, text)
        except IngestError as exc:
            console.print(err_ingest_failed(str(exc)))
            raise typer.Exit(1)
    finally:
        repo.conn.close()

    if report.chunks_written == 0 and report.duplicates == 0:
        console.print(f"[yellow]✗ No chunks produced from {path.name} (empty file)[/]")
        return
    console.print(
        f"[green]✓[/] {path.name} → file id [bold]{fid}[/]: {report.chunks_written} chunks"
    )
    console.print(f"  Map it:  courier tenant map PHONE --file {fid}")
