"""courier sync-store: rebuild the chunk set of a registered catalog store."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from courier.cli.errors import err_ingest_failed, err_store_not_found
from courier.cli.runtime import (
    build_embedder,
    load_config_or_exit,
    open_repository_or_exit,
    resolve_db,
)
from courier.ingest.catalog import IngestReport, sync_catalog_store
from courier.ingest.embedding_writer import IngestError

console = Console()


def sync_store_cmd(
    store_id: Annotated[str, typer.Argument(help="Registered store id.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: database.path from config)."),
    ] = None,
) -> None:
    """Fetch products, pages and collections and replace the store's chunks."""
    cfg = load_config_or_exit(console)
    repo = open_repository_or_exit(resolve_db(db, cfg), cfg, console)

    try:
        if repo.get_catalog_store(store_id) is None:
            console.print(err_store_not_found(store_id))
            raise typer.Exit(1)

        embedder = build_embedder(cfg, console)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task(f"Syncing {store_id}…", total=None)
            try:
                report = sync_catalog_store(repo, store_id, embedder, cfg)
            except IngestError as exc:
                console.print(err_ingest_failed(str(exc)))
                raise typer.Exit(1)
    finally:
        repo.conn.close()

    _print_report(report)


def _print_report(report: IngestReport) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Kind", style="bold")
    table.add_column("Count", justify="right")
    for kind, count in report.records.items():
        table.add_row(kind, str(count))
    table.add_row("chunks", str(report.chunks_written))
    if report.duplicates:
        table.add_row("duplicates skipped", f"[dim]{report.duplicates}[/]")
    console.print(f"[green]✓[/] Synced [bold]{report.owner_id}[/]")
    console.print(table)
