"""courier status: database, stores, files and message log overview."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from courier.cli.runtime import load_config_or_exit, open_db, resolve_db
from courier.config import CourierConfig
from courier.db.repository import Repository
from courier.db.schema import schema_version

console = Console()


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: database.path from config)."),
    ] = None,
) -> None:
    """Show database stats, catalog stores, document files and message counts."""
    cfg = load_config_or_exit(console)
    db_path = resolve_db(db, cfg)

    _show_config_panel(db_path, cfg)

    if not db_path.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  courier init",
                title="[bold]Knowledge Base[/]",
                expand=False,
            )
        )
        return

    conn = open_db(db_path)
    try:
        repo = Repository(conn)
        _show_knowledge_panel(conn, repo)
        _show_messages_panel(conn)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_config_panel(db_path: Path, cfg: CourierConfig) -> None:
    db_info = f"{db_path}"
    if db_path.exists():
        size_mb = db_path.stat().st_size / (1024 * 1024)
        db_info = f"{db_path} ({size_mb:.1f} MB)"

    lines = [
        f"Database:    {db_info}",
        f"Embedding:   {cfg.embedding.model} ({cfg.embedding.dimensions} dims)",
        f"Generation:  {cfg.generation.model}",
        f"Top-K:       {cfg.retrieval.top_k}  |  History: {cfg.responder.history_window} turns",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Courier[/]", expand=False))


def _show_knowledge_panel(conn: sqlite3.Connection, repo: Repository) -> None:
    counts = dict(repo.count_chunks_per_owner())

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Kind", style="dim")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Chunks", justify="right")
    table.add_column("Last sync/ingest", style="dim")

    for store in repo.list_catalog_stores():
        table.add_row(
            "store",
            store.id,
            store.store_domain,
            f"{counts.get(store.id, 0):,}",
            (store.last_synced_at or "never")[:16],
        )
    for f in repo.list_files():
        table.add_row("file", f.id, f.name, f"{counts.get(f.id, 0):,}", (f.ingested_at or "")[:16])

    title = (
        f"[bold]Knowledge Base[/] [dim](v{schema_version(conn)}, "
        f"{sum(counts.values()):,} chunks)[/]"
    )
    if table.row_count == 0:
        console.print(Panel("[dim]No stores or files yet.[/]", title=title, expand=False))
        return
    console.print(Panel(table, title=title, expand=False))


def _show_messages_panel(conn: sqlite3.Connection) -> None:
    row = conn.execute(
        """
        SELECT
            COUNT(*) AS total,
            SUM(CASE WHEN direction = 'inbound' THEN 1 ELSE 0 END) AS inbound,
            SUM(CASE WHEN auto_respond_sent = 1 THEN 1 ELSE 0 END) AS answered,
            SUM(CASE WHEN auto_respond_sent = 0 THEN 1 ELSE 0 END) AS unsent
        FROM messages
        """
    ).fetchone()
    mappings = conn.execute(
        "SELECT COUNT(DISTINCT phone_number) FROM phone_mappings"
    ).fetchone()[0]

    lines = [
        f"Mapped numbers: [bold]{mappings}[/]",
        f"Messages: [bold]{row['total']}[/]  |  Inbound: {row['inbound'] or 0}  |  "
        f"Answered: [green]{row['answered'] or 0}[/]  |  Send failed: [yellow]{row['unsent'] or 0}[/]",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Messages[/]", expand=False))
