"""courier init: create courier.yaml and an empty database with schema.

Creates:
  courier.yaml   — project config (models, retrieval, history window)
  courier.db     — SQLite database (path from database.path)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from courier.cli.errors import err_config
from courier.cli.runtime import open_db
from courier.config import ConfigError, load_config, write_project_config

console = Console()


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
) -> None:
    """Initialize a Courier project: config file plus database schema."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    config_path = project_dir / "courier.yaml"
    existed = config_path.exists()
    write_project_config(project_dir)
    if existed:
        console.print(f"[dim]↷ Keeping existing {config_path.name}[/]")
    else:
        console.print(f"[green]✓[/] Wrote {config_path.name}")

    try:
        cfg = load_config(project_dir)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    db_path = Path(cfg.database.path)
    if not db_path.is_absolute():
        db_path = project_dir / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = open_db(db_path)
    conn.close()
    console.print(f"[green]✓[/] Database ready: {db_path}")

    console.print(
        "\nNext steps:\n"
        "  courier tenant add-store STORE_ID --domain SHOP.myshopify.com --token TOKEN\n"
        "  courier sync-store STORE_ID\n"
        "  courier tenant map +15550001 --store STORE_ID --auth-token TOKEN --origin https://api.example.com"
    )
