"""courier tenant: register catalog stores and map business numbers to sources.

Commands:
  courier tenant add-store STORE_ID --domain D --token T
  courier tenant map PHONE (--store STORE_ID | --file FILE_ID ...) [--prompt ...]
  courier tenant show PHONE
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from courier.cli.errors import err_mapping_conflict
from courier.cli.runtime import load_config_or_exit, open_repository_or_exit, resolve_db
from courier.db.models import CatalogStore, DataSourceKind, PhoneMapping

console = Console()

tenant_app = typer.Typer(
    name="tenant",
    help="Manage catalog stores and business number mappings.",
    add_completion=False,
)

_DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the database (default: database.path from config)."),
]


@tenant_app.command("add-store")
def add_store_cmd(
    store_id: Annotated[str, typer.Argument(help="Store id; also the owner id of its chunks.")],
    domain: Annotated[str, typer.Option("--domain", help="Store domain, e.g. shop.myshopify.com.")],
    token: Annotated[
        str,
        typer.Option(
            "--token",
            envvar="COURIER_STOREFRONT_TOKEN",
            help="Storefront API access token.",
        ),
    ],
    db: _DbOption = None,
) -> None:
    """Register (or update) a catalog store."""
    cfg = load_config_or_exit(console)
    repo = open_repository_or_exit(resolve_db(db, cfg), cfg, console)
    try:
        repo.add_catalog_store(
            CatalogStore(id=store_id, store_domain=domain, storefront_token=token)
        )
    finally:
        repo.conn.close()
    console.print(f"[green]✓[/] Store [bold]{store_id}[/] registered ({domain})")
    console.print(f"  Next:  courier sync-store {store_id}")


@tenant_app.command("map")
def map_cmd(
    phone: Annotated[str, typer.Argument(help="Business number receiving messages.")],
    store: Annotated[
        str | None, typer.Option("--store", help="Catalog store id to answer from.")
    ] = None,
    file: Annotated[
        list[str] | None,
        typer.Option("--file", help="Document file id to answer from (repeatable)."),
    ] = None,
    prompt: Annotated[
        str | None, typer.Option("--prompt", help="Custom system prompt for this number.")
    ] = None,
    prompt_file: Annotated[
        Path | None,
        typer.Option("--prompt-file", help="Read the custom system prompt from a file."),
    ] = None,
    intent: Annotated[str | None, typer.Option("--intent", help="Free-form intent label.")] = None,
    auth_token: Annotated[
        str | None,
        typer.Option(
            "--auth-token",
            envvar="COURIER_SEND_TOKEN",
            help="Bearer token for the messaging API.",
        ),
    ] = None,
    origin: Annotated[
        str | None, typer.Option("--origin", help="Base URL of the messaging API.")
    ] = None,
    db: _DbOption = None,
) -> None:
    """Map a business number to a catalog store or to document files.

    Any existing mapping for the number is replaced.
    """
    files = file or []
    if bool(files) == bool(store):
        console.print(err_mapping_conflict(files, store))
        raise typer.Exit(1)

    if prompt_file is not None:
        prompt = prompt_file.read_text(encoding="utf-8").strip()

    cfg = load_config_or_exit(console)
    repo = open_repository_or_exit(resolve_db(db, cfg), cfg, console)
    try:
        if store:
            if repo.get_catalog_store(store) is None:
                console.print(f"[yellow]Warning:[/] store '{store}' is not registered yet.")
            rows = [
                PhoneMapping(
                    phone_number=phone, data_source=DataSourceKind.CATALOG, store_id=store
                )
            ]
        else:
            rows = [
                PhoneMapping(phone_number=phone, data_source=DataSourceKind.FILES, file_id=f)
                for f in files
            ]
        for row in rows:
            row.system_prompt = prompt
            row.intent = intent
            row.auth_token = auth_token
            row.origin = origin
        repo.replace_phone_mappings(phone, rows)
    finally:
        repo.conn.close()

    target = f"store {store}" if store else f"{len(files)} file(s)"
    console.print(f"[green]✓[/] {phone} → {target}")
    if not (auth_token and origin):
        console.print(
            "[yellow]Warning:[/] no --auth-token/--origin set; replies cannot be sent "
            "until credentials are configured."
        )


@tenant_app.command("show")
def show_cmd(
    phone: Annotated[str, typer.Argument(help="Business number.")],
    db: _DbOption = None,
) -> None:
    """Show the mappings of a business number."""
    cfg = load_config_or_exit(console)
    repo = open_repository_or_exit(resolve_db(db, cfg), cfg, console)
    try:
        mappings = repo.get_phone_mappings(phone)
    finally:
        repo.conn.close()

    if not mappings:
        console.print(f"[yellow]No mappings for {phone}.[/]")
        raise typer.Exit(0)

    table = Table(title=f"Mappings for {phone}", show_header=True, header_style="bold")
    table.add_column("Source")
    table.add_column("Id")
    table.add_column("Intent", style="dim")
    table.add_column("Prompt", style="dim")
    table.add_column("Credentials")
    for m in mappings:
        table.add_row(
            m.data_source.value,
            m.store_id or m.file_id or "",
            m.intent or "",
            (m.system_prompt or "")[:40],
            "[green]✓[/]" if m.auth_token and m.origin else "[yellow]✗[/]",
        )
    console.print(table)
