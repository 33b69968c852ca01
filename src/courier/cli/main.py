"""Courier CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from courier.cli.ingest import ingest_file_cmd
from courier.cli.init import init_cmd
from courier.cli.respond import respond_cmd
from courier.cli.status import status_cmd
from courier.cli.sync import sync_store_cmd
from courier.cli.tenant import tenant_app
from courier.logging_setup import setup_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("courier")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"courier {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="courier",
    help=(
        "Courier — retrieval-augmented auto-responder for business chat numbers.\n\n"
        "  courier sync-store   Rebuild a catalog store's knowledge base.\n"
        "  courier respond      Answer one inbound message and send the reply."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging (includes LiteLLM and HTTP)."),
    ] = False,
) -> None:
    """Courier — retrieval-augmented auto-responder."""
    setup_logging(verbose=verbose)


app.command("init")(init_cmd)
app.command("sync-store")(sync_store_cmd)
app.command("ingest-file")(ingest_file_cmd)
app.command("respond")(respond_cmd)
app.command("status")(status_cmd)
app.add_typer(tenant_app, name="tenant")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Courier version."""
    typer.echo(f"courier {_installed_version()}")


if __name__ == "__main__":
    app()
