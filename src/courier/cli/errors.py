"""Courier rich error messages: what went wrong plus the exact fix.

Usage:
    from courier.cli.errors import err_no_db
    console.print(err_no_db("courier.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from courier.rag.llm_client import provider_env_var


def err_no_api_key(model: str) -> str:
    """No API key for the provider of *model*.

    Example:
        No API key for 'groq' (model groq/llama-3.3-70b-versatile). Set:  export GROQ_API_KEY=...
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = provider_env_var(provider) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}' (model {model}).\n"
        f"  Set:  export {env_var}=..."
    )


def err_no_db(db_path: str = "courier.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  courier init"
    )


def err_config(detail: str) -> str:
    """courier.yaml or ~/.courier/config.yaml is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix courier.yaml (or ~/.courier/config.yaml) and retry."
    )


def err_store_not_found(store_id: str) -> str:
    """sync-store was given an unregistered store id."""
    return (
        f"[red]Error:[/] Store not found: '{store_id}'.\n"
        f"  Register it:  courier tenant add-store {store_id} --domain SHOP.myshopify.com --token TOKEN"
    )


def err_unsupported_file(path: str, supported: list[str]) -> str:
    """ingest-file was given a file type it cannot read."""
    return (
        f"[red]Error:[/] Unsupported file type: '{path}'\n"
        f"  Supported extensions: {', '.join(supported)}"
    )


def err_ingest_failed(detail: str) -> str:
    """Ingestion aborted part-way; the owner's chunk set is incomplete."""
    return (
        f"[red]Error:[/] Ingestion failed: {detail}\n"
        "  Existing chunks for this source were cleared. Fix the cause and rerun the command."
    )


def err_mapping_conflict(files: list[str], store: str | None) -> str:
    """tenant map was given both (or neither) a store and files."""
    if files and store:
        cause = "both --store and --file given"
    else:
        cause = "neither --store nor --file given"
    return (
        f"[red]Error:[/] Invalid mapping: {cause}.\n"
        "  Use either:  --store STORE_ID\n"
        "  or:          --file FILE_ID [--file FILE_ID ...]"
    )
