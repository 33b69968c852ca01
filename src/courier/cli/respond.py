"""courier respond: record an inbound message and run the auto-responder on it."""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel

from courier.cli.runtime import (
    build_chat,
    build_embedder,
    load_config_or_exit,
    open_repository_or_exit,
    resolve_db,
)
from courier.clients.messaging import WhatsAppSender
from courier.db.models import Direction, Message
from courier.db.repository import utc_now_iso
from courier.rag.responder import AutoResponder, ResponseResult

console = Console()


def respond_cmd(
    from_number: Annotated[str, typer.Option("--from", help="Customer number (sender).")],
    to_number: Annotated[str, typer.Option("--to", help="Business number (recipient).")],
    text: Annotated[str, typer.Option("--text", help="Inbound message text.")],
    message_id: Annotated[
        str | None,
        typer.Option("--message-id", help="Inbound message id (default: random)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (default: database.path from config)."),
    ] = None,
) -> None:
    """Answer one inbound message with retrieved context and send the reply."""
    cfg = load_config_or_exit(console)
    repo = open_repository_or_exit(resolve_db(db, cfg), cfg, console)
    mid = message_id or f"cli_{uuid.uuid4().hex}"

    try:
        repo.add_message(
            Message(
                message_id=mid,
                from_number=from_number,
                to_number=to_number,
                received_at=utc_now_iso(),
                direction=Direction.INBOUND,
                content_text=text,
                raw_payload=json.dumps(
                    {"messageId": mid, "from": from_number, "to": to_number, "text": text}
                ),
            ),
            ignore_existing=True,
        )

        sender = WhatsAppSender(cfg.messaging.send_path, timeout=cfg.messaging.timeout)
        try:
            responder = AutoResponder(
                repo,
                build_embedder(cfg, console),
                build_chat(cfg, console),
                sender,
                cfg,
            )
            result = responder.respond(from_number, to_number, text, mid)
        finally:
            sender.close()
    finally:
        repo.conn.close()

    _print_result(mid, result)
    if not result.success:
        raise typer.Exit(1)


def _print_result(message_id: str, result: ResponseResult) -> None:
    if result.duplicate:
        console.print(f"[dim]↷ {message_id} was already answered[/]")
    if result.response:
        console.print(Panel(result.response, title="[bold]Reply[/]", expand=False))
    if result.success:
        console.print(f"[green]✓[/] Sent reply for {message_id}")
        return

    console.print(f"[red]Error:[/] {result.error}")
    if result.not_configured:
        console.print("  Configure the number:  courier tenant map PHONE --store ID --auth-token T --origin URL")
    elif result.no_documents:
        console.print("  Map a source:  courier tenant map PHONE --file FILE_ID")
