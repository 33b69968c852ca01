"""Process-wide logging configuration (rich console handler)."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore")


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route all ``courier.*`` log records through a RichHandler.

    Third-party HTTP and LiteLLM loggers are held at WARNING unless *verbose*.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
