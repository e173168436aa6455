"""Logging setup for CLI commands: stdlib logging rendered by rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("pypdf", "httpx", "httpcore", "LiteLLM", "openai", "sentence_transformers")


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route library log records to a RichHandler (INFO, or DEBUG if *verbose*)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose, rich_tracebacks=True)],
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
