"""portable-brains CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from portable_brains.cli.ask import ask_cmd, chat_cmd
from portable_brains.cli.ingest import ingest_cmd
from portable_brains.cli.status import status_cmd


def _version() -> str:
    try:
        return importlib.metadata.version("portable-brains")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"portable-brains {_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="portable-brains",
    help=(
        "portable-brains: turn a folder of documents into a searchable vector store.\n\n"
        "  portable-brains ingest  Store documents and fragments, then embed them.\n"
        "  portable-brains ask     Answer one question from the store.\n"
        "  portable-brains chat    Ask questions interactively."
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
) -> None:
    """portable-brains: document ingestion and retrieval."""


app.command("ingest")(ingest_cmd)
app.command("status")(status_cmd)
app.command("ask")(ask_cmd)
app.command("chat")(chat_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed portable-brains version."""
    typer.echo(f"portable-brains {_version()}")


if __name__ == "__main__":
    app()
