"""portable-brains status: what the knowledge base holds.

Shows the meta record (schema version, embedding model), document and
fragment counts, pending embeddings, and the most recently stored documents.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from portable_brains.cli.common import load_config_or_exit, open_storage_or_exit
from portable_brains.cli.errors import err_storage
from portable_brains.db.base import Storage
from portable_brains.errors import StorageError

console = Console()

_RECENT_LIMIT = 10


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="DuckDB database file."),
    ] = None,
) -> None:
    """Show knowledge base status: model, counts, and pending embeddings."""
    cfg = load_config_or_exit(console)
    if db is not None:
        cfg.storage.path = str(db)
    if cfg.storage.backend != "duckdb":
        console.print("[yellow]The memory backend keeps nothing between commands; no status to show.[/]")
        raise typer.Exit(0)

    storage = open_storage_or_exit(cfg, console, must_exist=True)
    with storage:
        try:
            _show_database_panel(Path(cfg.storage.path), storage)
            _show_documents_table(storage)
        except StorageError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _show_database_panel(db_path: Path, storage: Storage) -> None:
    meta = storage.get_meta_info()
    documents = storage.count_documents()
    fragments = storage.count_fragments()
    pending = storage.count_fragments_without_embeddings()

    db_info = str(db_path)
    if db_path.exists():
        size_mb = db_path.stat().st_size / (1024 * 1024)
        db_info = f"{db_path} ({size_mb:.1f} MB)"

    pending_style = "green" if pending == 0 else "yellow"
    lines = [
        f"Database:  {db_info}",
        f"Version:   {meta.version}",
        f"Model:     [bold]{meta.embedding_model}[/]",
        f"Documents: [bold]{documents:,}[/]  |  Fragments: [bold]{fragments:,}[/]  |  "
        f"Pending embeddings: [{pending_style}]{pending:,}[/]",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Knowledge Base[/]", expand=False))


def _show_documents_table(storage: Storage) -> None:
    docs = storage.list_documents()
    if not docs:
        console.print("[dim]No documents ingested yet.[/]")
        return

    table = Table(title=f"Documents (latest {min(len(docs), _RECENT_LIMIT)} of {len(docs)})")
    table.add_column("File")
    table.add_column("Type")
    table.add_column("Stored", style="dim")
    for doc in docs[-_RECENT_LIMIT:]:
        table.add_row(doc.filename, doc.file_type, doc.created_at or "")
    console.print(table)
