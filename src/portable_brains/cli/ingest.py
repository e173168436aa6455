"""portable-brains ingest: store documents and fragments, then embed them.

Phase 1 (per file, in path order):
  exists? → size ok? → store raw bytes → extract text → chunk → store fragments
Phase 2 (whole store):
  fetch un-embedded fragments in batches → embed → store vectors → pause

Supported extensions: pdf, txt, text, html, htm, docx, pptx, xlsx.
Anything else in the input directory is ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from portable_brains.cli.common import (
    load_config_or_exit,
    open_storage_or_exit,
    print_mismatch,
    require_api_key,
)
from portable_brains.cli.errors import err_config, err_count_mismatch, err_input_dir, err_storage
from portable_brains.cli.logs import setup_logging
from portable_brains.config import STORAGE_BACKENDS, BrainsConfig
from portable_brains.errors import CountMismatch, ModelMismatch, StorageError
from portable_brains.ingest.embedders import create_embedding_backend
from portable_brains.ingest.pipeline import FileResult, FileStatus, IngestionPipeline, IngestReport

console = Console()

_STATUS_MARKS: dict[FileStatus, str] = {
    FileStatus.FRAGMENTS_STORED: "[green]✓[/]",
    FileStatus.SKIPPED_EXISTS: "[dim]↷[/]",
    FileStatus.SKIPPED_TOO_LARGE: "[yellow]↷[/]",
    FileStatus.FAILED: "[red]✗[/]",
}


def ingest_cmd(
    input_dir: Annotated[
        Path,
        typer.Option("--input-dir", "-i", help="Directory containing documents to ingest."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="DuckDB database file (created if missing)."),
    ] = None,
    backend: Annotated[
        str | None,
        typer.Option("--backend", help="Storage backend: duckdb | memory."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Embedding model (LiteLLM provider/model or local/<name>)."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", help="Fragments embedded per request."),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Target fragment size in characters."),
    ] = None,
    overlap: Annotated[
        int | None,
        typer.Option("--overlap", help="Overlap between fragments in characters."),
    ] = None,
    recursive: Annotated[
        bool,
        typer.Option("--recursive", "-r", help="Recurse into subdirectories (max 10 levels)."),
    ] = False,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", help="Glob pattern to exclude (repeatable)."),
    ] = None,
    skip_embeddings: Annotated[
        bool,
        typer.Option("--skip-embeddings", help="Run Phase 1 only; embed later with another ingest run."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging."),
    ] = False,
) -> None:
    """Ingest every supported document in a directory into the knowledge base."""
    setup_logging(verbose, console=console)

    cfg = load_config_or_exit(console)
    _apply_flags(cfg, db, backend, model, batch_size, chunk_size, overlap)

    if not input_dir.is_dir():
        console.print(err_input_dir(str(input_dir)))
        raise typer.Exit(1)

    files = IngestionPipeline.find_supported_files(input_dir, recursive=recursive, exclude=exclude or [])
    if not files:
        console.print(f"[yellow]No supported files found in directory:[/] {input_dir}")
        raise typer.Exit(0)

    if not skip_embeddings:
        require_api_key(cfg.embedding.model, console)

    console.print(
        f"[bold]→ {len(files)} files[/] from {input_dir}  "
        f"[dim]({cfg.storage.backend}: {cfg.storage.path if cfg.storage.backend == 'duckdb' else 'in-memory'}, "
        f"model: {cfg.embedding.model})[/]"
    )
    if cfg.storage.backend == "memory":
        console.print("[yellow]Memory backend:[/] nothing is kept after this command exits.")

    storage = open_storage_or_exit(cfg, console)
    with storage:
        try:
            pipeline = IngestionPipeline(storage, cfg)
        except ValueError as exc:
            console.print(err_config(str(exc)))
            raise typer.Exit(1)

        try:
            report = _run(pipeline, cfg, files, skip_embeddings)
        except ModelMismatch as exc:
            print_mismatch(exc, console)
            raise typer.Exit(1)
        except CountMismatch as exc:
            console.print(err_count_mismatch(exc.expected, exc.got))
            raise typer.Exit(1)
        except StorageError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)

        _show_summary(report, storage.count_fragments_without_embeddings(), skip_embeddings)


# ------------------------------------------------------------------
# Flag overrides (highest priority layer)
# ------------------------------------------------------------------


def _apply_flags(
    cfg: BrainsConfig,
    db: Path | None,
    backend: str | None,
    model: str | None,
    batch_size: int | None,
    chunk_size: int | None,
    overlap: int | None,
) -> None:
    if db is not None:
        cfg.storage.path = str(db)
    if backend is not None:
        if backend.lower() not in STORAGE_BACKENDS:
            console.print(
                err_config(f"unknown backend '{backend}' (choose {', '.join(sorted(STORAGE_BACKENDS))})")
            )
            raise typer.Exit(1)
        cfg.storage.backend = backend.lower()
    if model is not None:
        cfg.embedding.model = model
    if batch_size is not None:
        if batch_size < 1:
            console.print(err_config("--batch-size must be >= 1"))
            raise typer.Exit(1)
        cfg.embedding.batch_size = batch_size
    if chunk_size is not None:
        cfg.chunking.chunk_size = chunk_size
    if overlap is not None:
        cfg.chunking.overlap = overlap


# ------------------------------------------------------------------
# Phase runner with progress display
# ------------------------------------------------------------------


def _run(
    pipeline: IngestionPipeline,
    cfg: BrainsConfig,
    files: list[Path],
    skip_embeddings: bool,
) -> IngestReport:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
        console=console,
    ) as prog:
        phase1 = prog.add_task("Phase 1: storing documents…", total=len(files))

        def _on_file(result: FileResult) -> None:
            mark = _STATUS_MARKS.get(result.status, "[red]?[/]")
            detail = f"{result.fragments} fragments" if result.status == FileStatus.FRAGMENTS_STORED else (
                result.reason or result.status.value
            )
            prog.console.print(f"  {mark} {escape(result.path.name)}  [dim]{escape(detail)}[/]")
            prog.advance(phase1)

        if skip_embeddings:
            pipeline.storage.verify_or_set_model(cfg.embedding.model)
            return pipeline.run_phase_one(files, on_file=_on_file)

        phase2 = prog.add_task("Phase 2: embedding fragments…", total=None)

        def _on_batch(done: int, total: int) -> None:
            prog.update(phase2, completed=done, total=total)

        backend = create_embedding_backend(cfg.embedding.model)
        return pipeline.run(files, backend, on_file=_on_file, on_progress=_on_batch)


def _show_summary(report: IngestReport, pending: int, skip_embeddings: bool) -> None:
    table = Table(title="Ingest summary", show_header=False, expand=False)
    table.add_column("metric")
    table.add_column("value", justify="right")
    table.add_row("Documents stored", str(report.stored))
    table.add_row("Skipped", str(report.skipped))
    table.add_row("Failed", str(report.failed))
    table.add_row("Fragments stored", str(report.fragments))
    table.add_row("Fragments embedded", str(report.embedded))
    table.add_row("Pending embeddings", str(pending))
    console.print(table)

    failed = [r for r in report.results if r.status == FileStatus.FAILED]
    for r in failed:
        console.print(f"  [red]✗[/] {escape(str(r.path))}: {escape(r.reason or '')}")
    if skip_embeddings and pending:
        console.print("[dim]Embeddings skipped. Run ingest again without --skip-embeddings to embed.[/]")
