"""portable-brains ask / chat: answer questions from the knowledge base.

Each question is embedded with the store's embedding model, the nearest
fragments are retrieved, and a chat model answers using them as context.
Questions are independent; no history is carried between them.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from portable_brains.cli.common import (
    load_config_or_exit,
    open_storage_or_exit,
    print_mismatch,
    require_api_key,
)
from portable_brains.cli.errors import err_llm, err_results_range, err_storage
from portable_brains.cli.logs import setup_logging
from portable_brains.config import BrainsConfig
from portable_brains.db.base import Storage
from portable_brains.errors import ModelMismatch, StorageError
from portable_brains.ingest.embedders import EmbeddingBackend, create_embedding_backend
from portable_brains.rag.assembler import Answer, answer_question
from portable_brains.rag.retriever import MAX_RESULTS, MIN_RESULTS, check_model

logger = logging.getLogger(__name__)

console = Console()

_EXIT_WORDS = frozenset(["quit", "exit"])

_HELP = (
    "[bold]Available commands:[/]\n"
    "  help  - Show this help message\n"
    "  quit  - Exit the program (also: exit)\n"
    "  Any other text will be treated as a question"
)

# Shared option types for ask and chat.
DbOpt = Annotated[Path | None, typer.Option("--db", help="DuckDB database file.")]
ResultsOpt = Annotated[
    int | None, typer.Option("--results", "-n", help="Fragments retrieved per question (1-20).")
]
ChatModelOpt = Annotated[str | None, typer.Option("--model", "-m", help="Chat model (LiteLLM provider/model).")]
EmbeddingModelOpt = Annotated[
    str | None,
    typer.Option("--embedding-model", help="Embedding model; must match the one used at ingest."),
]
ApiBaseOpt = Annotated[str | None, typer.Option("--api-base", help="OpenAI-compatible endpoint URL.")]
SourcesOpt = Annotated[bool, typer.Option("--sources", help="Show the retrieved fragments.")]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging.")]


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question to answer.")],
    db: DbOpt = None,
    results: ResultsOpt = None,
    model: ChatModelOpt = None,
    embedding_model: EmbeddingModelOpt = None,
    api_base: ApiBaseOpt = None,
    sources: SourcesOpt = False,
    verbose: VerboseOpt = False,
) -> None:
    """Answer a single question from the knowledge base."""
    setup_logging(verbose, console=console)
    cfg = _prepare(db, results, model, embedding_model, api_base)
    storage = open_storage_or_exit(cfg, console, must_exist=True)
    with storage:
        backend = _embedding_backend(cfg, storage)
        try:
            answer = answer_question(question, storage, backend, cfg.chat)
        except StorageError as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1)
        except Exception as exc:
            logger.debug("Chat request failed", exc_info=True)
            console.print(err_llm(str(exc)))
            raise typer.Exit(1)
        _print_answer(answer, sources)


def chat_cmd(
    db: DbOpt = None,
    results: ResultsOpt = None,
    model: ChatModelOpt = None,
    embedding_model: EmbeddingModelOpt = None,
    api_base: ApiBaseOpt = None,
    sources: SourcesOpt = False,
    verbose: VerboseOpt = False,
) -> None:
    """Interactive question loop over the knowledge base ('quit' to leave)."""
    setup_logging(verbose, console=console)
    cfg = _prepare(db, results, model, embedding_model, api_base)
    storage = open_storage_or_exit(cfg, console, must_exist=True)
    with storage:
        backend = _embedding_backend(cfg, storage)
        console.print(
            Panel(
                f"Database: {cfg.storage.path}\n"
                f"Model:    {cfg.chat.model}\n"
                f"Retrieving {cfg.chat.results} fragments per question.\n"
                "Type your questions, 'help' for commands, or 'quit' to exit.",
                title="[bold]portable-brains chat[/]",
                expand=False,
            )
        )
        _chat_loop(cfg, storage, backend, sources)


def _chat_loop(cfg: BrainsConfig, storage: Storage, backend: EmbeddingBackend, sources: bool) -> None:
    while True:
        try:
            query = console.input("[bold green]❯[/] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        if not query:
            continue
        if query.lower() in _EXIT_WORDS:
            break
        if query.lower() == "help":
            console.print(_HELP)
            continue

        try:
            with console.status("Searching knowledge base…"):
                answer = answer_question(query, storage, backend, cfg.chat)
        except Exception as exc:
            logger.debug("Question failed", exc_info=True)
            console.print(err_llm(str(exc)))
            continue
        _print_answer(answer, sources)

    console.print("Goodbye!")


# ------------------------------------------------------------------
# Setup helpers
# ------------------------------------------------------------------


def _prepare(
    db: Path | None,
    results: int | None,
    model: str | None,
    embedding_model: str | None,
    api_base: str | None,
) -> BrainsConfig:
    cfg = load_config_or_exit(console)
    if db is not None:
        cfg.storage.path = str(db)
    if results is not None:
        if not MIN_RESULTS <= results <= MAX_RESULTS:
            console.print(err_results_range(results))
            raise typer.Exit(1)
        cfg.chat.results = results
    if model is not None:
        cfg.chat.model = model
    if embedding_model is not None:
        cfg.embedding.model = embedding_model
    if api_base is not None:
        cfg.chat.api_base = api_base
    require_api_key(cfg.chat.model, console, api_base=cfg.chat.api_base)
    require_api_key(cfg.embedding.model, console)
    return cfg


def _embedding_backend(cfg: BrainsConfig, storage: Storage) -> EmbeddingBackend:
    try:
        check_model(storage, cfg.embedding.model)
    except ModelMismatch as exc:
        print_mismatch(exc, console)
        raise typer.Exit(1)
    return create_embedding_backend(cfg.embedding.model)


def _print_answer(answer: Answer, sources: bool) -> None:
    if not answer.sources:
        console.print("[dim]No relevant fragments found for this question.[/]")
    console.print()
    console.print(answer.text, markup=False)
    console.print()
    if sources:
        for i, hit in enumerate(answer.sources, 1):
            preview = hit.content if len(hit.content) <= 200 else hit.content[:200] + "…"
            console.print(f"[dim]{i}. ({hit.score:.3f}) {escape(preview)}[/]")
