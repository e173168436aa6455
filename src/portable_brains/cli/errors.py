"""portable-brains rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from portable_brains.cli.errors import err_no_api_key, err_no_db
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from portable_brains.rag.llm_client import api_key_env


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_var = api_key_env(provider) or f"{provider.upper()}_API_KEY"
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = "brain.duckdb") -> str:
    """No database file at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  portable-brains ingest --input-dir <DIR> --db " + db_path
    )


def err_input_dir(path: str) -> str:
    """--input-dir does not point at a directory."""
    return (
        f"[red]Error:[/] Input directory does not exist or is not a directory: '{path}'\n"
        "  Pass an existing folder:  portable-brains ingest --input-dir ./docs"
    )


def err_model_mismatch(db_model: str, config_model: str) -> str:
    """Embedding model stored in the database does not match the current config."""
    return (
        "[red]Error:[/] Embedding model mismatch.\n"
        f"  Database uses:  {db_model}\n"
        f"  Config has:     {config_model}\n"
        f"  Run with  --model {db_model}  or ingest into a new database file."
    )


def err_version_mismatch(db_version: str, expected: str) -> str:
    """Database was written by an incompatible schema version."""
    return (
        "[red]Error:[/] Database version mismatch.\n"
        f"  Database version:  {db_version}\n"
        f"  Supported:         {expected}\n"
        "  Re-ingest your documents into a new database file."
    )


def err_count_mismatch(expected: int, got: int) -> str:
    """Embedding provider returned the wrong number of vectors."""
    return (
        f"[red]Error:[/] Embedding provider returned {got} vectors for {expected} texts.\n"
        "  Phase 2 was aborted; stored documents and fragments are kept.\n"
        "  Re-run the same ingest command to embed the remaining fragments."
    )


def err_storage(detail: str) -> str:
    """The storage backend failed outside per-file processing."""
    return (
        f"[red]Error:[/] Storage failure: {detail}\n"
        "  Check that the database path is writable and not opened by another process."
    )


def err_config(detail: str) -> str:
    """Configuration file or flag value is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration: {detail}\n"
        "  Fix portable-brains.yaml (or the flag) and try again."
    )


def err_results_range(value: int) -> str:
    """--results outside 1..20."""
    return (
        f"[red]Error:[/] Results count must be between 1 and 20, got {value}.\n"
        "  Example:  --results 5"
    )


def err_llm(detail: str) -> str:
    """Chat or embedding API call failed after retries."""
    return (
        f"[red]Error:[/] Language model request failed: {detail}\n"
        "  Check the model name, --api-base and your network connection."
    )
