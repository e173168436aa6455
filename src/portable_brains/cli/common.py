"""Helpers shared by CLI commands: config loading, storage opening, key checks."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from portable_brains.config import BrainsConfig, ConfigError, load_config
from portable_brains.db.base import Storage
from portable_brains.db.factory import open_storage
from portable_brains.errors import ModelMismatch, StorageError
from portable_brains.rag.llm_client import provider_of, validate_api_key
from portable_brains.cli.errors import (
    err_config,
    err_model_mismatch,
    err_no_api_key,
    err_no_db,
    err_storage,
    err_version_mismatch,
)


def load_config_or_exit(console: Console) -> BrainsConfig:
    """Load the layered config, exiting with a rich message on ConfigError."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)


def open_storage_or_exit(
    cfg: BrainsConfig,
    console: Console,
    must_exist: bool = False,
) -> Storage:
    """Open the configured store; with *must_exist*, a missing DuckDB file is an error."""
    if cfg.storage.backend == "duckdb" and must_exist and not Path(cfg.storage.path).exists():
        console.print(err_no_db(cfg.storage.path))
        raise typer.Exit(1)
    try:
        return open_storage(cfg.storage.backend, cfg.storage.path)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    except StorageError as exc:
        console.print(err_storage(str(exc)))
        raise typer.Exit(1)


def require_api_key(model: str, console: Console, api_base: str | None = None) -> None:
    """Exit with a rich message when the provider key for *model* is missing."""
    try:
        validate_api_key(model, api_base=api_base)
    except EnvironmentError:
        console.print(err_no_api_key(provider_of(model)))
        raise typer.Exit(1)


def print_mismatch(exc: ModelMismatch, console: Console) -> None:
    if exc.key == "version":
        console.print(err_version_mismatch(exc.found, exc.expected))
    else:
        console.print(err_model_mismatch(exc.found, exc.expected))
