"""Select and open a storage backend from configuration."""

from __future__ import annotations

from pathlib import Path

from portable_brains.config import STORAGE_BACKENDS, ConfigError
from portable_brains.db.base import Storage
from portable_brains.db.duckdb_store import DuckDBStorage
from portable_brains.db.memory import MemoryStorage


def open_storage(backend: str, path: Path | str | None = None) -> Storage:
    """Open the *backend* storage engine.

    Args:
        backend: ``"duckdb"`` (durable, single file at *path*) or ``"memory"``.
        path: Database file for the durable backend; ignored for ``memory``.

    Raises:
        ConfigError: If *backend* is unknown or ``duckdb`` has no path.
        StorageError: If the database cannot be opened.
    """
    name = backend.lower()
    if name == "memory":
        return MemoryStorage()
    if name == "duckdb":
        if path is None:
            raise ConfigError("The duckdb storage backend requires a database path.")
        return DuckDBStorage(path)
    raise ConfigError(
        f"Unknown storage backend '{backend}'. Choose one of: {', '.join(sorted(STORAGE_BACKENDS))}"
    )
