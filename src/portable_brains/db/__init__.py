"""portable-brains storage layer."""

from portable_brains.db.base import DB_VERSION, Storage
from portable_brains.db.duckdb_store import DuckDBStorage
from portable_brains.db.factory import open_storage
from portable_brains.db.memory import MemoryStorage
from portable_brains.db.migrations import MIGRATIONS, run_migrations

__all__ = [
    "DB_VERSION",
    "DuckDBStorage",
    "MemoryStorage",
    "MIGRATIONS",
    "Storage",
    "open_storage",
    "run_migrations",
]
