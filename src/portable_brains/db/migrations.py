"""Forward-only migration runner for the DuckDB schema.

The meta record (version + embedding model) lives in the ``meta`` table and
is managed by ``Storage.verify_or_set_model()``, not here.
"""

from __future__ import annotations

import duckdb

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  TIMESTAMP NOT NULL DEFAULT current_timestamp
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS meta (
    key     VARCHAR PRIMARY KEY,
    value   VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS documents (
    id          VARCHAR PRIMARY KEY,
    filename    VARCHAR NOT NULL,
    file_path   VARCHAR NOT NULL UNIQUE,
    file_type   VARCHAR NOT NULL,
    file_data   BLOB NOT NULL,
    created_at  TIMESTAMP NOT NULL DEFAULT current_timestamp
);

CREATE TABLE IF NOT EXISTS fragments (
    id              VARCHAR PRIMARY KEY,
    document_id     VARCHAR NOT NULL REFERENCES documents(id),
    fragment_order  INTEGER NOT NULL,
    content         VARCHAR NOT NULL,
    embedding       DOUBLE[],
    created_at      TIMESTAMP NOT NULL DEFAULT current_timestamp,
    UNIQUE (document_id, fragment_order)
);
"""

# Append-only. Each entry: (version: int, sql: str).
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def _statements(sql: str) -> list[str]:
    return [s.strip() for s in sql.split(";") if s.strip()]


def run_migrations(conn: duckdb.DuckDBPyConnection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version. Each migration
    runs in its own transaction together with its schema_version row.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row and row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.execute("BEGIN TRANSACTION")
            try:
                for statement in _statements(sql):
                    conn.execute(statement)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", [version])
            except duckdb.Error:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
