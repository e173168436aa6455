"""Tests for the forward-only DuckDB migration runner."""

from __future__ import annotations

import duckdb
import pytest

from portable_brains.db.migrations import MIGRATIONS, run_migrations


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    return duckdb.connect(str(tmp_path / "test.duckdb"))


def _table_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT table_name FROM information_schema.tables WHERE table_name = ?", [name]
    ).fetchone() is not None


# --- Bootstrap ---

def test_run_migrations_creates_schema_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, "schema_version")
    conn.close()


def test_run_migrations_records_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()


# --- Idempotency ---

def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    run_migrations(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


# --- Tables created ---

@pytest.mark.parametrize("table", ["meta", "documents", "fragments"])
def test_run_migrations_creates_tables(tmp_path, table):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, table)
    conn.close()


def test_fragments_embedding_column_is_double_list(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    row = conn.execute(
        "SELECT data_type FROM information_schema.columns "
        "WHERE table_name = 'fragments' AND column_name = 'embedding'"
    ).fetchone()
    assert row[0] == "DOUBLE[]"
    conn.close()


def test_documents_file_path_unique(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    insert = "INSERT INTO documents (id, filename, file_path, file_type, file_data) VALUES (?, 'a', '/a', 'txt', ''::BLOB)"
    conn.execute(insert, ["1"])
    with pytest.raises(duckdb.ConstraintException):
        conn.execute(insert, ["2"])
    conn.close()
