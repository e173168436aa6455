"""Durable storage backend: a single DuckDB file holding documents, fragments, vectors."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from pathlib import Path

import duckdb

from portable_brains.db.base import Storage, describe_path
from portable_brains.db.migrations import run_migrations
from portable_brains.db.models import Document, ScoredFragment
from portable_brains.errors import StorageError

logger = logging.getLogger(__name__)


class DuckDBStorage(Storage):
    """Storage backed by an embedded DuckDB database file.

    Embeddings are stored as ``DOUBLE[]`` on the fragment row and searched
    with ``list_cosine_similarity``. The connection is owned by this object;
    call ``close()`` (or use it as a context manager) when done.

    Args:
        db_path: Path to the DuckDB file (created if missing). ``":memory:"``
            opens a throwaway in-process database.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = str(db_path)
        try:
            self._conn: duckdb.DuckDBPyConnection | None = duckdb.connect(self.db_path)
        except duckdb.Error as exc:
            raise StorageError(f"Failed to open DuckDB database '{self.db_path}': {exc}") from exc
        self.initialize()

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise StorageError("DuckDB connection is closed")
        return self._conn

    def initialize(self) -> None:
        try:
            run_migrations(self.conn)
        except duckdb.Error as exc:
            raise StorageError(f"Failed to initialize DuckDB schema: {exc}") from exc
        logger.debug("DuckDB tables initialized at %s", self.db_path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Meta record
    # ------------------------------------------------------------------

    def _get_meta(self, key: str) -> str | None:
        row = self._fetchone("SELECT value FROM meta WHERE key = ?", [key])
        return row[0] if row else None

    def _set_meta(self, key: str, value: str) -> None:
        self._execute("INSERT INTO meta (key, value) VALUES (?, ?)", [key, value])

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def document_exists(self, file_path: Path | str) -> bool:
        path_str, _, _ = describe_path(file_path)
        row = self._fetchone("SELECT COUNT(*) FROM documents WHERE file_path = ?", [path_str])
        return bool(row and row[0] > 0)

    def store_document(self, file_path: Path | str, file_data: bytes) -> str:
        path_str, filename, file_type = describe_path(file_path)
        document_id = str(uuid.uuid4())
        self._execute(
            """
            INSERT INTO documents (id, filename, file_path, file_type, file_data)
            VALUES (?, ?, ?, ?, ?)
            """,
            [document_id, filename, path_str, file_type, file_data],
        )
        return document_id

    def list_documents(self) -> list[Document]:
        rows = self._fetchall(
            "SELECT id, filename, file_path, file_type, created_at FROM documents ORDER BY created_at, file_path"
        )
        return [
            Document(
                id=r[0],
                filename=r[1],
                file_path=r[2],
                file_type=r[3],
                created_at=_iso(r[4]),
            )
            for r in rows
        ]

    def count_documents(self) -> int:
        return self._fetchone("SELECT COUNT(*) FROM documents")[0]

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def store_text_fragment(self, document_id: str, order: int, content: str) -> str:
        fragment_id = str(uuid.uuid4())
        self._execute(
            """
            INSERT INTO fragments (id, document_id, fragment_order, content)
            VALUES (?, ?, ?, ?)
            """,
            [fragment_id, document_id, order, content],
        )
        return fragment_id

    def update_fragment_embedding(self, fragment_id: str, embedding: list[float]) -> None:
        self._execute(
            "UPDATE fragments SET embedding = ? WHERE id = ?",
            [[float(x) for x in embedding], fragment_id],
        )

    def get_fragments_without_embeddings(self, limit: int) -> list[tuple[str, str]]:
        if limit <= 0:
            return []
        rows = self._fetchall(
            """
            SELECT id, content FROM fragments
            WHERE embedding IS NULL
            ORDER BY document_id, fragment_order
            LIMIT ?
            """,
            [limit],
        )
        return [(r[0], r[1]) for r in rows]

    def count_fragments_without_embeddings(self) -> int:
        return self._fetchone("SELECT COUNT(*) FROM fragments WHERE embedding IS NULL")[0]

    def count_fragments(self) -> int:
        return self._fetchone("SELECT COUNT(*) FROM fragments")[0]

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_similar(self, query_embedding: list[float], limit: int) -> list[ScoredFragment]:
        if limit <= 0 or not query_embedding:
            return []
        rows = self._fetchall(
            """
            SELECT id, content,
                   list_cosine_similarity(embedding, CAST(? AS DOUBLE[])) AS similarity
            FROM fragments
            WHERE embedding IS NOT NULL
            ORDER BY similarity DESC
            LIMIT ?
            """,
            [[float(x) for x in query_embedding], limit],
        )
        return [ScoredFragment(fragment_id=r[0], content=r[1], score=float(r[2])) for r in rows]

    # ------------------------------------------------------------------
    # Query helpers: every duckdb.Error surfaces as StorageError
    # ------------------------------------------------------------------

    def _execute(self, sql: str, params: list | None = None) -> None:
        try:
            self.conn.execute(sql, params or [])
        except duckdb.Error as exc:
            raise StorageError(str(exc)) from exc

    def _fetchone(self, sql: str, params: list | None = None) -> tuple | None:
        try:
            return self.conn.execute(sql, params or []).fetchone()
        except duckdb.Error as exc:
            raise StorageError(str(exc)) from exc

    def _fetchall(self, sql: str, params: list | None = None) -> list[tuple]:
        try:
            return self.conn.execute(sql, params or []).fetchall()
        except duckdb.Error as exc:
            raise StorageError(str(exc)) from exc


def _iso(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
