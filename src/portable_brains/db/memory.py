"""In-process storage backend. Everything is lost when the process exits."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

import numpy as np

from portable_brains.db.base import Storage, describe_path
from portable_brains.db.models import Document, Fragment, ScoredFragment
from portable_brains.errors import StorageError

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MemoryStorage(Storage):
    """Dict-backed storage honouring the same constraints as the DuckDB backend."""

    def __init__(self) -> None:
        self._meta: dict[str, str] = {}
        self._documents: dict[str, Document] = {}
        self._paths: dict[str, str] = {}  # file_path -> document id
        self._fragments: dict[str, Fragment] = {}
        self._orders: set[tuple[str, int]] = set()
        self.initialize()

    def initialize(self) -> None:
        logger.debug("In-memory storage initialized")

    # ------------------------------------------------------------------
    # Meta record
    # ------------------------------------------------------------------

    def _get_meta(self, key: str) -> str | None:
        return self._meta.get(key)

    def _set_meta(self, key: str, value: str) -> None:
        if key in self._meta:
            raise StorageError(f"Meta key '{key}' is already set")
        self._meta[key] = value

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def document_exists(self, file_path: Path | str) -> bool:
        path_str, _, _ = describe_path(file_path)
        return path_str in self._paths

    def store_document(self, file_path: Path | str, file_data: bytes) -> str:
        path_str, filename, file_type = describe_path(file_path)
        if path_str in self._paths:
            raise StorageError(f"Document already stored for path '{path_str}'")
        document_id = str(uuid.uuid4())
        self._documents[document_id] = Document(
            id=document_id,
            filename=filename,
            file_path=path_str,
            file_type=file_type,
            file_data=bytes(file_data),
            created_at=_now(),
        )
        self._paths[path_str] = document_id
        return document_id

    def list_documents(self) -> list[Document]:
        return [
            Document(
                id=d.id,
                filename=d.filename,
                file_path=d.file_path,
                file_type=d.file_type,
                created_at=d.created_at,
            )
            for d in self._documents.values()
        ]

    def count_documents(self) -> int:
        return len(self._documents)

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def store_text_fragment(self, document_id: str, order: int, content: str) -> str:
        if document_id not in self._documents:
            raise StorageError(f"Unknown document id '{document_id}'")
        if (document_id, order) in self._orders:
            raise StorageError(f"Fragment {order} already stored for document '{document_id}'")
        fragment_id = str(uuid.uuid4())
        self._fragments[fragment_id] = Fragment(
            id=fragment_id,
            document_id=document_id,
            fragment_order=order,
            content=content,
            created_at=_now(),
        )
        self._orders.add((document_id, order))
        return fragment_id

    def update_fragment_embedding(self, fragment_id: str, embedding: list[float]) -> None:
        fragment = self._fragments.get(fragment_id)
        if fragment is None:
            raise StorageError(f"Unknown fragment id '{fragment_id}'")
        fragment.embedding = [float(x) for x in embedding]

    def get_fragments_without_embeddings(self, limit: int) -> list[tuple[str, str]]:
        if limit <= 0:
            return []
        pending = sorted(
            (f for f in self._fragments.values() if f.embedding is None),
            key=lambda f: (f.document_id, f.fragment_order),
        )
        return [(f.id, f.content) for f in pending[:limit]]

    def count_fragments_without_embeddings(self) -> int:
        return sum(1 for f in self._fragments.values() if f.embedding is None)

    def count_fragments(self) -> int:
        return len(self._fragments)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_similar(self, query_embedding: list[float], limit: int) -> list[ScoredFragment]:
        if limit <= 0 or not query_embedding:
            return []
        query = np.asarray(query_embedding, dtype=np.float64)
        query_norm = np.linalg.norm(query)

        scored: list[ScoredFragment] = []
        for fragment in self._fragments.values():
            if fragment.embedding is None:
                continue
            vec = np.asarray(fragment.embedding, dtype=np.float64)
            if vec.shape != query.shape:
                raise StorageError(
                    f"Embedding dimension mismatch: query has {query.shape[0]}, "
                    f"fragment '{fragment.id}' has {vec.shape[0]}"
                )
            denom = query_norm * np.linalg.norm(vec)
            score = float(np.dot(query, vec) / denom) if denom else 0.0
            scored.append(ScoredFragment(fragment_id=fragment.id, content=fragment.content, score=score))

        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[:limit]
