"""Storage contract shared by every backend.

A backend is chosen once at startup (see ``portable_brains.db.factory``) and
never switched at runtime. The ingestion pipeline only talks to this
interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from portable_brains.db.models import Document, MetaInfo, ScoredFragment
from portable_brains.errors import ModelMismatch

logger = logging.getLogger(__name__)

DB_VERSION = "1.0.0"

_VERSION_KEY = "version"
_MODEL_KEY = "embedding_model"


class Storage(ABC):
    """Abstract storage backend: documents, fragments, vectors, and a meta record.

    Invariants every backend enforces:
    - ``file_path`` is unique across documents.
    - ``(document_id, fragment_order)`` is unique; fragments reference an
      existing document.
    - The meta record (schema version, embedding model) is write-once.
    """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> None:
        """Create tables / structures if missing (idempotent)."""

    def close(self) -> None:
        """Release backend resources. Default: nothing to release."""

    def __enter__(self) -> Storage:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Meta record
    # ------------------------------------------------------------------

    @abstractmethod
    def _get_meta(self, key: str) -> str | None:
        """Return the stored meta value for *key*, or None if unset."""

    @abstractmethod
    def _set_meta(self, key: str, value: str) -> None:
        """Insert a meta value. Only called for keys that are still unset."""

    def verify_or_set_model(self, model_name: str) -> None:
        """Record the schema version and embedding model, or verify they match.

        Raises:
            ModelMismatch: If the store was created with a different version
                or embedding model.
        """
        existing_version = self._get_meta(_VERSION_KEY)
        if existing_version is None:
            self._set_meta(_VERSION_KEY, DB_VERSION)
            logger.info("Set database version to %s", DB_VERSION)
        elif existing_version != DB_VERSION:
            raise ModelMismatch(DB_VERSION, existing_version, key=_VERSION_KEY)

        existing_model = self._get_meta(_MODEL_KEY)
        if existing_model is None:
            self._set_meta(_MODEL_KEY, model_name)
            logger.info("Set embedding model to %s", model_name)
        elif existing_model != model_name:
            raise ModelMismatch(model_name, existing_model, key=_MODEL_KEY)
        else:
            logger.debug("Verified embedding model: %s", model_name)

    def get_meta_info(self) -> MetaInfo:
        """Return the meta record; unset keys read as ``"unknown"``."""
        return MetaInfo(
            version=self._get_meta(_VERSION_KEY) or "unknown",
            embedding_model=self._get_meta(_MODEL_KEY) or "unknown",
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    def document_exists(self, file_path: Path | str) -> bool:
        """Return True if a document with this exact path is stored."""

    @abstractmethod
    def store_document(self, file_path: Path | str, file_data: bytes) -> str:
        """Persist the raw payload for *file_path* and return the new document id.

        Raises:
            StorageError: If a document with the same path already exists.
        """

    @abstractmethod
    def list_documents(self) -> list[Document]:
        """Return all documents without their payload, oldest first."""

    @abstractmethod
    def count_documents(self) -> int:
        """Return the number of stored documents."""

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    @abstractmethod
    def store_text_fragment(self, document_id: str, order: int, content: str) -> str:
        """Persist one fragment without an embedding and return its id."""

    @abstractmethod
    def update_fragment_embedding(self, fragment_id: str, embedding: list[float]) -> None:
        """Attach *embedding* to an existing fragment."""

    @abstractmethod
    def get_fragments_without_embeddings(self, limit: int) -> list[tuple[str, str]]:
        """Return up to *limit* ``(fragment_id, content)`` pairs lacking a vector.

        Ordered by ``(document_id, fragment_order)``.
        """

    @abstractmethod
    def count_fragments_without_embeddings(self) -> int:
        """Return how many fragments still lack an embedding."""

    @abstractmethod
    def count_fragments(self) -> int:
        """Return the total number of stored fragments."""

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @abstractmethod
    def search_similar(self, query_embedding: list[float], limit: int) -> list[ScoredFragment]:
        """Cosine nearest-neighbour search over embedded fragments, best first."""


def describe_path(file_path: Path | str) -> tuple[str, str, str]:
    """Return ``(path_str, filename, file_type)`` for a document path.

    ``file_type`` is the lowercased extension without the dot, or
    ``"unknown"``.
    """
    p = Path(file_path)
    file_type = p.suffix.lower().lstrip(".") or "unknown"
    return str(p), p.name or "unknown", file_type
