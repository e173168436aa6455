"""Dense retriever: embed the question, return the nearest stored fragments.

The question is embedded with the same backend (and therefore the same
model) that Phase 2 used; ``check_model`` guards against querying a store
built with a different model.
"""

from __future__ import annotations

import logging

from portable_brains.db.base import Storage
from portable_brains.db.models import ScoredFragment
from portable_brains.errors import ModelMismatch, QueryEmbeddingFailed
from portable_brains.ingest.embedders import EmbeddingBackend

logger = logging.getLogger(__name__)

MIN_RESULTS = 1
MAX_RESULTS = 20


def check_model(storage: Storage, model: str) -> None:
    """Raise ModelMismatch if *storage* was embedded with a model other than *model*.

    A store that never recorded a model (nothing ingested yet) passes.
    """
    stored = storage.get_meta_info().embedding_model
    if stored != "unknown" and stored != model:
        raise ModelMismatch(model, stored)


def retrieve(
    question: str,
    storage: Storage,
    backend: EmbeddingBackend,
    limit: int = 5,
) -> list[ScoredFragment]:
    """Return up to *limit* fragments most similar to *question*, best first.

    Raises:
        ValueError: If *limit* is outside 1..20.
        QueryEmbeddingFailed: If the backend returns no vector for the question.
    """
    if not MIN_RESULTS <= limit <= MAX_RESULTS:
        raise ValueError(f"Results count must be between {MIN_RESULTS} and {MAX_RESULTS}, got {limit}")

    vectors = backend.generate_embeddings_batch([question])
    if not vectors or not vectors[0]:
        raise QueryEmbeddingFailed("Failed to generate embedding for query")

    results = storage.search_similar(vectors[0], limit)
    logger.debug("Retrieved %d fragments for query", len(results))
    return results
