"""Embedding backends used by Phase 2 and by query-time retrieval.

Model strings follow the LiteLLM ``provider/model`` convention. The special
``local/<name>`` prefix selects an in-process sentence-transformers model
(install the ``local`` extra).
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from portable_brains.errors import CountMismatch
from portable_brains.rag import llm_client

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "local/"


@runtime_checkable
class EmbeddingBackend(Protocol):
    """Anything that turns a batch of texts into one vector per text."""

    model: str

    def generate_embeddings_batch(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per input text, in input order.

        An empty vector means "no embedding for this text"; callers skip it.
        """
        ...


class LiteLLMEmbeddingBackend:
    """Remote embeddings via ``litellm.embedding()``, one request per batch.

    Whitespace-only texts are never sent; they map to ``[]`` in the result.

    Raises:
        CountMismatch: The provider returned a different number of vectors
            than texts sent.
    """

    def __init__(self, model: str, num_retries: int = 3) -> None:
        self.model = model
        self.num_retries = num_retries

    def generate_embeddings_batch(self, texts: list[str]) -> list[list[float]]:
        wanted = [i for i, t in enumerate(texts) if t.strip()]
        result: list[list[float]] = [[] for _ in texts]
        if not wanted:
            return result

        vectors = llm_client.embed_batch(
            self.model, [texts[i] for i in wanted], num_retries=self.num_retries
        )
        if len(vectors) != len(wanted):
            raise CountMismatch(len(wanted), len(vectors))
        for i, vec in zip(wanted, vectors):
            result[i] = vec
        return result


class SentenceTransformerBackend:
    """In-process embeddings with a sentence-transformers model.

    The model is loaded lazily on first use so that importing this module
    never requires the optional dependency.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        self._name = model[len(LOCAL_PREFIX):] if model.startswith(LOCAL_PREFIX) else model
        self._encoder: Any = None

    def _load(self) -> Any:
        if self._encoder is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading local embedding model %s", self._name)
            self._encoder = SentenceTransformer(self._name)
        return self._encoder

    def generate_embeddings_batch(self, texts: list[str]) -> list[list[float]]:
        wanted = [i for i, t in enumerate(texts) if t.strip()]
        result: list[list[float]] = [[] for _ in texts]
        if not wanted:
            return result
        encoded = self._load().encode([texts[i] for i in wanted], show_progress_bar=False)
        if len(encoded) != len(wanted):
            raise CountMismatch(len(wanted), len(encoded))
        for i, vec in zip(wanted, encoded):
            result[i] = [float(x) for x in vec]
        return result


def create_embedding_backend(model: str) -> EmbeddingBackend:
    """Return the backend matching *model*'s prefix."""
    if model.startswith(LOCAL_PREFIX):
        return SentenceTransformerBackend(model)
    return LiteLLMEmbeddingBackend(model)
