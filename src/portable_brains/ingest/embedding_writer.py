"""Phase 2: attach embeddings to every stored fragment that lacks one.

Fragments are fetched in batches ordered by (document_id, fragment_order),
embedded with one backend call per batch, and written back one by one. A
fixed delay between batches is backpressure that bounds peak memory from
pipelined batches.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from portable_brains.db.base import Storage
from portable_brains.errors import CountMismatch
from portable_brains.ingest.embedders import EmbeddingBackend

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class EmbeddingWriter:
    """Drain the store's un-embedded fragments through an embedding backend.

    Args:
        storage: Open storage backend.
        backend: Embedding backend; one ``generate_embeddings_batch`` call per batch.
        batch_size: Fragments fetched and embedded per iteration.
        batch_delay: Seconds to sleep after each batch.
    """

    def __init__(
        self,
        storage: Storage,
        backend: EmbeddingBackend,
        batch_size: int = 50,
        batch_delay: float = 0.1,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._storage = storage
        self._backend = backend
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    def write_pending(self, on_progress: ProgressCallback | None = None) -> int:
        """Embed all pending fragments. Returns the number of fragments processed.

        ``on_progress(processed, total)`` is called after each batch, where
        *total* is the pending count observed before the first batch.

        Raises:
            CountMismatch: The backend returned a different number of vectors
                than texts submitted. Nothing from that batch is persisted.
        """
        total = self._storage.count_fragments_without_embeddings()
        if total == 0:
            logger.info("No fragments need embeddings")
            return 0

        logger.info("Generating embeddings for %d fragments", total)
        processed = 0
        # Fragments whose vector came back empty stay pending; they are
        # filtered out of later fetches so each batch holds only new work.
        skipped: set[str] = set()

        while True:
            rows = self._storage.get_fragments_without_embeddings(self.batch_size + len(skipped))
            batch = [row for row in rows if row[0] not in skipped][: self.batch_size]
            if not batch:
                break

            texts = [content for _, content in batch]
            vectors = self._backend.generate_embeddings_batch(texts)
            if len(vectors) != len(batch):
                raise CountMismatch(len(batch), len(vectors))

            for (fragment_id, _), vector in zip(batch, vectors):
                if not vector:
                    logger.warning("Skipping empty embedding for fragment %s", fragment_id)
                    skipped.add(fragment_id)
                    continue
                self._storage.update_fragment_embedding(fragment_id, vector)

            processed += len(batch)
            logger.debug("Embedded batch of %d (%d/%d)", len(batch), processed, total)
            if on_progress is not None:
                on_progress(processed, total)

            if self.batch_delay > 0:
                time.sleep(self.batch_delay)

        if skipped:
            logger.warning("%d fragments could not be embedded", len(skipped))
        logger.info("Embedding complete: %d fragments processed", processed)
        return processed
