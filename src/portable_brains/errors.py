"""Exception hierarchy for ingestion, storage, and embedding.

Per-file errors (subclasses of ``ExtractionError`` plus ``StorageError``) are
caught by the ingestion pipeline, logged, and the file is skipped. The rest
indicate a corrupted or incompatible environment and abort the whole run.
"""

from __future__ import annotations


class PortableBrainsError(Exception):
    """Root of all portable-brains errors."""


# ---------------------------------------------------------------------------
# Per-file errors
# ---------------------------------------------------------------------------


class ExtractionError(PortableBrainsError):
    """Base for errors raised while turning one file into text fragments."""


class SizeLimitExceeded(ExtractionError):
    """Payload is larger than the configured ``max_file_size``."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"File too large: {size} bytes (max: {limit} bytes)")


class ExtractionFailed(ExtractionError):
    """The format-specific parser could not read the payload."""

    def __init__(self, fmt: str, cause: object) -> None:
        self.fmt = fmt
        self.cause = cause
        super().__init__(f"Failed to extract text from {fmt} document: {cause}")


class EmptyResult(ExtractionError):
    """The payload parsed fine but yielded no text."""

    def __init__(self, fmt: str = "") -> None:
        self.fmt = fmt
        label = f" from {fmt} document" if fmt else ""
        super().__init__(f"No text extracted{label}")


class ChunkingFailed(ExtractionError):
    """Extracted text could not be split into fragments."""


class StorageError(PortableBrainsError):
    """A storage backend operation failed (constraint violation, I/O, ...)."""


# ---------------------------------------------------------------------------
# Global errors
# ---------------------------------------------------------------------------


class ModelMismatch(PortableBrainsError):
    """The store was created with a different embedding model or schema version."""

    def __init__(self, expected: str, found: str, key: str = "embedding_model") -> None:
        self.expected = expected
        self.found = found
        self.key = key
        what = "Embedding model" if key == "embedding_model" else "Database version"
        super().__init__(f"{what} mismatch. Expected: {expected}, Found: {found}")


class CountMismatch(PortableBrainsError):
    """The embedding backend returned a different number of vectors than requested."""

    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"Embedding count mismatch: expected {expected}, got {got}")


class QueryEmbeddingFailed(PortableBrainsError):
    """The embedding backend produced no vector for a question."""
