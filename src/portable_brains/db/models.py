"""Domain models for the portable-brains storage layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Document:
    id: str
    filename: str
    file_path: str
    file_type: str
    file_data: bytes = field(default=b"", repr=False)
    created_at: str | None = None


@dataclass
class Fragment:
    document_id: str
    fragment_order: int
    content: str
    id: str | None = None  # set by the store on insert
    embedding: list[float] | None = field(default=None, repr=False)
    created_at: str | None = None


@dataclass
class MetaInfo:
    version: str
    embedding_model: str


@dataclass
class ScoredFragment:
    """A search hit: fragment id, its text, and cosine similarity (higher = closer)."""

    fragment_id: str
    content: str
    score: float
