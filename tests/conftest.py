"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from portable_brains.db.duckdb_store import DuckDBStorage
from portable_brains.db.memory import MemoryStorage


class FakeEmbeddingBackend:
    """Deterministic in-process backend: a 3-d vector derived from text length.

    Records every batch it was called with in ``calls``.
    """

    def __init__(self, model: str = "test/fake-embedder") -> None:
        self.model = model
        self.calls: list[list[str]] = []

    def generate_embeddings_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [[float(len(t)), 1.0, 0.5] if t.strip() else [] for t in texts]


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    store = MemoryStorage()
    yield store
    store.close()


@pytest.fixture
def duckdb_store(tmp_path):
    """File-based DuckDB store in tmp_path with schema initialized, closed after test."""
    store = DuckDBStorage(tmp_path / "brain.duckdb")
    yield store
    store.close()


@pytest.fixture(params=["memory", "duckdb"])
def store(request, tmp_path):
    """Each storage backend in turn, for contract tests."""
    if request.param == "memory":
        s = MemoryStorage()
    else:
        s = DuckDBStorage(tmp_path / "contract.duckdb")
    yield s
    s.close()


@pytest.fixture
def fake_backend() -> FakeEmbeddingBackend:
    return FakeEmbeddingBackend()
