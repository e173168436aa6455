"""CLI test isolation: no real global config, cwd in tmp_path, fake keys."""

from __future__ import annotations

from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def isolated_cli_env(tmp_path, monkeypatch):
    monkeypatch.setattr("portable_brains.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml")
    monkeypatch.chdir(tmp_path)
    for var in ("PORTABLE_BRAINS_EMBEDDING_MODEL", "PORTABLE_BRAINS_CHAT_MODEL", "PORTABLE_BRAINS_DB"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    with patch("portable_brains.ingest.embedding_writer.time.sleep"):
        yield tmp_path


@pytest.fixture
def docs(tmp_path):
    """A small input directory: two supported files and one ignored file."""
    root = tmp_path / "docs"
    root.mkdir()
    (root / "keeper.txt").write_text(
        "The lighthouse keeper climbed the stairs every evening. "
        "He lit the lamp before the sun went down.",
        encoding="utf-8",
    )
    (root / "reef.html").write_text(
        "<html><body><p>Ships passing the reef relied on that light.</p></body></html>",
        encoding="utf-8",
    )
    (root / "ignored.md").write_text("# ignored", encoding="utf-8")
    return root


@pytest.fixture
def mock_backend(fake_backend):
    """Patch the ingest command's backend factory to hand out the fake backend."""

    def _create(model):
        fake_backend.model = model
        return fake_backend

    with patch("portable_brains.cli.ingest.create_embedding_backend", side_effect=_create) as factory:
        yield factory
