"""Tests for the portable-brains ask and chat CLI commands."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from portable_brains.cli.main import app
from portable_brains.db.duckdb_store import DuckDBStorage

runner = CliRunner()

_MODEL = "openai/text-embedding-3-small"


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def brain(tmp_path, fake_backend):
    """brain.duckdb in cwd with two embedded fragments."""
    with DuckDBStorage(tmp_path / "brain.duckdb") as store:
        store.verify_or_set_model(_MODEL)
        doc_id = store.store_document(tmp_path / "keeper.txt", b"raw")
        for order, text in enumerate(["The keeper lit the lamp at dusk.", "Ships avoided the reef."]):
            fid = store.store_text_fragment(doc_id, order, text)
            store.update_fragment_embedding(fid, fake_backend.generate_embeddings_batch([text])[0])
    fake_backend.calls.clear()
    return tmp_path / "brain.duckdb"


@pytest.fixture
def ask_backend(fake_backend):
    with patch("portable_brains.cli.ask.create_embedding_backend", return_value=fake_backend) as factory:
        yield factory


@pytest.fixture
def mock_complete():
    with patch("portable_brains.rag.assembler.complete", return_value="At dusk.") as mock:
        yield mock


# ------------------------------------------------------------------
# ask
# ------------------------------------------------------------------


def test_ask_prints_answer(brain, ask_backend, mock_complete, fake_backend):
    result = runner.invoke(app, ["ask", "When was the lamp lit?"])

    assert result.exit_code == 0, result.output
    assert "At dusk." in result.output
    assert fake_backend.calls == [["When was the lamp lit?"]]
    system = mock_complete.call_args.args[1][0]["content"]
    assert "The keeper lit the lamp at dusk." in system
    assert mock_complete.call_args.args[0] == "openai/gpt-4o-mini"


def test_ask_results_and_model_flags(brain, ask_backend, mock_complete):
    result = runner.invoke(
        app,
        ["ask", "q?", "-n", "1", "-m", "openai/gpt-4o", "--api-base", "http://localhost:9/v1"],
    )
    assert result.exit_code == 0, result.output
    assert mock_complete.call_args.args[0] == "openai/gpt-4o"
    assert mock_complete.call_args.kwargs["api_base"] == "http://localhost:9/v1"
    system = mock_complete.call_args.args[1][0]["content"]
    assert system.count("\n\n") == 1  # one fragment, no joins


def test_ask_with_sources(brain, ask_backend, mock_complete):
    result = runner.invoke(app, ["ask", "lamp?", "--sources"])
    assert result.exit_code == 0, result.output
    assert "Ships avoided the reef." in result.output


@pytest.mark.parametrize("value", ["0", "21"])
def test_ask_results_out_of_range(brain, ask_backend, value):
    result = runner.invoke(app, ["ask", "q?", "--results", value])
    assert result.exit_code == 1
    assert "between 1 and 20" in result.output


def test_ask_no_database(ask_backend):
    result = runner.invoke(app, ["ask", "q?"])
    assert result.exit_code == 1
    assert "No database found" in result.output


def test_ask_missing_chat_key(brain, ask_backend, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY")
    result = runner.invoke(app, ["ask", "q?"])
    assert result.exit_code == 1
    assert "OPENAI_API_KEY" in result.output


def test_ask_embedding_model_mismatch(brain, ask_backend, monkeypatch):
    monkeypatch.setenv("COHERE_API_KEY", "test-key")
    result = runner.invoke(app, ["ask", "q?", "--embedding-model", "cohere/embed-english-v3.0"])
    assert result.exit_code == 1
    assert "Embedding model mismatch" in result.output
    ask_backend.assert_not_called()


def test_ask_llm_failure(brain, ask_backend):
    with patch("portable_brains.rag.assembler.complete", side_effect=RuntimeError("upstream 503")):
        result = runner.invoke(app, ["ask", "q?"])
    assert result.exit_code == 1
    assert "Language model request failed" in result.output


# ------------------------------------------------------------------
# chat
# ------------------------------------------------------------------


def test_chat_help_question_quit(brain, ask_backend, mock_complete):
    result = runner.invoke(app, ["chat"], input="help\n\nWhen was the lamp lit?\nquit\n")
    assert result.exit_code == 0, result.output
    assert "Available commands" in result.output
    assert "At dusk." in result.output
    assert "Goodbye!" in result.output
    mock_complete.assert_called_once()


def test_chat_exit_word_is_case_insensitive(brain, ask_backend, mock_complete):
    result = runner.invoke(app, ["chat"], input="EXIT\n")
    assert result.exit_code == 0
    assert "Goodbye!" in result.output
    mock_complete.assert_not_called()


def test_chat_ends_on_eof(brain, ask_backend, mock_complete):
    result = runner.invoke(app, ["chat"], input="")
    assert result.exit_code == 0
    assert "Goodbye!" in result.output


def test_chat_continues_after_failure(brain, ask_backend):
    with patch(
        "portable_brains.rag.assembler.complete",
        side_effect=[RuntimeError("timeout"), "Second try worked."],
    ):
        result = runner.invoke(app, ["chat"], input="first?\nsecond?\nquit\n")
    assert result.exit_code == 0
    assert "Language model request failed" in result.output
    assert "Second try worked." in result.output
