"""Context assembly and answer generation.

Retrieved fragment texts are joined into one context block inside a system
prompt; the question goes in as the user message. Each question is answered
independently: no conversation history is sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from portable_brains.config import ChatCfg
from portable_brains.db.base import Storage
from portable_brains.db.models import ScoredFragment
from portable_brains.ingest.embedders import EmbeddingBackend
from portable_brains.rag.llm_client import complete
from portable_brains.rag.retriever import retrieve

NO_CONTEXT = "No relevant documents found."

_SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to a knowledge base. "
    "Use the following context to answer the user's question. If the context "
    "doesn't contain relevant information, say so politely.\n\nContext:\n{context}"
)


@dataclass
class Answer:
    """A generated answer plus the fragments it was grounded on."""

    text: str
    sources: list[ScoredFragment] = field(default_factory=list)


def build_context(fragments: list[ScoredFragment]) -> str:
    """Join fragment contents with blank lines, or a placeholder when empty."""
    if not fragments:
        return NO_CONTEXT
    return "\n\n".join(f.content for f in fragments)


def build_messages(question: str, fragments: list[ScoredFragment]) -> list[dict]:
    """Return the OpenAI-style message list for *question*."""
    return [
        {"role": "system", "content": _SYSTEM_PROMPT.format(context=build_context(fragments))},
        {"role": "user", "content": question},
    ]


def answer_question(
    question: str,
    storage: Storage,
    backend: EmbeddingBackend,
    chat: ChatCfg,
) -> Answer:
    """Retrieve context for *question* and ask the chat model.

    Raises:
        ValueError: If ``chat.results`` is outside 1..20.
        QueryEmbeddingFailed: If the question could not be embedded.
        litellm.exceptions.APIError: On persistent chat API failure.
    """
    fragments = retrieve(question, storage, backend, limit=chat.results)
    text = complete(
        chat.model,
        build_messages(question, fragments),
        max_tokens=chat.max_tokens,
        temperature=chat.temperature,
        api_base=chat.api_base,
    )
    return Answer(text=text, sources=fragments)
