"""Sentence-aware chunker with whole-sentence overlap."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from portable_brains.db.models import Fragment

logger = logging.getLogger(__name__)

_SENTENCE_END = ".!?"
_MIN_SENTENCE_CHARS = 5  # sentences must be longer than this
_MIN_FRAGMENT_CHARS = 10  # fragments must be longer than this


@dataclass
class PackedFragment:
    """One fragment as packed: the overlap prefix and the new sentences it adds."""

    overlap: list[str] = field(default_factory=list)
    sentences: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.overlap + self.sentences).strip()


class SentenceChunker:
    """Split normalized text into sentences and pack them into bounded fragments.

    Packing is greedy: sentences are appended (space-separated) until the next
    one would push the fragment past ``chunk_size`` characters. The next
    fragment then opens with an overlap prefix, the longest run of trailing
    whole sentences already consumed whose combined length fits in
    ``overlap`` characters. Sentences are never split, so a sentence longer
    than ``chunk_size`` still lands intact in exactly one fragment.

    Default: 800 characters / 100 characters overlap.
    """

    def __init__(self, chunk_size: int = 800, overlap: int = 100) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, text: str) -> list[str]:
        """Return ordered fragment strings for *text*; ``[]`` for empty input."""
        if not text.strip():
            return []
        sentences = self.split_sentences(text)
        logger.debug("Found %d sentences in %d chars", len(sentences), len(text))
        fragments = [p.text for p in self.pack(sentences)]
        logger.debug("Created %d fragments", len(fragments))
        return fragments

    # ------------------------------------------------------------------
    # Sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split *text* into sentences.

        A ``.``, ``!`` or ``?`` ends a sentence when the next character on the
        line is whitespace or uppercase, or the line ends there. Content left
        over at the end of a line continues into the next line. Candidates of
        five characters or fewer are dropped.
        """
        sentences: list[str] = []
        buf: list[str] = []

        def _emit() -> None:
            sentence = "".join(buf).strip()
            if len(sentence) > _MIN_SENTENCE_CHARS:
                sentences.append(sentence)
            buf.clear()

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue
            last = len(line) - 1
            for i, ch in enumerate(line):
                buf.append(ch)
                if ch not in _SENTENCE_END:
                    continue
                if i == last:
                    _emit()
                else:
                    nxt = line[i + 1]
                    if nxt.isspace() or nxt.isupper():
                        _emit()
            if "".join(buf).strip():
                buf.append(" ")

        _emit()
        return sentences

    # ------------------------------------------------------------------
    # Packing
    # ------------------------------------------------------------------

    def pack(self, sentences: list[str]) -> list[PackedFragment]:
        """Greedily pack *sentences* into fragments, recording each overlap prefix."""
        packed: list[PackedFragment] = []
        current = PackedFragment()
        length = 0

        for i, sentence in enumerate(sentences):
            if length and length + len(sentence) + 1 > self.chunk_size:
                if len(current.text) > _MIN_FRAGMENT_CHARS:
                    packed.append(current)
                overlap = self._overlap_sentences(sentences, i) if packed else []
                current = PackedFragment(overlap=overlap)
                length = len(" ".join(overlap))

            length = length + 1 + len(sentence) if length else len(sentence)
            current.sentences.append(sentence)

        if len(current.text) > _MIN_FRAGMENT_CHARS:
            packed.append(current)
        return packed

    def _overlap_sentences(self, sentences: list[str], index: int) -> list[str]:
        """Trailing whole sentences before *index* that fit in ``self.overlap`` chars."""
        if self.overlap == 0:
            return []
        picked: list[str] = []
        used = 0
        for sentence in reversed(sentences[:index]):
            if used + len(sentence) + 1 > self.overlap:
                break
            picked.insert(0, sentence)
            used += len(sentence) + 1
        return picked


def make_fragments(document_id: str, texts: list[str]) -> list[Fragment]:
    """Convert fragment strings into sequentially ordered ``Fragment`` objects."""
    return [
        Fragment(document_id=document_id, fragment_order=i, content=t)
        for i, t in enumerate(texts)
    ]
