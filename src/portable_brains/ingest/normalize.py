"""Text cleanup shared by every extractor."""

from __future__ import annotations

import re
import unicodedata

# Whitespace runs inside a line. Newlines are paragraph delimiters and are
# handled by the line split below.
_INLINE_WS_RE = re.compile(r"[^\S\n]+")


def _is_stray_control(ch: str) -> bool:
    # Whitespace controls (\t, \x0b, \x1c...) are collapsed, not dropped.
    return unicodedata.category(ch) == "Cc" and not ch.isspace()


def normalize_text(text: str) -> str:
    """Collapse whitespace, drop control characters, canonicalise paragraphs.

    Every non-empty line becomes one paragraph; paragraphs are separated by
    exactly one blank line. ``normalize_text(normalize_text(x)) ==
    normalize_text(x)`` for any ``x``.

    Example:
        >>> normalize_text("This   is  a\\n\\n\\ntest\\ttext")
        'This is a\\n\\ntest text'
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = "".join(ch for ch in text if not _is_stray_control(ch))
    collapsed = _INLINE_WS_RE.sub(" ", cleaned)
    lines = (line.strip() for line in collapsed.split("\n"))
    return "\n\n".join(line for line in lines if line)
