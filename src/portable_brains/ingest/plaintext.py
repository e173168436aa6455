"""Plain text extractor — lossy UTF-8 decode."""

from __future__ import annotations

from portable_brains.ingest.base import BaseExtractor
from portable_brains.ingest.formats import DocumentFormat


class PlainTextExtractor(BaseExtractor):
    """Decode the payload as UTF-8, replacing invalid byte sequences."""

    format = DocumentFormat.TEXT

    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        return data.decode("utf-8", errors="replace")
