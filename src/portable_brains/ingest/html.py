"""HTML extractor — body text via beautifulsoup4."""

from __future__ import annotations

from bs4 import BeautifulSoup

from portable_brains.ingest.base import BaseExtractor
from portable_brains.ingest.formats import DocumentFormat


class HtmlExtractor(BaseExtractor):
    """Return the text of ``<body>``, or of the whole document when there is none.

    ``<script>``, ``<style>`` and ``<noscript>`` elements are removed first,
    wherever they appear.
    """

    format = DocumentFormat.HTML

    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        html = data.decode("utf-8", errors="replace")
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup.find_all(["script", "style", "noscript"]):
            tag.decompose()
        root = soup.body if soup.body is not None else soup
        return root.get_text()
