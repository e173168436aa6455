"""PDF extractor — page-based extraction via pypdf."""

from __future__ import annotations

import logging
from io import BytesIO

import pypdf

from portable_brains.ingest.base import BaseExtractor
from portable_brains.ingest.formats import DocumentFormat

logger = logging.getLogger(__name__)


class PdfExtractor(BaseExtractor):
    """Extract PDF text page by page with ``pypdf.PdfReader``.

    Strategy:
    - Pages are read in ascending order; the character ceiling is checked
      before each page so a huge document is never fully materialised.
    - A page that would cross ``max_text_length`` contributes only the
      prefix that fits, then extraction stops (no error).
    - A page whose text cannot be extracted is skipped with a warning.
    """

    format = DocumentFormat.PDF

    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        reader = pypdf.PdfReader(BytesIO(data))
        limit = self.limits.max_text_length
        page_count = len(reader.pages)
        logger.debug("Processing PDF %s with %d pages", path_hint, page_count)

        parts: list[str] = []
        length = 0
        for page_num, page in enumerate(reader.pages, start=1):
            if length > limit:
                logger.warning(
                    "Reached maximum text length, stopping %s at page %d/%d",
                    path_hint,
                    page_num - 1,
                    page_count,
                )
                break

            try:
                page_text = page.extract_text() or ""
            except Exception as exc:
                logger.warning("Skipping page %d of %s: %s", page_num, path_hint, exc)
                continue

            if length + len(page_text) <= limit:
                parts.append(page_text)
                parts.append("\n")
                length += len(page_text) + 1
            else:
                remaining = max(0, limit - length)
                logger.warning("Page %d of %s exceeds text limit, truncating document", page_num, path_hint)
                if remaining:
                    parts.append(page_text[:remaining])
                break

            if page_num % 50 == 0:
                logger.debug("Processed %d pages of %s, %d chars so far", page_num, path_hint, length)

        return "".join(parts)
