"""DOCX extractor — text nodes of ``word/document.xml`` via zipfile + bs4."""

from __future__ import annotations

import warnings
import zipfile
from io import BytesIO

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from portable_brains.errors import ExtractionFailed
from portable_brains.ingest.base import BaseExtractor
from portable_brains.ingest.formats import DocumentFormat

# html.parser is used for OOXML parts on purpose (lxml is not a dependency).
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

_DOCUMENT_PART = "word/document.xml"


class DocxExtractor(BaseExtractor):
    """Read exactly one archive member, ``word/document.xml``.

    Every text node is emitted in document order followed by a single
    space; the normalizer collapses the resulting whitespace.
    """

    format = DocumentFormat.DOCX

    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        with zipfile.ZipFile(BytesIO(data)) as zf:
            try:
                xml = zf.read(_DOCUMENT_PART)
            except KeyError as exc:
                raise ExtractionFailed(self.format.value, f"missing {_DOCUMENT_PART}") from exc

        soup = BeautifulSoup(xml.decode("utf-8", errors="replace"), "html.parser")
        return "".join(f"{text} " for text in soup.strings)
