"""PPTX extractor — run text of every slide part via zipfile + bs4."""

from __future__ import annotations

import re
import warnings
import zipfile
from io import BytesIO

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from portable_brains.ingest.base import BaseExtractor
from portable_brains.ingest.formats import DocumentFormat

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

_SLIDE_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")


def slide_entries(names: list[str]) -> list[str]:
    """Return slide part names sorted by slide number (slide2 before slide10)."""
    numbered = []
    for name in names:
        m = _SLIDE_RE.match(name)
        if m:
            numbered.append((int(m.group(1)), name))
    return [name for _, name in sorted(numbered)]


def _slide_text(xml: str) -> str:
    """Text of ``<a:t>`` runs only; runs of one paragraph are concatenated."""
    soup = BeautifulSoup(xml, "html.parser")
    paragraphs: list[str] = []
    for para in soup.find_all("a:p"):
        text = "".join(run.get_text() for run in para.find_all("a:t"))
        if text.strip():
            paragraphs.append(text)
    return "\n".join(paragraphs)


class PptxExtractor(BaseExtractor):
    """Extract slide text from a PPTX archive.

    Only ``ppt/slides/slideN.xml`` members are read, in numeric slide order.
    Text outside ``<a:t>`` run elements (notes, layout placeholders, alt
    text) is ignored. Slides are joined with a newline.
    """

    format = DocumentFormat.PPTX

    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        slides: list[str] = []
        with zipfile.ZipFile(BytesIO(data)) as zf:
            for name in slide_entries(zf.namelist()):
                xml = zf.read(name).decode("utf-8", errors="replace")
                slides.append(_slide_text(xml))
        return "\n".join(slides)
