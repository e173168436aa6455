"""Extractor dispatch by document format."""

from __future__ import annotations

from portable_brains.ingest.base import BaseExtractor, ExtractionLimits
from portable_brains.ingest.docx import DocxExtractor
from portable_brains.ingest.formats import DocumentFormat
from portable_brains.ingest.html import HtmlExtractor
from portable_brains.ingest.pdf import PdfExtractor
from portable_brains.ingest.plaintext import PlainTextExtractor
from portable_brains.ingest.pptx import PptxExtractor
from portable_brains.ingest.xlsx import XlsxExtractor

EXTRACTORS: dict[DocumentFormat, type[BaseExtractor]] = {
    DocumentFormat.PDF: PdfExtractor,
    DocumentFormat.TEXT: PlainTextExtractor,
    DocumentFormat.HTML: HtmlExtractor,
    DocumentFormat.DOCX: DocxExtractor,
    DocumentFormat.PPTX: PptxExtractor,
    DocumentFormat.XLSX: XlsxExtractor,
}


def get_extractor(fmt: DocumentFormat, limits: ExtractionLimits | None = None) -> BaseExtractor:
    """Return an extractor instance for *fmt*."""
    return EXTRACTORS[fmt](limits)


def extract_text(
    fmt: DocumentFormat,
    path_hint: str,
    data: bytes,
    limits: ExtractionLimits | None = None,
) -> str:
    """Extract cleaned text from *data* using the extractor for *fmt*."""
    return get_extractor(fmt, limits).extract(path_hint, data)
