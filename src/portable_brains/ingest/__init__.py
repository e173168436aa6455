"""portable-brains ingest pipeline: classifier, extractors, normalizer, chunker."""

from portable_brains.ingest.base import BaseExtractor, ExtractionLimits
from portable_brains.ingest.chunker import SentenceChunker, make_fragments
from portable_brains.ingest.docx import DocxExtractor
from portable_brains.ingest.formats import SUPPORTED_EXTENSIONS, DocumentFormat
from portable_brains.ingest.html import HtmlExtractor
from portable_brains.ingest.normalize import normalize_text
from portable_brains.ingest.pdf import PdfExtractor
from portable_brains.ingest.plaintext import PlainTextExtractor
from portable_brains.ingest.pptx import PptxExtractor
from portable_brains.ingest.registry import extract_text, get_extractor
from portable_brains.ingest.xlsx import XlsxExtractor

__all__ = [
    "BaseExtractor",
    "DocumentFormat",
    "DocxExtractor",
    "ExtractionLimits",
    "HtmlExtractor",
    "PdfExtractor",
    "PlainTextExtractor",
    "PptxExtractor",
    "SUPPORTED_EXTENSIONS",
    "SentenceChunker",
    "XlsxExtractor",
    "extract_text",
    "get_extractor",
    "make_fragments",
    "normalize_text",
]
