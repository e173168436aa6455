"""Document format classification by file extension."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class DocumentFormat(str, Enum):
    """Closed set of formats the extractors understand."""

    PDF = "pdf"
    TEXT = "text"
    HTML = "html"
    DOCX = "docx"
    PPTX = "pptx"
    XLSX = "xlsx"

    @property
    def extensions(self) -> frozenset[str]:
        """Canonical lowercase extensions (no dot) recognised for this format."""
        return _EXTENSIONS[self]

    @classmethod
    def from_extension(cls, ext: str) -> DocumentFormat | None:
        """Return the format for *ext* (``"pdf"`` or ``".pdf"``), or None if unsupported."""
        key = ext.lower().lstrip(".")
        for fmt in cls:
            if key in fmt.extensions:
                return fmt
        return None

    @classmethod
    def from_path(cls, path: Path | str) -> DocumentFormat | None:
        """Classify *path* by its suffix (case-insensitive)."""
        suffix = Path(path).suffix
        if not suffix:
            return None
        return cls.from_extension(suffix)


_EXTENSIONS: dict[DocumentFormat, frozenset[str]] = {
    DocumentFormat.PDF: frozenset({"pdf"}),
    DocumentFormat.TEXT: frozenset({"txt", "text"}),
    DocumentFormat.HTML: frozenset({"html", "htm"}),
    DocumentFormat.DOCX: frozenset({"docx"}),
    DocumentFormat.PPTX: frozenset({"pptx"}),
    DocumentFormat.XLSX: frozenset({"xlsx"}),
}

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset().union(*_EXTENSIONS.values())
