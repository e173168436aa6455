"""Tests for the format classifier."""

from __future__ import annotations

from pathlib import Path

import pytest

from portable_brains.ingest.formats import SUPPORTED_EXTENSIONS, DocumentFormat


@pytest.mark.parametrize(
    ("ext", "expected"),
    [
        ("pdf", DocumentFormat.PDF),
        ("txt", DocumentFormat.TEXT),
        ("text", DocumentFormat.TEXT),
        ("html", DocumentFormat.HTML),
        ("htm", DocumentFormat.HTML),
        ("docx", DocumentFormat.DOCX),
        ("pptx", DocumentFormat.PPTX),
        ("xlsx", DocumentFormat.XLSX),
    ],
)
def test_from_extension_known(ext, expected):
    assert DocumentFormat.from_extension(ext) is expected


@pytest.mark.parametrize("ext", ["PDF", ".pdf", ".Pdf"])
def test_from_extension_case_and_dot_insensitive(ext):
    assert DocumentFormat.from_extension(ext) is DocumentFormat.PDF


@pytest.mark.parametrize("ext", ["doc", "ppt", "xls", "md", "csv", "", "pdfx"])
def test_from_extension_unsupported(ext):
    assert DocumentFormat.from_extension(ext) is None


def test_from_path_uses_suffix():
    assert DocumentFormat.from_path(Path("/a/b/Report.DOCX")) is DocumentFormat.DOCX
    assert DocumentFormat.from_path("notes.txt") is DocumentFormat.TEXT


def test_from_path_without_suffix():
    assert DocumentFormat.from_path("Makefile") is None


def test_supported_extensions_union():
    assert SUPPORTED_EXTENSIONS == {"pdf", "txt", "text", "html", "htm", "docx", "pptx", "xlsx"}


def test_every_format_has_extensions():
    for fmt in DocumentFormat:
        assert fmt.extensions
        assert all(DocumentFormat.from_extension(e) is fmt for e in fmt.extensions)
