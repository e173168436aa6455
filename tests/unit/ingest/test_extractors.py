"""Tests for the text, HTML, DOCX, PPTX and XLSX extractors and the registry."""

from __future__ import annotations

import tempfile
import zipfile
from datetime import date
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pytest
from openpyxl import Workbook

from portable_brains.errors import EmptyResult, ExtractionFailed, SizeLimitExceeded
from portable_brains.ingest.base import ExtractionLimits
from portable_brains.ingest.docx import DocxExtractor
from portable_brains.ingest.formats import DocumentFormat
from portable_brains.ingest.html import HtmlExtractor
from portable_brains.ingest.plaintext import PlainTextExtractor
from portable_brains.ingest.pptx import PptxExtractor, slide_entries
from portable_brains.ingest.registry import EXTRACTORS, extract_text, get_extractor
from portable_brains.ingest.xlsx import XlsxExtractor, cell_text, materialized


# ------------------------------------------------------------------
# Fixture builders
# ------------------------------------------------------------------


def _zip(members: dict[str, str]) -> bytes:
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buf.getvalue()


def _docx(body_xml: str) -> bytes:
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body_xml}</w:body></w:document>"
    )
    return _zip(
        {
            "[Content_Types].xml": "<Types/>",
            "word/document.xml": document,
            "word/styles.xml": "<w:styles><w:t>Style text must not leak</w:t></w:styles>",
        }
    )


def _slide(*paragraphs: list[str]) -> str:
    paras = "".join(
        "<a:p>" + "".join(f"<a:r><a:t>{run}</a:t></a:r>" for run in runs) + "</a:p>"
        for runs in paragraphs
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<p:sld xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
        'xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
        f"<p:cSld><p:spTree><p:sp><p:txBody>{paras}</p:txBody></p:sp></p:spTree></p:cSld></p:sld>"
    )


def _xlsx() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Data"
    ws.append(["Name", "Qty", "Added"])
    ws.append(["Widget", 3, date(2024, 1, 31)])
    ws.append([None, None, None])
    ws.append(["Gadget", 2.5, None])
    notes = wb.create_sheet("Notes")
    notes.append(["done", True])
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ------------------------------------------------------------------
# Plain text
# ------------------------------------------------------------------


def test_text_decodes_and_normalizes():
    assert PlainTextExtractor().extract("a.txt", b"Hello   world\n\n\nSecond line") == (
        "Hello world\n\nSecond line"
    )


def test_text_invalid_utf8_replaced():
    assert PlainTextExtractor().extract("a.txt", b"caf\xe9 ok") == "caf� ok"


def test_text_truncated_by_characters():
    limits = ExtractionLimits(max_text_length=5)
    assert PlainTextExtractor(limits).extract("a.txt", "éèêëē and more".encode()) == "éèêëē"


def test_text_whitespace_only_is_empty_result():
    with pytest.raises(EmptyResult):
        PlainTextExtractor().extract("a.txt", b" \n\t \r\n")


def test_text_size_limit():
    with pytest.raises(SizeLimitExceeded):
        PlainTextExtractor(ExtractionLimits(max_file_size=3)).extract("a.txt", b"four")


def test_text_exactly_at_size_limit_is_accepted():
    assert PlainTextExtractor(ExtractionLimits(max_file_size=4)).extract("a.txt", b"four") == "four"


# ------------------------------------------------------------------
# HTML
# ------------------------------------------------------------------


def test_html_body_text_only():
    html = (
        "<html><head><title>Head title</title></head>"
        "<body>\n<h1>Title</h1>\n<p>Para   one.</p>\n</body></html>"
    )
    assert HtmlExtractor().extract("a.html", html.encode()) == "Title\n\nPara one."


def test_html_scripts_and_styles_removed():
    html = (
        "<html><body>\n<p>Visible text.</p>\n"
        "<script>var hidden = 1;</script>\n<style>p { color: red; }</style>\n"
        "<noscript>Enable JS</noscript>\n</body></html>"
    )
    text = HtmlExtractor().extract("a.html", html.encode())
    assert text == "Visible text."


def test_html_without_body_uses_whole_document():
    assert HtmlExtractor().extract("a.htm", b"<div>Just a fragment</div>") == "Just a fragment"


def test_html_empty_body_is_empty_result():
    with pytest.raises(EmptyResult):
        HtmlExtractor().extract("a.html", b"<html><body>  </body></html>")


# ------------------------------------------------------------------
# DOCX
# ------------------------------------------------------------------


def test_docx_text_nodes_in_order():
    body = (
        "<w:p><w:r><w:t>Hello</w:t></w:r><w:r><w:t>world.</w:t></w:r></w:p>"
        "<w:p><w:r><w:t>Second paragraph.</w:t></w:r></w:p>"
    )
    assert DocxExtractor().extract("a.docx", _docx(body)) == "Hello world. Second paragraph."


def test_docx_reads_only_document_part():
    text = DocxExtractor().extract("a.docx", _docx("<w:p><w:r><w:t>Body.</w:t></w:r></w:p>"))
    assert "Style text" not in text


def test_docx_missing_document_part():
    with pytest.raises(ExtractionFailed, match="word/document.xml"):
        DocxExtractor().extract("a.docx", _zip({"other.xml": "<x/>"}))


def test_docx_not_a_zip():
    with pytest.raises(ExtractionFailed) as exc_info:
        DocxExtractor().extract("a.docx", b"definitely not a zip archive")
    assert exc_info.value.fmt == "docx"


def test_docx_empty_document():
    with pytest.raises(EmptyResult):
        DocxExtractor().extract("a.docx", _docx(""))


# ------------------------------------------------------------------
# PPTX
# ------------------------------------------------------------------


def test_slide_entries_numeric_order():
    names = [
        "ppt/slides/slide10.xml",
        "ppt/slides/slide2.xml",
        "ppt/slides/_rels/slide1.xml.rels",
        "ppt/notesSlides/notesSlide1.xml",
        "ppt/slides/slide1.xml",
    ]
    assert slide_entries(names) == [
        "ppt/slides/slide1.xml",
        "ppt/slides/slide2.xml",
        "ppt/slides/slide10.xml",
    ]


def test_pptx_runs_joined_per_paragraph_slides_in_order():
    data = _zip(
        {
            "ppt/slides/slide2.xml": _slide(["Second ", "slide"]),
            "ppt/slides/slide1.xml": _slide(["Title"], ["Bullet ", "one"]),
            "ppt/notesSlides/notesSlide1.xml": _slide(["Speaker notes"]),
        }
    )
    assert PptxExtractor().extract("deck.pptx", data) == "Title\n\nBullet one\n\nSecond slide"


def test_pptx_ignores_text_outside_runs():
    xml = _slide(["Visible"]).replace("<p:txBody>", "<p:txBody><p:ph>placeholder</p:ph>")
    assert PptxExtractor().extract("deck.pptx", _zip({"ppt/slides/slide1.xml": xml})) == "Visible"


def test_pptx_without_slides_is_empty_result():
    with pytest.raises(EmptyResult):
        PptxExtractor().extract("deck.pptx", _zip({"ppt/presentation.xml": "<p/>"}))


# ------------------------------------------------------------------
# XLSX
# ------------------------------------------------------------------


def test_xlsx_rows_and_sheet_markers():
    text = XlsxExtractor().extract("book.xlsx", _xlsx())
    assert text.split("\n\n") == [
        "Name | Qty | Added",
        "Widget | 3 | 2024-01-31T00:00:00",
        "Gadget | 2.5",
        "--- end of sheet: Data ---",
        "done | TRUE",
        "--- end of sheet: Notes ---",
    ]


@pytest.mark.parametrize(
    ("value", "data_type", "expected"),
    [
        (None, None, ""),
        ("#DIV/0!", "e", ""),
        (True, "b", "TRUE"),
        (False, "b", "FALSE"),
        (4.0, "n", "4"),
        (4.25, "n", "4.25"),
        (7, "n", "7"),
        ("  padded  ", "s", "padded"),
        (date(2020, 2, 29), "d", "2020-02-29"),
    ],
)
def test_cell_text(value, data_type, expected):
    assert cell_text(value, data_type) == expected


def _spy_mkstemp(created: list[str]):
    real = tempfile.mkstemp

    def spy(*args, **kwargs):
        fd, name = real(*args, **kwargs)
        created.append(name)
        return fd, name

    return spy


def test_xlsx_temp_file_removed_after_success():
    created: list[str] = []
    with patch("portable_brains.ingest.xlsx.tempfile.mkstemp", side_effect=_spy_mkstemp(created)):
        XlsxExtractor().extract("book.xlsx", _xlsx())
    assert len(created) == 1
    assert not Path(created[0]).exists()


def test_xlsx_temp_file_removed_after_failure():
    created: list[str] = []
    with patch("portable_brains.ingest.xlsx.tempfile.mkstemp", side_effect=_spy_mkstemp(created)):
        with pytest.raises(ExtractionFailed):
            XlsxExtractor().extract("book.xlsx", b"not a workbook")
    assert len(created) == 1
    assert not Path(created[0]).exists()


def test_materialized_cleans_up_on_exception():
    with pytest.raises(RuntimeError):
        with materialized(b"payload") as path:
            assert path.read_bytes() == b"payload"
            raise RuntimeError("boom")
    assert not path.exists()


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


def test_registry_covers_every_format():
    assert set(EXTRACTORS) == set(DocumentFormat)
    for fmt in DocumentFormat:
        extractor = get_extractor(fmt)
        assert extractor.format is fmt


def test_registry_passes_limits():
    limits = ExtractionLimits(max_file_size=10, max_text_length=3)
    assert get_extractor(DocumentFormat.TEXT, limits).limits is limits
    assert extract_text(DocumentFormat.TEXT, "a.txt", b"abcdef", limits) == "abc"
