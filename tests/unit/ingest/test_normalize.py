"""Tests for normalize_text."""

from __future__ import annotations

import pytest

from portable_brains.ingest.normalize import normalize_text


def test_collapses_inline_whitespace_and_blank_lines():
    assert normalize_text("This   is  a\n\n\ntest\ttext") == "This is a\n\ntest text"


def test_each_line_becomes_a_paragraph():
    assert normalize_text("one\ntwo\nthree") == "one\n\ntwo\n\nthree"


def test_trims_lines_and_drops_empty_ones():
    assert normalize_text("  \n  padded line  \n\n   \n") == "padded line"


def test_drops_control_characters():
    assert normalize_text("bell\x07 and\x00 null") == "bell and null"


def test_control_character_between_spaces_leaves_single_space():
    assert normalize_text("a \x01 b") == "a b"


def test_windows_and_old_mac_line_endings():
    assert normalize_text("one\r\ntwo\rthree") == "one\n\ntwo\n\nthree"


def test_empty_and_whitespace_only():
    assert normalize_text("") == ""
    assert normalize_text(" \t\n\r\n ") == ""


def test_unicode_preserved():
    assert normalize_text("Café  naïve — 東京") == "Café naïve — 東京"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "plain",
        "This   is  a\n\n\ntest\ttext",
        "a \x01 b\r\n\r\n\tc\x0b d",
        "  lead\n\n\n\ntrail  ",
        "x  y z",
    ],
)
def test_idempotent(text):
    once = normalize_text(text)
    assert normalize_text(once) == once
