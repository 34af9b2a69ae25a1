"""Tests for bookscan.text.cleanup."""

import logging
import re

import pytest

from bookscan.text.cleanup import (
    apply_text_removal_patterns,
    compile_removal_pattern,
    compile_removal_patterns,
    contains_marker,
    normalize_text,
    remove_ocr_garbage,
)


class TestRemoveOcrGarbage:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("ERSTER  ~  VORTRAG", "ERSTER VORTRAG"),
            ("II ~ DIE ENTSTEHUNG", "II DIE ENTSTEHUNG"),
            (". Der Anfang", "Der Anfang"),
            ("Das Ende ,", "Das Ende"),
            ("links" + " " * 8 + "rechts", "links rechts"),
            ("Größe und Maß", "Größe und Maß"),
            ("Seite 3 hier", "Seite 3 hier"),
        ],
    )
    def test_cleanup(self, raw, expected):
        assert remove_ocr_garbage(raw) == expected

    def test_empty(self):
        assert remove_ocr_garbage("") == ""

    def test_idempotent(self):
        once = remove_ocr_garbage("II  ~  |  DIE ENTSTEHUNG  ;")
        assert remove_ocr_garbage(once) == once


def test_normalize_text():
    assert normalize_text("Gro\u0308ße  und\n  mehr ") == "Größe und mehr"


class TestCompileRemovalPattern:
    def test_slashed_with_flags(self):
        pat = compile_removal_pattern("/^seite \\d+$/i")
        assert pat.flags & re.IGNORECASE
        assert pat.search("SEITE 12")

    def test_plain_regex(self):
        assert compile_removal_pattern("\\[Bild\\]").search("vor [Bild] nach")

    def test_global_flag_accepted(self):
        assert compile_removal_pattern("/x/g") is not None

    def test_unknown_flag_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bookscan.text.cleanup"):
            pat = compile_removal_pattern("/x/q")
        assert pat is not None
        assert "unknown regex flag" in caplog.text

    def test_malformed_dropped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bookscan.text.cleanup"):
            assert compile_removal_pattern("/([a-z/") is None
        assert "malformed" in caplog.text

    def test_compile_many_skips_bad(self):
        assert len(compile_removal_patterns(["a", "(", "b"])) == 2


class TestApplyTextRemovalPatterns:
    @pytest.fixture
    def patterns(self):
        return compile_removal_patterns(["/^\\d+$/", "/^Seite \\d+$/i"])

    def test_page_number_removed(self, patterns):
        assert apply_text_removal_patterns("42", patterns) == ""
        assert apply_text_removal_patterns("SEITE 12", patterns) == ""

    def test_body_text_untouched(self, patterns):
        assert apply_text_removal_patterns("Im Jahre 1823", patterns) == "Im Jahre 1823"

    def test_result_is_trimmed(self):
        pats = compile_removal_patterns(["\\[Bild\\]"])
        assert apply_text_removal_patterns("[Bild] Text", pats) == "Text"

    def test_spliced_matches_removed_until_stable(self):
        pats = compile_removal_patterns(["ab"])
        assert apply_text_removal_patterns("aabb", pats) == ""

    def test_idempotent(self):
        pats = compile_removal_patterns(["ab", "\\s-\\s"])
        once = apply_text_removal_patterns("xaabby - z ab", pats)
        assert apply_text_removal_patterns(once, pats) == once

    def test_no_patterns(self):
        assert apply_text_removal_patterns("  Text  ", []) == "Text"


class TestContainsMarker:
    def test_normalized_match(self):
        assert contains_marker("Inhalt  des\nBuches", "des Buches")

    def test_no_match(self):
        assert not contains_marker("Vorwort", "NACHWORT")

    @pytest.mark.parametrize("marker", [None, ""])
    def test_empty_marker(self, marker):
        assert not contains_marker("irgendein Text", marker)
