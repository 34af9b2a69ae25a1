"""Tests for bookscan.text.corrections."""

import logging

import pytest

from bookscan.text.corrections import (
    apply_corrections,
    compile_misreadings,
    fix_german_umlaut_errors,
)


class TestUmlautCorrections:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Er sprach iiber die Sache", "Er sprach über die Sache"),
            ("das ist fiir dich", "das ist für dich"),
            ("wir miissen gehen", "wir müssen gehen"),
            ("Sie k0nnen es", "Sie können es"),
            ("eine groBe Idee", "eine große Idee"),
            ("ich weiB es", "ich weiß es"),
            ("eine Zdee", "eine Idee"),
            ("es dauert langer als gedacht", "es dauert länger als gedacht"),
        ],
    )
    def test_known_misreadings(self, raw, expected):
        assert fix_german_umlaut_errors(raw)[0] == expected

    @pytest.mark.parametrize(
        "text",
        [
            "eine grobe Skizze",
            "die andern Leute",
            "ein langer Weg",
            "Goethe und Schiller",
        ],
    )
    def test_valid_words_untouched(self, text):
        assert fix_german_umlaut_errors(text) == (text, 0)

    def test_count_and_log(self, caplog):
        with caplog.at_level(logging.INFO, logger="bookscan.text.corrections"):
            text, n = fix_german_umlaut_errors("iiber fiir daB")
        assert text == "über für daß"
        assert n == 3
        assert "Applied 3 German umlaut corrections" in caplog.text


class TestMisreadings:
    def test_apply_in_order(self):
        corr = compile_misreadings([("Goetbe", "Goethe"), ("Goethe", "GOETHE")])
        text, n = apply_corrections("Goetbe schrieb", corr)
        assert text == "GOETHE schrieb"
        assert n == 2

    def test_regex_patterns(self):
        corr = compile_misreadings([(r"\bScb(\w+)", r"Sch\1")])
        assert apply_corrections("Scbiller und Scbelling", corr) == ("Schiller und Schelling", 2)

    def test_malformed_dropped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bookscan.text.corrections"):
            corr = compile_misreadings([("(", "x"), ("a", "b")])
        assert len(corr) == 1
        assert "malformed" in caplog.text

    def test_empty(self):
        assert apply_corrections("Text", []) == ("Text", 0)
