"""Shared test fixtures for bookscan."""

from __future__ import annotations

import pytest

from bookscan.booktypes import parse_book_type
from bookscan.config import StructureConfig
from bookscan.models import (
    Baseline,
    BoundingBox,
    OcrLine,
    OcrPage,
    OcrParagraph,
    OcrSymbol,
    OcrWord,
)

# ── Helpers ────────────────────────────────────────────────────────────

LINE_HEIGHT = 40.0
# Centered lines are placed around this x (default page width 2480 / 2).
PAGE_CENTER = 1240.0


def make_symbol(
    text: str,
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    baseline_y: float | None = None,
) -> OcrSymbol:
    """Create an OcrSymbol; *baseline_y* adds a baseline at that y."""
    baseline = Baseline(x0=x0, y0=baseline_y, x1=x1, y1=baseline_y) if baseline_y is not None else None
    return OcrSymbol(text=text, bbox=BoundingBox(x0, y0, x1, y1), baseline=baseline)


def make_word(text: str, x0: float, y0: float, height: float = LINE_HEIGHT) -> OcrWord:
    """Create a word of full line height with one symbol per character."""
    w = 20.0
    symbols = [
        make_symbol(ch, x0 + i * w, y0, x0 + (i + 1) * w, y0 + height)
        for i, ch in enumerate(text)
    ]
    return OcrWord(
        text=text,
        bbox=BoundingBox(x0, y0, x0 + w * max(1, len(text)), y0 + height),
        symbols=symbols,
    )


def make_line(
    text: str,
    x0: float,
    y0: float = 100.0,
    width: float = 1800.0,
    height: float = LINE_HEIGHT,
    words: list[OcrWord] | None = None,
) -> OcrLine:
    """Create an OcrLine with sane defaults (words are derived from text)."""
    if words is None:
        words = []
        x = x0
        for tok in text.split():
            word = make_word(tok, x, y0, height)
            words.append(word)
            x = word.bbox.x1 + 15.0
    return OcrLine(
        text=text,
        bbox=BoundingBox(x0, y0, x0 + width, y0 + height),
        words=words,
    )


def make_centered_line(text: str, y0: float = 100.0, width: float = 600.0) -> OcrLine:
    """Create a line centered on the default page width."""
    return make_line(text, PAGE_CENTER - width / 2.0, y0=y0, width=width)


def make_footnote_line(
    marker: str, text: str, x0: float, y0: float = 2000.0, width: float = 1700.0
) -> OcrLine:
    """Create a footnote line whose first word is a raised, small marker.

    The marker glyphs are 20px tall in a 40px line and end 15px above
    their baseline.
    """
    baseline_y = y0 + LINE_HEIGHT
    marker_syms = [
        make_symbol(ch, x0 + i * 12, y0, x0 + (i + 1) * 12, y0 + 20, baseline_y=baseline_y)
        for i, ch in enumerate(marker)
    ]
    marker_word = OcrWord(
        text=marker,
        bbox=BoundingBox(x0, y0, x0 + 12 * len(marker), y0 + 20),
        symbols=marker_syms,
    )
    rest = []
    x = x0 + 12 * len(marker) + 15
    for tok in text.split():
        word = make_word(tok, x, y0)
        rest.append(word)
        x = word.bbox.x1 + 15
    return make_line(f"{marker} {text}", x0, y0=y0, width=width, words=[marker_word] + rest)


def make_page(lines: list[OcrLine], index: int = 0, width: float | None = None) -> OcrPage:
    """Wrap lines in a single-paragraph page."""
    return OcrPage(index=index, paragraphs=[OcrParagraph(lines=list(lines))], width=width)


BOOK_TYPE_DEFINITION = {
    "description": "Lecture cycles with roman chapters and numbered sections",
    "headerTypes": {
        "level1": {
            "formats": [
                {"pattern": "{roman-number} {title-in-capital-letters}", "multipleLines": True},
                {"pattern": "{german-ordinal} VORTRAG", "alignment": "center"},
            ]
        },
        "level2": {"formats": [{"pattern": "{decimal-number}. {title}"}]},
    },
    "textRemovalPatterns": ["/^\\d+$/", "/^Seite \\d+$/i"],
    "metrics": {
        "paragraph-start": 40,
        "footnote-text": {"expectedOffset": 30, "tolerance": 10},
        "footnote-start": {"expectedOffset": -30, "tolerance": 12},
        "quote-text": 120,
    },
}


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> StructureConfig:
    """Return a default StructureConfig."""
    return StructureConfig()


@pytest.fixture
def book_config():
    """Compiled book type used across tests."""
    return parse_book_type("lectures", BOOK_TYPE_DEFINITION)
