"""Closed vocabulary of header-pattern placeholders.

A header pattern such as ``"{roman-number} {title-in-capital-letters}"``
mixes literal text with placeholders.  Each placeholder maps to exactly
one regex fragment below; fragments contain no capturing groups so the
compiler can wrap every occurrence in a single group of its own.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Iterable, Optional

from ..config import DEFAULT_PARAGRAPH_END_MARKERS


class Placeholder(str, Enum):
    roman_number = "roman-number"
    title_in_capital_letters = "title-in-capital-letters"
    decimal_number = "decimal-number"
    title = "title"
    title_with_decimal_number = "title-with-decimal-number"
    german_ordinal = "german-ordinal"
    place = "place"
    long_date = "long-date"
    no_paragraph_end_marker = "no-paragraph-end-marker"


# ── Ordinal tables ─────────────────────────────────────────────────────


def _to_roman(n: int) -> str:
    pairs = (
        (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
        (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
    )
    out = []
    for value, numeral in pairs:
        while n >= value:
            out.append(numeral)
            n -= value
    return "".join(out)


ROMAN_NUMERALS: Dict[str, int] = {_to_roman(n): n for n in range(1, 101)}

_ORDINAL_UNITS = ["ein", "zwei", "drei", "vier", "fünf", "sechs", "sieben", "acht", "neun"]
_ORDINAL_TENS = {20: "zwanzigster", 30: "dreißigster", 40: "vierzigster"}


def _german_ordinals() -> Dict[str, int]:
    table = {
        "erster": 1, "zweiter": 2, "dritter": 3, "vierter": 4, "fünfter": 5,
        "sechster": 6, "siebter": 7, "siebenter": 7, "achter": 8, "neunter": 9,
        "zehnter": 10, "elfter": 11, "zwölfter": 12, "dreizehnter": 13,
        "vierzehnter": 14, "fünfzehnter": 15, "sechzehnter": 16,
        "siebzehnter": 17, "achtzehnter": 18, "neunzehnter": 19,
        "fünfzigster": 50,
    }
    for tens, word in _ORDINAL_TENS.items():
        table[word] = tens
        for i, unit in enumerate(_ORDINAL_UNITS, start=1):
            table[f"{unit}und{word}"] = tens + i
    return table


GERMAN_ORDINALS: Dict[str, int] = _german_ordinals()

GERMAN_MONTHS = (
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
)


def _alternation(words: Iterable[str]) -> str:
    # Longest first so that e.g. "XII" wins over "XI".
    return "|".join(sorted(words, key=len, reverse=True))


# ── Fragments ──────────────────────────────────────────────────────────

_UPPER = "A-ZÄÖÜ"

_STATIC_FRAGMENTS: Dict[Placeholder, str] = {
    Placeholder.roman_number: r"\b(?:" + _alternation(ROMAN_NUMERALS) + r")\b",
    Placeholder.title_in_capital_letters: rf"[{_UPPER}][{_UPPER} «»„“\"'\-]{{2,}}",
    Placeholder.decimal_number: r"\d+",
    Placeholder.title: rf"[{_UPPER}«»\-][^.]{{2,}}?",
    Placeholder.title_with_decimal_number: (
        rf"\d+\.\s+(?!(?:" + "|".join(GERMAN_MONTHS) + rf")\b)[{_UPPER}«»\-][^.]{{2,}}?"
    ),
    Placeholder.german_ordinal: r"(?i:" + _alternation(GERMAN_ORDINALS) + r")\b",
    Placeholder.place: rf"[{_UPPER}][a-zäöüß]+(?:\s+[{_UPPER}][a-zäöüß]+)*",
    Placeholder.long_date: r"\d{1,2}\.\s+(?:" + "|".join(GERMAN_MONTHS) + r")\s+\d{4}",
}


def _no_end_marker_fragment(end_markers: Iterable[str]) -> str:
    # Lazy run that never ends in a paragraph end marker and carries no
    # digits or lowercase letters.
    markers = "|".join(re.escape(m) for m in sorted(end_markers, key=len, reverse=True))
    return rf"(?:(?!(?:{markers})$)(?![0-9a-zäöüß])[\s\S])+?"


def placeholder_fragment(
    placeholder: Placeholder, end_markers: Optional[Iterable[str]] = None
) -> str:
    """Return the regex fragment for *placeholder*.

    *end_markers* is only consulted for ``no-paragraph-end-marker``.
    """
    if placeholder is Placeholder.no_paragraph_end_marker:
        return _no_end_marker_fragment(end_markers or DEFAULT_PARAGRAPH_END_MARKERS)
    return _STATIC_FRAGMENTS[placeholder]


def parse_placeholder(name: str) -> Optional[Placeholder]:
    """Return the Placeholder named *name*, or None if it is not in the vocabulary."""
    try:
        return Placeholder(name)
    except ValueError:
        return None
