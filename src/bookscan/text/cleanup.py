"""Line-level text cleanup for OCR output.

Covers Unicode/whitespace normalization, removal of stray OCR artifacts,
book-type specific text-removal patterns, and book-boundary marker checks.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Iterable, List, Optional, Sequence

log = logging.getLogger(__name__)

# Letters and digits a legitimate single-character token may consist of.
_VALID = "a-zA-ZäöüÄÖÜß0-9"

_GARBAGE_STEPS = [
    # Long whitespace runs (> 5) and the stray glyphs flanking them.
    (re.compile(rf"([^{_VALID}])\s{{6,}}([^{_VALID}])"), r"\1 \2"),
    (re.compile(rf"([^{_VALID}])\s{{6,}}"), r"\1 "),
    (re.compile(rf"\s{{6,}}([^{_VALID}])"), r" \1"),
    (re.compile(r"\s{6,}"), " "),
    # A lone non-letter between two spaces.
    (re.compile(rf"\s[^{_VALID}](?=\s)"), ""),
    # A lone non-letter at the very start or end.
    (re.compile(rf"^[^{_VALID}\s]\s"), ""),
    (re.compile(rf"\s[^{_VALID}\s]$"), ""),
    (re.compile(r"\s{2,}"), " "),
]


def normalize_text(text: str) -> str:
    """NFC-normalize, unify line endings and collapse whitespace."""
    text = unicodedata.normalize("NFC", text)
    return re.sub(r"\s+", " ", text).strip()


def remove_ocr_garbage(text: str) -> str:
    """Strip OCR noise: long whitespace runs and isolated non-letter glyphs.

    >>> remove_ocr_garbage("ERSTER  ~  VORTRAG")
    'ERSTER VORTRAG'
    """
    if not text:
        return text
    cleaned = text
    for pattern, repl in _GARBAGE_STEPS:
        cleaned = pattern.sub(repl, cleaned)
    return cleaned.strip()


# ── Text-removal patterns ──────────────────────────────────────────────

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
    "g": 0,  # Python's sub() is always global
}

_SLASHED = re.compile(r"^/(?P<body>.*)/(?P<flags>[a-z]*)$", re.DOTALL)


def compile_removal_pattern(raw: str) -> Optional["re.Pattern[str]"]:
    """Compile one text-removal pattern.

    Accepts ``/body/flags`` literals as well as plain regex strings.
    Malformed patterns are logged and yield ``None``.
    """
    body = raw
    flags = 0
    m = _SLASHED.match(raw)
    if m:
        body = m.group("body")
        for ch in m.group("flags"):
            if ch not in _FLAG_MAP:
                log.warning("Ignoring unknown regex flag %r in removal pattern %r", ch, raw)
                continue
            flags |= _FLAG_MAP[ch]
    try:
        return re.compile(body, flags)
    except re.error as exc:
        log.warning("Dropping malformed text-removal pattern %r: %s", raw, exc)
        return None


def compile_removal_patterns(raws: Iterable[str]) -> List["re.Pattern[str]"]:
    compiled = []
    for raw in raws:
        pat = compile_removal_pattern(raw)
        if pat is not None:
            compiled.append(pat)
    return compiled


def apply_text_removal_patterns(
    text: str, patterns: Sequence["re.Pattern[str]"]
) -> str:
    """Delete every match of every pattern, then trim.

    Repeated until stable so that applying it twice changes nothing.
    """
    result = text
    # Deleting one match can splice together a new one.
    for _ in range(10):
        before = result
        for pat in patterns:
            result = pat.sub("", result)
        result = result.strip()
        if result == before:
            break
    return result


# ── Book boundary markers ──────────────────────────────────────────────


def contains_marker(text: str, marker: Optional[str]) -> bool:
    """True if *marker* occurs in *text* after normalizing both."""
    if not marker:
        return False
    found = normalize_text(marker) in normalize_text(text)
    log.debug("Marker check %r: %s", marker[:40], found)
    return found
