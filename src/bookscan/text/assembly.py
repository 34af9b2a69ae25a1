"""Reassembly of classified lines into running text.

All helpers mutate a :class:`~bookscan.models.TextBuffer` in place.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from ..models import TextBuffer

_FOOTNOTE_START_RE = re.compile(r"^(\d+|\*+)\s*(.+)$", re.DOTALL)


def _starts_lowercase(text: str) -> bool:
    return bool(text) and text[0].islower()


def join_line(buf: TextBuffer, line: str) -> None:
    """Append *line* to *buf*, re-joining hyphenated words.

    * empty buffer: the line is taken as-is
    * buffer ends in ``-`` and the line starts lowercase: hyphen dropped,
      no separator
    * buffer ends in whitespace (e.g. after a heading): no separator
    * otherwise a single space
    """
    if not line:
        return
    if not len(buf):
        buf.append(line)
        return
    if buf.endswith("-") and _starts_lowercase(line):
        buf.drop_last(1)
        buf.append(line)
        return
    if buf.tail(1).isspace():
        buf.append(line)
        return
    buf.append(" " + line)


def concatenate_text(buf: TextBuffer, text: str) -> None:
    """Join a new page's text onto *buf*.

    Trailing spaces and tabs are stripped first so a hyphen followed by
    padding still counts as a line-end hyphen.
    """
    buf.rstrip(" \t")
    join_line(buf, text)


def start_paragraph(buf: TextBuffer, line: str) -> None:
    buf.append("\n\n" + line)


def parse_footnote_start(line: str) -> Optional[Tuple[str, str]]:
    """Split ``"3 Text"`` / ``"** Text"`` into ``(marker, content)``."""
    m = _FOOTNOTE_START_RE.match(line.strip())
    if not m:
        return None
    return m.group(1), m.group(2).strip()


def reference_pattern(ref: str) -> "re.Pattern[str]":
    """Regex for a bare footnote token inside running text.

    Digits may be glued to the preceding word ("Goethe3") but must not
    be part of a longer number.  Already substituted ``[n]`` tokens are
    never matched again.
    """
    if ref.startswith("*"):
        return re.compile(rf"(?<![*\[]){re.escape(ref)}(?![*\]])")
    return re.compile(rf"(?<![\d\[]){re.escape(ref)}(?![\d\]])")


def replace_last_reference(buf: TextBuffer, ref: str, replacement: str) -> bool:
    """Replace the rightmost bare occurrence of *ref* in *buf*."""
    return buf.replace_last(reference_pattern(ref), replacement)


def append_footnote(notes: TextBuffer, reference: str, content: str) -> None:
    """Append a footnote entry ``"\\n\\n<reference>: <content>"``."""
    notes.append(f"\n\n{reference}: {content}")
