"""Footnote marker detection from superscript geometry.

OCR engines report superscript flags unreliably, so markers are found by
shape: a digit or asterisk glyph clearly smaller than the line and
raised above its baseline.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..config import StructureConfig
from ..models import OcrLine, OcrSymbol

log = logging.getLogger(__name__)

_MARKER_RE = re.compile(r"^(?:\d+|\*+)$")

# Words of context recorded before a superscript hit.
CONTEXT_WORDS = 3


def is_superscript_marker(symbol: OcrSymbol, line_height: float, cfg: StructureConfig) -> bool:
    """Geometry + text test for a single footnote marker glyph."""
    if not _MARKER_RE.match(symbol.text or ""):
        return False
    if symbol.bbox.height() >= line_height * cfg.superscript_height_ratio:
        return False
    bl = symbol.baseline
    if bl is not None and bl.has_baseline:
        if symbol.bbox.y1 >= bl.y1 - cfg.superscript_vertical_offset:
            return False
    return True


def detect_footnote_start(line: OcrLine, cfg: Optional[StructureConfig] = None) -> Optional[str]:
    """Return the marker text if *line* opens with a superscript footnote marker.

    Only the first word is inspected.  Qualifying symbols are concatenated
    until the first one that does not qualify.
    """
    if cfg is None:
        cfg = StructureConfig()
    if not line.words or line.bbox is None:
        return None
    line_height = line.height()
    marker = ""
    for sym in line.words[0].symbols:
        if not is_superscript_marker(sym, line_height, cfg):
            break
        marker += sym.text
    if marker:
        log.debug("Footnote start marker %r on line %r", marker, line.text[:40])
        return marker
    return None


@dataclass
class SuperscriptHit:
    """A superscript marker glyph found while scanning a page."""

    text: str
    line_index: int
    word_index: int
    symbol_index: int
    # The hit word and up to CONTEXT_WORDS words before it.
    words: List[str] = field(default_factory=list)

    @property
    def is_reference(self) -> bool:
        """A first-word hit that is the whole word repeats a numeral already read.

        Such degenerate self-references are kept apart from footnote starts
        like ``"¹Title"``; every other hit counts as a start.
        """
        return self.word_index == 0 and bool(self.words) and self.text == self.words[0]

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "line_index": self.line_index,
            "word_index": self.word_index,
            "symbol_index": self.symbol_index,
            "words": list(self.words),
        }


def scan_superscripts(
    lines: List[OcrLine], cfg: Optional[StructureConfig] = None
) -> List[SuperscriptHit]:
    """Find every superscript marker glyph on a page."""
    if cfg is None:
        cfg = StructureConfig()
    hits: List[SuperscriptHit] = []
    for li, line in enumerate(lines):
        if line.bbox is None:
            continue
        line_height = line.height()
        for wi, word in enumerate(line.words):
            for si, sym in enumerate(word.symbols):
                if not is_superscript_marker(sym, line_height, cfg):
                    continue
                context = [w.text for w in line.words[max(0, wi - CONTEXT_WORDS) : wi + 1]]
                hits.append(
                    SuperscriptHit(
                        text=sym.text,
                        line_index=li,
                        word_index=wi,
                        symbol_index=si,
                        words=context,
                    )
                )
    log.debug("Superscript scan: %d hits on %d lines", len(hits), len(lines))
    return hits


def split_references_and_starts(
    hits: List[SuperscriptHit],
) -> Tuple[List[SuperscriptHit], List[SuperscriptHit]]:
    """Partition *hits* into ``(references, starts)``."""
    references = [h for h in hits if h.is_reference]
    starts = [h for h in hits if not h.is_reference]
    return references, starts
