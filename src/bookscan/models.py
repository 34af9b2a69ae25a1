from __future__ import annotations

import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


# ── OCR geometry ───────────────────────────────────────────────────────


@dataclass
class BoundingBox:
    """Axis-aligned box in page pixel coordinates (origin top-left)."""

    x0: float
    y0: float
    x1: float
    y1: float

    def __post_init__(self) -> None:
        if self.x1 < self.x0:
            self.x0, self.x1 = self.x1, self.x0
        if self.y1 < self.y0:
            self.y0, self.y1 = self.y1, self.y0

    def width(self) -> float:
        return self.x1 - self.x0

    def height(self) -> float:
        return self.y1 - self.y0

    def center_x(self) -> float:
        return (self.x0 + self.x1) / 2.0

    def bbox(self) -> Tuple[float, float, float, float]:
        return (self.x0, self.y0, self.x1, self.y1)

    def to_dict(self) -> dict:
        return {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1}

    @classmethod
    def from_dict(cls, d: dict) -> "BoundingBox":
        return cls(
            x0=float(d["x0"]), y0=float(d["y0"]), x1=float(d["x1"]), y1=float(d["y1"])
        )


def _bbox_or_none(d: Optional[dict]) -> Optional[BoundingBox]:
    """Parse an optional bbox dict; a missing or partial box yields None."""
    if not d:
        return None
    if not all(k in d for k in ("x0", "y0", "x1", "y1")):
        return None
    return BoundingBox.from_dict(d)


@dataclass
class Baseline:
    """Text baseline reported by the OCR engine for a symbol."""

    x0: float = 0.0
    y0: float = 0.0
    x1: float = 0.0
    y1: float = 0.0
    has_baseline: bool = True

    def to_dict(self) -> dict:
        return {
            "x0": self.x0,
            "y0": self.y0,
            "x1": self.x1,
            "y1": self.y1,
            "has_baseline": self.has_baseline,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Baseline":
        return cls(
            x0=float(d.get("x0", 0.0)),
            y0=float(d.get("y0", 0.0)),
            x1=float(d.get("x1", 0.0)),
            y1=float(d.get("y1", 0.0)),
            has_baseline=bool(d.get("has_baseline", True)),
        )


# ── OCR records ────────────────────────────────────────────────────────


@dataclass
class OcrSymbol:
    """A single recognized glyph.

    The engine's ``is_superscript`` / ``is_subscript`` flags are carried
    for diagnostics only; footnote detection relies on geometry.
    """

    text: str
    bbox: BoundingBox
    confidence: float = 0.0
    baseline: Optional[Baseline] = None
    is_superscript: bool = False
    is_subscript: bool = False
    is_dropcap: bool = False

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {
            "text": self.text,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
            "is_superscript": self.is_superscript,
            "is_subscript": self.is_subscript,
            "is_dropcap": self.is_dropcap,
        }
        if self.baseline is not None:
            d["baseline"] = self.baseline.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "OcrSymbol":
        baseline = d.get("baseline")
        return cls(
            text=d.get("text", ""),
            bbox=BoundingBox.from_dict(d["bbox"]),
            confidence=float(d.get("confidence", 0.0)),
            baseline=Baseline.from_dict(baseline) if baseline else None,
            is_superscript=bool(d.get("is_superscript", False)),
            is_subscript=bool(d.get("is_subscript", False)),
            is_dropcap=bool(d.get("is_dropcap", False)),
        )


@dataclass
class OcrWord:
    """A recognized word and its symbols."""

    text: str
    bbox: BoundingBox
    confidence: float = 0.0
    symbols: List[OcrSymbol] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
            "symbols": [s.to_dict() for s in self.symbols],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "OcrWord":
        return cls(
            text=d.get("text", ""),
            bbox=BoundingBox.from_dict(d["bbox"]),
            confidence=float(d.get("confidence", 0.0)),
            symbols=[OcrSymbol.from_dict(s) for s in d.get("symbols") or []],
        )


@dataclass
class OcrLine:
    """A recognized text line.  ``bbox`` may be missing on degraded input."""

    text: str
    bbox: Optional[BoundingBox] = None
    confidence: float = 0.0
    words: List[OcrWord] = field(default_factory=list)

    def height(self) -> float:
        return self.bbox.height() if self.bbox else 0.0

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict() if self.bbox else None,
            "words": [w.to_dict() for w in self.words],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "OcrLine":
        return cls(
            text=d.get("text", ""),
            bbox=_bbox_or_none(d.get("bbox")),
            confidence=float(d.get("confidence", 0.0)),
            words=[OcrWord.from_dict(w) for w in d.get("words") or []],
        )


@dataclass
class OcrParagraph:
    """Engine-side paragraph grouping.  Used as an ordering hint only."""

    text: str = ""
    bbox: Optional[BoundingBox] = None
    confidence: float = 0.0
    lines: List[OcrLine] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict() if self.bbox else None,
            "lines": [ln.to_dict() for ln in self.lines],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "OcrParagraph":
        return cls(
            text=d.get("text", ""),
            bbox=_bbox_or_none(d.get("bbox")),
            confidence=float(d.get("confidence", 0.0)),
            lines=[OcrLine.from_dict(ln) for ln in d.get("lines") or []],
        )


@dataclass
class OcrPage:
    """All OCR output for one scanned page."""

    index: int = 0
    paragraphs: List[OcrParagraph] = field(default_factory=list)
    width: Optional[float] = None

    def flatten_lines(self) -> List[OcrLine]:
        """Return every line in reading order (paragraph order, then line order)."""
        return [ln for para in self.paragraphs for ln in para.lines]

    def plain_text(self) -> str:
        return "\n".join(ln.text for ln in self.flatten_lines())

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {
            "index": self.index,
            "paragraphs": [p.to_dict() for p in self.paragraphs],
        }
        if self.width is not None:
            d["width"] = self.width
        return d

    @classmethod
    def from_dict(cls, d: dict, index: Optional[int] = None) -> "OcrPage":
        width = d.get("width")
        return cls(
            index=index if index is not None else int(d.get("index", 0)),
            paragraphs=[OcrParagraph.from_dict(p) for p in d.get("paragraphs") or []],
            width=float(width) if width is not None else None,
        )


# ── Layout roles ───────────────────────────────────────────────────────


class LineRole(str, Enum):
    """Semantic role of a line, inferred from its horizontal position."""

    paragraph_text = "paragraph-text"
    paragraph_start = "paragraph-start"
    footnote_start = "footnote-start"
    footnote_text = "footnote-text"
    quote_text = "quote-text"
    unknown = "unknown"


@dataclass
class RoleRange:
    """Horizontal extent of one x0 cluster and the role it was assigned."""

    name: str
    role: LineRole
    min_x0: float
    max_x0: float
    average_x0: float
    average_width: float = 0.0
    max_width: float = 0.0
    count: int = 0

    def contains(self, x0: float) -> bool:
        return self.min_x0 <= x0 <= self.max_x0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "role": self.role.value,
            "min_x0": self.min_x0,
            "max_x0": self.max_x0,
            "average_x0": self.average_x0,
            "average_width": self.average_width,
            "max_width": self.max_width,
            "count": self.count,
        }


@dataclass
class PageMetrics:
    """Ordered name -> RoleRange mapping for one page.

    ``paragraph-text`` is present whenever at least one line carried a
    usable bounding box.
    """

    ranges: Dict[str, RoleRange] = field(default_factory=dict)

    def add(self, rr: RoleRange) -> None:
        self.ranges[rr.name] = rr

    def get(self, name: str) -> Optional[RoleRange]:
        return self.ranges.get(name)

    @property
    def paragraph_text(self) -> Optional[RoleRange]:
        return self.ranges.get(LineRole.paragraph_text.value)

    def lookup(self, x0: float) -> Optional[RoleRange]:
        """Return the first range (insertion order) whose span contains *x0*."""
        for rr in self.ranges.values():
            if rr.contains(x0):
                return rr
        return None

    def __contains__(self, name: object) -> bool:
        return name in self.ranges

    def __iter__(self) -> Iterator[str]:
        return iter(self.ranges)

    def __len__(self) -> int:
        return len(self.ranges)

    def to_dict(self) -> dict:
        return {name: rr.to_dict() for name, rr in self.ranges.items()}


# ── Header matching results ────────────────────────────────────────────


@dataclass
class PatternMatch:
    matched: bool = False
    extracted_values: Dict[str, str] = field(default_factory=dict)
    full_match: str = ""


@dataclass
class HeaderResult:
    """A detected heading.

    ``new_line_index`` is the index of the last line consumed by the
    heading (inclusive); processing resumes at ``new_line_index + 1``.
    """

    header_text: str
    level: int
    new_line_index: int
    ordinal: Optional[int] = None


# ── Text accumulation ──────────────────────────────────────────────────


class TextBuffer:
    """Growable text builder with the few tail operations assembly needs.

    Appends are amortised O(1); the chunks are collapsed only when the
    full value is read.
    """

    def __init__(self, initial: str = "") -> None:
        self._parts: List[str] = [initial] if initial else []
        self._length = len(initial)

    def append(self, text: str) -> None:
        if text:
            self._parts.append(text)
            self._length += len(text)

    @property
    def value(self) -> str:
        if len(self._parts) > 1:
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""

    def set(self, text: str) -> None:
        self._parts = [text] if text else []
        self._length = len(text)

    def tail(self, n: int) -> str:
        """Return the last *n* characters without collapsing the buffer."""
        if n <= 0:
            return ""
        pieces: List[str] = []
        have = 0
        for part in reversed(self._parts):
            pieces.append(part)
            have += len(part)
            if have >= n:
                break
        return "".join(reversed(pieces))[-n:]

    def endswith(self, suffix: str) -> bool:
        return self.tail(len(suffix)) == suffix

    def rstrip(self, chars: str) -> None:
        """Strip trailing *chars* in place."""
        while self._parts:
            last = self._parts[-1]
            stripped = last.rstrip(chars)
            self._length -= len(last) - len(stripped)
            if stripped:
                self._parts[-1] = stripped
                return
            self._parts.pop()

    def drop_last(self, n: int = 1) -> None:
        """Remove the last *n* characters without collapsing the buffer."""
        while n > 0 and self._parts:
            last = self._parts[-1]
            if len(last) > n:
                self._parts[-1] = last[:-n]
                self._length -= n
                return
            self._parts.pop()
            self._length -= len(last)
            n -= len(last)

    def replace_last(self, pattern: "re.Pattern[str]", replacement: str) -> bool:
        """Replace the rightmost match of *pattern*; return True on success."""
        value = self.value
        last = None
        for last in pattern.finditer(value):
            pass
        if last is None:
            return False
        self.set(value[: last.start()] + replacement + value[last.end():])
        return True

    def __len__(self) -> int:
        return self._length

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"TextBuffer(len={self._length})"


@dataclass
class ScanResults:
    """Cross-page accumulator for one book.

    Created once per book run and mutated only by the page sequencer.
    """

    text_with_headers: TextBuffer = field(default_factory=TextBuffer)
    footnote_text: TextBuffer = field(default_factory=TextBuffer)
    level_indices: Dict[int, int] = field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0}
    )

    def level_index(self, level: int) -> int:
        return self.level_indices.get(level, 0)

    @contextmanager
    def transaction(self) -> Iterator["ScanResults"]:
        """Restore buffers and counters if the enclosed block raises."""
        text = self.text_with_headers.value
        notes = self.footnote_text.value
        levels = dict(self.level_indices)
        try:
            yield self
        except Exception:
            self.text_with_headers.set(text)
            self.footnote_text.set(notes)
            self.level_indices = levels
            raise

    def to_dict(self) -> dict:
        return {
            "text_with_headers": self.text_with_headers.value,
            "footnote_text": self.footnote_text.value,
            "level_indices": {str(k): v for k, v in self.level_indices.items()},
        }
