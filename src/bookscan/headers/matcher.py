"""Header pattern compilation, matching, and ordinal-sequence validation."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from ..config import SequencePolicy, StructureConfig
from ..layout.classify import is_line_centered
from ..models import HeaderResult, OcrLine, PageMetrics, PatternMatch, ScanResults
from ..text.cleanup import remove_ocr_garbage
from .placeholders import (
    GERMAN_ORDINALS,
    ROMAN_NUMERALS,
    Placeholder,
    parse_placeholder,
    placeholder_fragment,
)

if TYPE_CHECKING:
    from ..booktypes import BookTypeConfig, HeaderFormat

log = logging.getLogger(__name__)

HEADER_LEVELS = (1, 2, 3)

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


class UnknownPlaceholderError(ValueError):
    """A header pattern names a placeholder outside the vocabulary."""

    def __init__(self, name: str, pattern: str) -> None:
        super().__init__(f"unknown placeholder {{{name}}} in header pattern {pattern!r}")
        self.name = name
        self.pattern = pattern


class HeaderSequenceError(Exception):
    """A header ordinal does not continue its level's sequence."""

    def __init__(
        self,
        level: int,
        expected: int,
        got: int,
        header_text: str = "",
        page_index: Optional[int] = None,
    ) -> None:
        where = f" on page {page_index}" if page_index is not None else ""
        super().__init__(
            f"level {level} header {header_text.strip()!r}{where}: "
            f"expected ordinal {expected}, got {got}"
        )
        self.level = level
        self.expected = expected
        self.got = got
        self.header_text = header_text
        self.page_index = page_index


# ── Compilation ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CompiledHeaderPattern:
    pattern: str
    regex: "re.Pattern[str]"
    placeholders: Tuple[Placeholder, ...]


def _literal(segment: str) -> str:
    # Any whitespace run in the pattern tolerates any whitespace run in text.
    parts = re.split(r"\s+", segment)
    return r"\s+".join(re.escape(p) for p in parts)


def compile_header_pattern(
    pattern: str, end_markers: Optional[Iterable[str]] = None
) -> CompiledHeaderPattern:
    """Compile a placeholder pattern into an anchored regex.

    Raises
    ------
    UnknownPlaceholderError
        If the pattern uses a placeholder outside :class:`Placeholder`.
    """
    pieces: List[str] = []
    names: List[Placeholder] = []
    pos = 0
    for m in _PLACEHOLDER_RE.finditer(pattern):
        ph = parse_placeholder(m.group(1))
        if ph is None:
            raise UnknownPlaceholderError(m.group(1), pattern)
        pieces.append(_literal(pattern[pos : m.start()]))
        pieces.append("(" + placeholder_fragment(ph, end_markers) + ")")
        names.append(ph)
        pos = m.end()
    pieces.append(_literal(pattern[pos:]))
    regex = re.compile("^" + "".join(pieces) + "$")
    return CompiledHeaderPattern(pattern=pattern, regex=regex, placeholders=tuple(names))


# ── Matching ───────────────────────────────────────────────────────────


def match_header_pattern(text: str, compiled: CompiledHeaderPattern) -> PatternMatch:
    """Match trimmed *text* against *compiled*, mapping groups to placeholder names."""
    try:
        m = compiled.regex.match(text.strip())
    except (re.error, RecursionError) as exc:
        log.warning("Error matching %r against %r: %s", text, compiled.pattern, exc)
        return PatternMatch()
    if not m:
        return PatternMatch()

    values: Dict[str, str] = {}
    for ph, value in zip(compiled.placeholders, m.groups()):
        if value is not None:
            values[ph.value] = value
    log.debug("Header pattern %r matched %r -> %s", compiled.pattern, text, values)
    return PatternMatch(matched=True, extracted_values=values, full_match=m.group(0))


def extract_ordinal_value(values: Dict[str, str]) -> Optional[int]:
    """Ordinal from matched values: roman, then decimal, then German ordinal word."""
    roman = values.get(Placeholder.roman_number.value)
    if roman and roman in ROMAN_NUMERALS:
        return ROMAN_NUMERALS[roman]

    decimal = values.get(Placeholder.decimal_number.value)
    if decimal and decimal.isdigit():
        return int(decimal)

    ordinal = values.get(Placeholder.german_ordinal.value)
    if ordinal:
        return GERMAN_ORDINALS.get(ordinal.lower())
    return None


def _match_any(
    text: str, formats: Iterable["HeaderFormat"]
) -> Tuple[Optional["HeaderFormat"], PatternMatch]:
    for fmt in formats:
        pm = match_header_pattern(text, fmt.compiled)
        if pm.matched:
            return fmt, pm
    return None, PatternMatch()


def detect_header(
    line_index: int,
    lines: List[OcrLine],
    book_config: "BookTypeConfig",
    page_metrics: PageMetrics,
    cfg: Optional[StructureConfig] = None,
    page_width: Optional[float] = None,
) -> Optional[HeaderResult]:
    """Try to read a heading starting at ``lines[line_index]``.

    Levels are tried 1 -> 2 -> 3 and formats in declaration order; the
    first match wins.  A format with ``multiple_lines`` absorbs following
    centered lines while the joined text still matches one of the
    level's formats.

    Returns
    -------
    HeaderResult or None
        ``new_line_index`` is the last consumed line (inclusive).
    """
    if cfg is None:
        cfg = StructureConfig()
    if line_index >= len(lines):
        return None
    line = lines[line_index]
    if not line.text or not line.text.strip():
        return None

    cleaned = remove_ocr_garbage(line.text)

    level = None
    fmt = None
    pm = PatternMatch()
    for lvl in HEADER_LEVELS:
        definition = book_config.header_types.get(lvl)
        if definition is None:
            continue
        for candidate in definition.formats:
            if candidate.centered and not is_line_centered(
                line, page_metrics, cfg, page_width
            ):
                continue
            cand_pm = match_header_pattern(cleaned, candidate.compiled)
            if cand_pm.matched:
                level, fmt, pm = lvl, candidate, cand_pm
                break
        if fmt is not None:
            break

    if fmt is None or level is None:
        return None

    header_text = pm.full_match.strip()
    values = pm.extracted_values
    last = line_index
    if fmt.multiple_lines:
        formats = book_config.header_types[level].formats
        for nxt in range(line_index + 1, len(lines)):
            cont = lines[nxt]
            if not cont.text or not cont.text.strip():
                break
            if not is_line_centered(cont, page_metrics, cfg, page_width):
                break
            joined = f"{header_text} {cont.text.strip()}"
            _, joined_pm = _match_any(joined, formats)
            if not joined_pm.matched:
                break
            header_text = joined
            values = joined_pm.extracted_values or values
            last = nxt
            log.debug("Header continues on line %d: %r", nxt, header_text)

    emitted = "\n\n" + "#" * level + " " + header_text + "\n\n"
    log.debug("Level %d header at lines %d-%d: %r", level, line_index, last, header_text)
    return HeaderResult(
        header_text=emitted,
        level=level,
        new_line_index=last,
        ordinal=extract_ordinal_value(values),
    )


# ── Sequence validation ────────────────────────────────────────────────


def validate_header_sequence(
    level: int,
    ordinal: Optional[int],
    scan_results: ScanResults,
    policy: SequencePolicy = SequencePolicy.strict,
    header_text: str = "",
    page_index: Optional[int] = None,
) -> bool:
    """Check that *ordinal* continues *level*'s sequence; advance the counter if so.

    Headers without an ordinal are accepted and leave the counter alone.
    Under ``strict`` a gap raises :class:`HeaderSequenceError`; under
    ``skip`` it is logged and ``False`` is returned so the caller can
    treat the line as body text.
    """
    if ordinal is None:
        return True
    expected = scan_results.level_index(level) + 1
    if ordinal == expected:
        scan_results.level_indices[level] = ordinal
        return True

    if SequencePolicy(policy) is SequencePolicy.strict:
        log.error(
            "Header sequence broken at level %d: expected %d, got %d",
            level,
            expected,
            ordinal,
        )
        raise HeaderSequenceError(level, expected, ordinal, header_text, page_index)
    log.warning(
        "Skipping out-of-sequence level %d header %r (expected %d, got %d)",
        level,
        header_text.strip(),
        expected,
        ordinal,
    )
    return False
