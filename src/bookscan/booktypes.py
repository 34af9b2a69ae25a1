"""Book-type definitions: header formats, removal patterns, layout offsets.

Book types live in a JSON file mapping a book-type key to its definition::

    {
      "philosophy-lectures": {
        "description": "...",
        "headerTypes": {
          "level1": {"formats": [{"pattern": "{german-ordinal} VORTRAG",
                                  "alignment": "center",
                                  "multipleLines": false}]},
          "level2": {"formats": [...]}
        },
        "textRemovalPatterns": ["/^\\\\d+$/"],
        "metrics": {"paragraph-start": 40,
                    "footnote-start": {"expectedOffset": -10, "tolerance": 12}}
      }
    }

Both camelCase and kebab-case keys are accepted.  Everything that can be
validated (placeholders, regexes, metric shapes) is validated at load
time; the resulting :class:`BookTypeConfig` is immutable and shared.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_PARAGRAPH_END_MARKERS, BookTypeConfigError
from .headers.matcher import (
    HEADER_LEVELS,
    CompiledHeaderPattern,
    UnknownPlaceholderError,
    compile_header_pattern,
)
from .models import LineRole
from .text.cleanup import compile_removal_patterns
from .text.corrections import Correction, compile_misreadings

log = logging.getLogger(__name__)

# Book types shipped with the package; used when no file is given.
DEFAULT_BOOK_TYPES_PATH = Path(__file__).parent / "data" / "book_types.json"

__all__ = [
    "BookManifest",
    "BookTypeConfig",
    "BookTypeConfigError",
    "BookTypeRegistry",
    "DEFAULT_BOOK_TYPES_PATH",
    "HeaderFormat",
    "HeaderTypeDefinition",
    "RoleOffset",
    "load_book_manifest",
    "load_book_types",
    "parse_book_type",
]

_CENTER_ALIGNMENTS = ("center", "centered")


@dataclass(frozen=True)
class HeaderFormat:
    pattern: str
    compiled: CompiledHeaderPattern
    alignment: Optional[str] = None
    multiple_lines: bool = False

    @property
    def centered(self) -> bool:
        return (self.alignment or "").lower() in _CENTER_ALIGNMENTS


@dataclass(frozen=True)
class HeaderTypeDefinition:
    formats: Tuple[HeaderFormat, ...] = ()


@dataclass(frozen=True)
class RoleOffset:
    """Expected x0 of a role relative to the body-text cluster."""

    expected_offset: float
    tolerance: Optional[float] = None


@dataclass(frozen=True)
class BookTypeConfig:
    name: str
    description: str = ""
    header_types: Mapping[int, HeaderTypeDefinition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    text_removal_patterns: Tuple["re.Pattern[str]", ...] = ()
    # None means the book type never declared metrics, which is fatal
    # for page analysis; an empty mapping is valid.
    metrics: Optional[Mapping[LineRole, RoleOffset]] = None


@dataclass(frozen=True)
class BookManifest:
    """Per-book boundaries and known misreadings."""

    text_before_first_chapter: Optional[str] = None
    text_after_last_chapter: Optional[str] = None
    ocr_misreadings: Tuple[Correction, ...] = ()


# ── Parsing ────────────────────────────────────────────────────────────


def _get(d: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key among camelCase / kebab-case / snake_case spellings."""
    for key in keys:
        if key in d:
            return d[key]
    return default


def _parse_formats(
    name: str, level: int, raw: Any, end_markers: Sequence[str]
) -> HeaderTypeDefinition:
    if raw is None:
        return HeaderTypeDefinition()
    if not isinstance(raw, Mapping):
        raise BookTypeConfigError(f"{name}: level{level} must be an object")
    formats_raw = raw.get("formats") or []
    if not isinstance(formats_raw, list):
        raise BookTypeConfigError(f"{name}: level{level}.formats must be a list")

    formats: List[HeaderFormat] = []
    for i, f in enumerate(formats_raw):
        if isinstance(f, str):
            f = {"pattern": f}
        if not isinstance(f, Mapping) or not isinstance(f.get("pattern"), str):
            raise BookTypeConfigError(
                f"{name}: level{level}.formats[{i}] needs a string 'pattern'"
            )
        try:
            compiled = compile_header_pattern(f["pattern"], end_markers)
        except UnknownPlaceholderError as exc:
            raise BookTypeConfigError(f"{name}: {exc}") from exc
        except re.error as exc:
            raise BookTypeConfigError(
                f"{name}: header pattern {f['pattern']!r} does not compile: {exc}"
            ) from exc
        formats.append(
            HeaderFormat(
                pattern=f["pattern"],
                compiled=compiled,
                alignment=f.get("alignment"),
                multiple_lines=bool(
                    _get(f, "multipleLines", "multiple-lines", "multiple_lines", default=False)
                ),
            )
        )
    return HeaderTypeDefinition(formats=tuple(formats))


def _parse_offset(name: str, role: str, raw: Any) -> RoleOffset:
    if isinstance(raw, bool):
        raise BookTypeConfigError(f"{name}: metrics.{role} must be a number or object")
    if isinstance(raw, (int, float)):
        return RoleOffset(expected_offset=float(raw))
    if isinstance(raw, Mapping):
        offset = _get(raw, "expectedOffset", "expected-offset", "expectedX0", "expected_offset")
        if not isinstance(offset, (int, float)):
            raise BookTypeConfigError(f"{name}: metrics.{role} lacks a numeric offset")
        tol = raw.get("tolerance")
        if tol is not None and (not isinstance(tol, (int, float)) or tol < 0):
            raise BookTypeConfigError(f"{name}: metrics.{role}.tolerance must be >= 0")
        return RoleOffset(
            expected_offset=float(offset),
            tolerance=float(tol) if tol is not None else None,
        )
    raise BookTypeConfigError(f"{name}: metrics.{role} must be a number or object")


def _parse_metrics(name: str, raw: Any) -> Optional[Mapping[LineRole, RoleOffset]]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise BookTypeConfigError(f"{name}: metrics must be an object")
    parsed: Dict[LineRole, RoleOffset] = {}
    for key, value in raw.items():
        try:
            role = LineRole(key)
        except ValueError:
            log.warning("%s: ignoring unknown metrics role %r", name, key)
            continue
        if role in (LineRole.paragraph_text, LineRole.unknown):
            # Body text is the reference cluster and needs no offset.
            continue
        parsed[role] = _parse_offset(name, key, value)
    return MappingProxyType(parsed)


def parse_book_type(
    name: str,
    raw: Mapping[str, Any],
    end_markers: Sequence[str] = DEFAULT_PARAGRAPH_END_MARKERS,
) -> BookTypeConfig:
    """Validate and compile one book-type definition.

    Raises
    ------
    BookTypeConfigError
        On structural problems or unknown header placeholders.
    """
    if not isinstance(raw, Mapping):
        raise BookTypeConfigError(f"{name}: definition must be an object")

    headers_raw = _get(raw, "headerTypes", "header-types", "header_types", default={}) or {}
    if not isinstance(headers_raw, Mapping):
        raise BookTypeConfigError(f"{name}: headerTypes must be an object")
    header_types = {
        level: _parse_formats(name, level, headers_raw.get(f"level{level}"), end_markers)
        for level in HEADER_LEVELS
    }

    removal_raw = _get(
        raw, "textRemovalPatterns", "text-removal-patterns", "text_removal_patterns",
        default=[],
    ) or []
    if not isinstance(removal_raw, list) or not all(isinstance(p, str) for p in removal_raw):
        raise BookTypeConfigError(f"{name}: textRemovalPatterns must be a list of strings")

    return BookTypeConfig(
        name=name,
        description=str(raw.get("description", "")),
        header_types=MappingProxyType(header_types),
        text_removal_patterns=tuple(compile_removal_patterns(removal_raw)),
        metrics=_parse_metrics(name, raw.get("metrics")),
    )


def load_book_types(path: Path) -> Dict[str, Mapping[str, Any]]:
    """Read the raw book-types JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise BookTypeConfigError(f"cannot read book types file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise BookTypeConfigError(f"book types file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise BookTypeConfigError(f"book types file {path} must contain an object")
    return data


def load_book_manifest(source: Any) -> BookManifest:
    """Build a :class:`BookManifest` from a dict or a JSON file path."""
    if source is None:
        return BookManifest()
    if isinstance(source, (str, Path)):
        try:
            source = json.loads(Path(source).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise BookTypeConfigError(f"cannot load book manifest {source}: {exc}") from exc
    if not isinstance(source, Mapping):
        raise BookTypeConfigError("book manifest must be an object")

    raw_misreadings = _get(source, "ocrMisreadings", "ocr-misreadings", "ocr_misreadings") or []
    pairs: List[Tuple[str, str]] = []
    for item in raw_misreadings:
        if isinstance(item, Mapping):
            pairs.append((str(item.get("pattern", "")), str(item.get("replacement", ""))))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            pairs.append((str(item[0]), str(item[1])))
        else:
            log.warning("Ignoring malformed misreading entry %r", item)
    return BookManifest(
        text_before_first_chapter=_get(
            source, "textBeforeFirstChapter", "text-before-first-chapter",
            "text_before_first_chapter",
        ),
        text_after_last_chapter=_get(
            source, "textAfterLastChapter", "text-after-last-chapter",
            "text_after_last_chapter",
        ),
        ocr_misreadings=tuple(compile_misreadings([p for p in pairs if p[0]])),
    )


# ── Registry ───────────────────────────────────────────────────────────


class BookTypeRegistry:
    """Load-once cache of compiled book types.

    The first lookup of a key parses and compiles it under a lock; the
    frozen result is shared read-only by every later caller.
    """

    def __init__(
        self,
        definitions: Mapping[str, Mapping[str, Any]],
        end_markers: Sequence[str] = DEFAULT_PARAGRAPH_END_MARKERS,
    ) -> None:
        self._definitions = dict(definitions)
        self._end_markers = tuple(end_markers)
        self._cache: Dict[Tuple[str, Tuple[str, ...]], BookTypeConfig] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_file(
        cls,
        path: Optional[Path] = None,
        end_markers: Sequence[str] = DEFAULT_PARAGRAPH_END_MARKERS,
    ) -> "BookTypeRegistry":
        """Registry over a book-types JSON file (the packaged one by default)."""
        return cls(load_book_types(path or DEFAULT_BOOK_TYPES_PATH), end_markers)

    def names(self) -> List[str]:
        return sorted(self._definitions)

    def get(
        self, book_type: str, end_markers: Optional[Sequence[str]] = None
    ) -> BookTypeConfig:
        """Compiled config for *book_type*.

        *end_markers* overrides the registry default for the
        ``no-paragraph-end-marker`` placeholder; each marker set is
        compiled and cached separately.
        """
        markers = tuple(end_markers) if end_markers is not None else self._end_markers
        key = (book_type, markers)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            if book_type not in self._definitions:
                raise BookTypeConfigError(
                    f"unknown book type {book_type!r}; available: {self.names()}"
                )
            config = parse_book_type(book_type, self._definitions[book_type], markers)
            self._cache[key] = config
            log.info(
                "Loaded book type %r (%d header formats, %d removal patterns)",
                book_type,
                sum(len(d.formats) for d in config.header_types.values()),
                len(config.text_removal_patterns),
            )
            return config

    def __contains__(self, book_type: object) -> bool:
        return book_type in self._definitions
