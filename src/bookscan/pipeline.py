"""Page sequencing and book runs.

:func:`process_page` walks one page's lines in reading order and writes
headings, paragraphs and footnotes into the book's :class:`ScanResults`.
:func:`run_book` drives a whole book: start/end markers, per-page timing,
final misreading corrections, and error wrapping.

Each page is processed inside :meth:`ScanResults.transaction`, so a page
that fails leaves the accumulated text exactly as it was before the page.
"""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generator, Iterable, List, Optional, Tuple, Union

from .booktypes import BookManifest, BookTypeConfig, BookTypeRegistry
from .config import BookTypeConfigError, StructureConfig
from .footnotes.markers import SuperscriptHit, scan_superscripts, split_references_and_starts
from .headers.matcher import HeaderSequenceError, detect_header, validate_header_sequence
from .layout.classify import classify_line
from .layout.page_metrics import analyze_page_metrics
from .models import BoundingBox, LineRole, OcrPage, PageMetrics, ScanResults
from .text.assembly import (
    append_footnote,
    concatenate_text,
    join_line,
    parse_footnote_start,
    replace_last_reference,
    start_paragraph,
)
from .text.cleanup import apply_text_removal_patterns, contains_marker
from .text.corrections import apply_corrections, fix_german_umlaut_errors

logger = logging.getLogger("bookscan.pipeline")


class BookRunError(Exception):
    """A fatal error while processing a book, with where it happened."""

    def __init__(self, book_type: str, page_index: Optional[int], cause: Exception) -> None:
        where = f"page {page_index}" if page_index is not None else "setup"
        super().__init__(f"book type {book_type!r}, {where}: {cause}")
        self.book_type = book_type
        self.page_index = page_index
        self.cause = cause


# ── Skip reasons ───────────────────────────────────────────────────────


class SkipReason(str, Enum):
    """Why a page was not sequenced."""

    before_start_marker = "before_start_marker"
    start_marker_page = "start_marker_page"
    after_end_marker = "after_end_marker"
    no_lines = "no_lines"


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for one step of page processing."""

    stage: str
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "stage": self.stage,
            "ran": self.ran,
            "status": self.status,
            "duration_ms": self.duration_ms,
        }
        if self.counts:
            d["counts"] = self.counts
        if self.error is not None:
            d["error"] = self.error
        return d


@contextmanager
def run_stage(stage: str) -> Generator[StageResult, None, None]:
    """Context manager that times a stage and records failures.

    Usage::

        with run_stage("metrics") as sr:
            metrics = analyze_page_metrics(...)
            sr.counts["ranges"] = len(metrics)

    Exceptions are recorded on the :class:`StageResult` and re-raised.
    """
    sr = StageResult(stage=stage, ran=True)
    t0 = time.perf_counter()
    try:
        yield sr
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = {
            "type": type(exc).__name__,
            "message": str(exc),
            "stack": traceback.format_exc(),
        }
        raise
    finally:
        sr.duration_ms = int((time.perf_counter() - t0) * 1000)


# ── Page-level result container ────────────────────────────────────────


@dataclass
class LineAssignment:
    """What the sequencer did with one line (used for overlays and reports)."""

    line_index: int
    label: str  # a LineRole value, "header-<n>", or "removed"
    range_name: str = ""
    bbox: Optional[BoundingBox] = None


@dataclass
class PageResult:
    """Structured result of sequencing a single page."""

    page: int = 0
    page_width: Optional[float] = None
    processed: bool = False
    skip_reason: Optional[SkipReason] = None
    stages: Dict[str, StageResult] = field(default_factory=dict)
    page_metrics: PageMetrics = field(default_factory=PageMetrics)
    assignments: List[LineAssignment] = field(default_factory=list)
    headers: List[Tuple[int, str]] = field(default_factory=list)
    footnotes: int = 0
    unmatched_references: List[str] = field(default_factory=list)
    superscripts: List[SuperscriptHit] = field(default_factory=list)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return a lightweight summary suitable for JSON serialisation."""
        d: Dict[str, Any] = {
            "page": self.page,
            "processed": self.processed,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason.value
        d["stages"] = {n: sr.to_dict() for n, sr in self.stages.items()}
        d["counts"] = {
            "lines": len(self.assignments),
            "headers": len(self.headers),
            "footnotes": self.footnotes,
            "ranges": len(self.page_metrics),
            "superscripts": len(self.superscripts),
        }
        d["page_metrics"] = self.page_metrics.to_dict()
        if self.headers:
            d["headers"] = [{"level": lvl, "text": txt} for lvl, txt in self.headers]
        if self.unmatched_references:
            d["unmatched_references"] = list(self.unmatched_references)
        return d


def _sequence_lines(
    page: OcrPage,
    book_config: BookTypeConfig,
    scan_results: ScanResults,
    cfg: StructureConfig,
    pr: PageResult,
    page_index: Optional[int],
) -> None:
    lines = page.flatten_lines()
    body = scan_results.text_with_headers
    notes = scan_results.footnote_text
    first_body_line = True

    i = 0
    while i < len(lines):
        line = lines[i]

        header = detect_header(i, lines, book_config, pr.page_metrics, cfg, page.width)
        if header is not None and validate_header_sequence(
            header.level,
            header.ordinal,
            scan_results,
            cfg.sequence_policy,
            header.header_text,
            page_index,
        ):
            body.append(header.header_text)
            text = header.header_text.strip().lstrip("#").strip()
            pr.headers.append((header.level, text))
            for j in range(i, header.new_line_index + 1):
                pr.assignments.append(
                    LineAssignment(j, f"header-{header.level}", bbox=lines[j].bbox)
                )
            logger.debug("Page %s: level %d header %r", page_index, header.level, text)
            first_body_line = False
            i = header.new_line_index + 1
            continue

        text = apply_text_removal_patterns(line.text.strip(), book_config.text_removal_patterns)
        if not text:
            pr.assignments.append(LineAssignment(i, "removed", bbox=line.bbox))
            i += 1
            continue

        role, range_name = classify_line(line, pr.page_metrics, cfg)

        parsed = None
        if role is LineRole.footnote_start:
            parsed = parse_footnote_start(text)
            if parsed is None:
                logger.debug("Footnote start without marker text, treating as body: %r", text)
                role, range_name = LineRole.paragraph_text, LineRole.paragraph_text.value

        pr.assignments.append(LineAssignment(i, role.value, range_name, line.bbox))

        if parsed is not None:
            ref, content = parsed
            marker = cfg.format_reference(ref)
            if not replace_last_reference(body, ref, marker):
                pr.unmatched_references.append(ref)
                logger.debug("Page %s: no in-text reference %r found", page_index, ref)
            append_footnote(notes, marker, content)
            pr.footnotes += 1
        elif role is LineRole.paragraph_start:
            start_paragraph(body, text)
        elif role is LineRole.footnote_text:
            join_line(notes, text)
        elif first_body_line:
            # Continuation of the previous page's last paragraph.
            concatenate_text(body, text)
        else:
            join_line(body, text)

        if role is not LineRole.footnote_start and role is not LineRole.footnote_text:
            first_body_line = False
        i += 1


def process_page(
    page: OcrPage,
    book_config: BookTypeConfig,
    scan_results: ScanResults,
    cfg: Optional[StructureConfig] = None,
    page_index: Optional[int] = None,
) -> PageResult:
    """Sequence one page into *scan_results*.

    Parameters
    ----------
    page : OcrPage
        OCR output for the page.
    book_config : BookTypeConfig
        Header formats, removal patterns and layout offsets.
    scan_results : ScanResults
        The book's accumulator; mutated in place.
    cfg : StructureConfig, optional
        Engine tunables.
    page_index : int, optional
        Used in log messages and errors; defaults to ``page.index``.

    Returns
    -------
    PageResult

    Raises
    ------
    BookTypeConfigError
        When the book type has no metrics configuration.
    HeaderSequenceError
        When a header ordinal is out of sequence under the strict policy.
    """
    if cfg is None:
        cfg = StructureConfig()
    if page_index is None:
        page_index = page.index

    pr = PageResult(page=page_index, page_width=page.width)
    lines = page.flatten_lines()
    if not lines:
        pr.skip_reason = SkipReason.no_lines
        logger.info("Page %d has no lines", page_index)
        return pr

    with scan_results.transaction():
        with run_stage("metrics") as sr:
            pr.stages["metrics"] = sr
            pr.page_metrics = analyze_page_metrics(lines, book_config, cfg)
            sr.counts["ranges"] = len(pr.page_metrics)
        with run_stage("superscripts") as sr:
            pr.stages["superscripts"] = sr
            pr.superscripts = scan_superscripts(lines, cfg)
            refs, starts = split_references_and_starts(pr.superscripts)
            sr.counts["references"] = len(refs)
            sr.counts["starts"] = len(starts)
        with run_stage("sequence") as sr:
            pr.stages["sequence"] = sr
            _sequence_lines(page, book_config, scan_results, cfg, pr, page_index)
            sr.counts["lines"] = len(lines)
            sr.counts["headers"] = len(pr.headers)
            sr.counts["footnotes"] = pr.footnotes

    pr.processed = True
    logger.info(
        "Page %d: %d lines, %d headers, %d footnotes",
        page_index,
        len(lines),
        len(pr.headers),
        pr.footnotes,
    )
    return pr


# ── Book-level result ──────────────────────────────────────────────────


@dataclass
class BookResult:
    """Aggregated result for a book run."""

    book_type: str
    pages: List[PageResult] = field(default_factory=list)
    text_with_headers: str = ""
    footnote_text: str = ""
    level_indices: Dict[int, int] = field(default_factory=dict)
    corrections: int = 0
    config: Optional[StructureConfig] = None

    @property
    def processed_pages(self) -> List[PageResult]:
        return [p for p in self.pages if p.processed]

    def headers(self) -> List[Tuple[int, str]]:
        return [h for p in self.pages for h in p.headers]

    def total_footnotes(self) -> int:
        return sum(p.footnotes for p in self.pages)

    def to_summary_dict(self) -> Dict[str, Any]:
        """Serialize book result to a summary dict (without the full text)."""
        return {
            "book_type": self.book_type,
            "pages_total": len(self.pages),
            "pages_processed": len(self.processed_pages),
            "headers": len(self.headers()),
            "footnotes": self.total_footnotes(),
            "corrections": self.corrections,
            "level_indices": {str(k): v for k, v in self.level_indices.items()},
            "text_length": len(self.text_with_headers),
            "pages": [pr.to_summary_dict() for pr in self.pages],
        }


def _resolve_book_config(
    book_type: Union[str, BookTypeConfig],
    registry: Optional[BookTypeRegistry],
    cfg: StructureConfig,
) -> BookTypeConfig:
    if isinstance(book_type, BookTypeConfig):
        return book_type
    if registry is None:
        raise BookTypeConfigError(f"no registry given to resolve book type {book_type!r}")
    return registry.get(book_type, cfg.paragraph_end_markers)


def run_book(
    pages: Iterable[OcrPage],
    book_type: Union[str, BookTypeConfig],
    registry: Optional[BookTypeRegistry] = None,
    manifest: Optional[BookManifest] = None,
    cfg: Optional[StructureConfig] = None,
) -> BookResult:
    """Process a book's pages in order and return the assembled text.

    Parameters
    ----------
    pages : iterable of OcrPage
        Pages in book order.
    book_type : str or BookTypeConfig
        A book-type key (resolved through *registry* and compiled with
        ``cfg.paragraph_end_markers``) or an already compiled config.
    registry : BookTypeRegistry, optional
        Required when *book_type* is a key.
    manifest : BookManifest, optional
        Start/end markers and per-book misreading corrections.
    cfg : StructureConfig, optional
        Engine tunables.

    Returns
    -------
    BookResult

    Raises
    ------
    BookRunError
        Wrapping any configuration or header-sequence error, with the
        page on which it occurred.  No partial result is returned.
    """
    if cfg is None:
        cfg = StructureConfig()
    if manifest is None:
        manifest = BookManifest()
    type_name = book_type.name if isinstance(book_type, BookTypeConfig) else str(book_type)

    try:
        book_config = _resolve_book_config(book_type, registry, cfg)
    except BookTypeConfigError as exc:
        logger.error("run_book: cannot resolve book type %r: %s", type_name, exc)
        raise BookRunError(type_name, None, exc) from exc

    scan = ScanResults()
    result = BookResult(book_type=type_name, config=cfg)

    start_marker = manifest.text_before_first_chapter
    waiting_for_start = bool(start_marker) and not cfg.skip_start_marker
    end_reached = False

    for page in pages:
        idx = page.index
        if end_reached:
            result.pages.append(
                PageResult(page=idx, skip_reason=SkipReason.after_end_marker)
            )
            continue

        page_text = page.plain_text()
        if waiting_for_start:
            if contains_marker(page_text, start_marker):
                waiting_for_start = False
                reason = SkipReason.start_marker_page
                logger.info("Start marker found on page %d", idx)
            else:
                reason = SkipReason.before_start_marker
            result.pages.append(PageResult(page=idx, skip_reason=reason))
            continue

        if contains_marker(page_text, manifest.text_after_last_chapter):
            logger.info("End marker found on page %d; stopping", idx)
            end_reached = True
            result.pages.append(
                PageResult(page=idx, skip_reason=SkipReason.after_end_marker)
            )
            continue

        try:
            result.pages.append(process_page(page, book_config, scan, cfg, idx))
        except (BookTypeConfigError, HeaderSequenceError) as exc:
            logger.error("run_book %r: page %d failed: %s", type_name, idx, exc)
            raise BookRunError(type_name, idx, exc) from exc

    if waiting_for_start:
        logger.warning("Start marker %r never found; no pages processed", start_marker)

    text = scan.text_with_headers.value
    notes = scan.footnote_text.value
    total = 0
    if manifest.ocr_misreadings:
        text, n_text = apply_corrections(text, manifest.ocr_misreadings)
        notes, n_notes = apply_corrections(notes, manifest.ocr_misreadings)
        total += n_text + n_notes
    if cfg.apply_umlaut_corrections:
        text, n_text = fix_german_umlaut_errors(text)
        notes, n_notes = fix_german_umlaut_errors(notes)
        total += n_text + n_notes

    result.text_with_headers = text
    result.footnote_text = notes
    result.level_indices = dict(scan.level_indices)
    result.corrections = total

    logger.info(
        "run_book %r: %d/%d pages processed, %d headers, %d footnotes",
        type_name,
        len(result.processed_pages),
        len(result.pages),
        len(result.headers()),
        result.total_footnotes(),
    )
    return result
