from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..config import StructureConfig
from ..footnotes.markers import detect_footnote_start
from ..models import LineRole, OcrLine, PageMetrics

log = logging.getLogger(__name__)


def is_line_centered(
    line: OcrLine,
    page_metrics: PageMetrics,
    cfg: StructureConfig,
    page_width: Optional[float] = None,
) -> bool:
    """True if *line* sits on the page's vertical axis and is narrower than body text.

    The line midpoint must lie within ``cfg.centering_tolerance`` of the
    page center.  When the page has a ``paragraph-text`` range the line
    may also be at most ``centered_line_width_factor`` of its widest line.
    """
    if line.bbox is None:
        return False
    width = page_width or cfg.page_width
    if abs(line.bbox.center_x() - width / 2.0) > cfg.centering_tolerance:
        return False
    body = page_metrics.paragraph_text
    if body is None or not body.max_width:
        return True
    return line.bbox.width() <= body.max_width * cfg.centered_line_width_factor


def classify_line(
    line: OcrLine,
    page_metrics: PageMetrics,
    cfg: Optional[StructureConfig] = None,
) -> Tuple[LineRole, str]:
    """Return ``(role, range_name)`` for *line*.

    A superscript footnote marker on the first word wins over geometry;
    otherwise the first page-metrics range containing the line's x0
    decides.  Lines that fit no range default to paragraph text.
    """
    if cfg is None:
        cfg = StructureConfig()
    if detect_footnote_start(line, cfg) is not None:
        return LineRole.footnote_start, LineRole.footnote_start.value
    if line.bbox is None:
        log.warning("Line %r has no bounding box, defaulting to paragraph-text", line.text[:40])
        return LineRole.paragraph_text, LineRole.paragraph_text.value
    rr = page_metrics.lookup(line.bbox.x0)
    if rr is None:
        log.debug("x0=%.1f outside all ranges, defaulting to paragraph-text", line.bbox.x0)
        return LineRole.paragraph_text, LineRole.paragraph_text.value
    return rr.role, rr.name
