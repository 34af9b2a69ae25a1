"""Page metrics: infer column roles from the x0 distribution of a page's lines.

The page's left edges are clustered greedily; the most populated cluster
is body text and the book type's configured offsets (relative to that
cluster) pick out paragraph indents, footnotes and quotes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from statistics import mean
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Set, Tuple

from ..config import BookTypeConfigError, StructureConfig
from ..models import LineRole, OcrLine, PageMetrics, RoleRange

if TYPE_CHECKING:
    from ..booktypes import BookTypeConfig

log = logging.getLogger(__name__)

# Roles matched against the body-text cluster, in priority order.
OFFSET_ROLES: Tuple[LineRole, ...] = (
    LineRole.paragraph_start,
    LineRole.footnote_text,
    LineRole.footnote_start,
    LineRole.quote_text,
)


@dataclass
class X0Cluster:
    """Lines whose left edges lie close together."""

    x0s: List[float] = field(default_factory=list)
    widths: List[float] = field(default_factory=list)
    average: float = 0.0

    def add(self, x0: float, width: float) -> None:
        self.x0s.append(x0)
        self.widths.append(width)
        self.average = mean(self.x0s)

    @property
    def count(self) -> int:
        return len(self.x0s)

    @property
    def min_x0(self) -> float:
        return min(self.x0s)

    @property
    def max_x0(self) -> float:
        return max(self.x0s)

    @property
    def average_width(self) -> float:
        return mean(self.widths) if self.widths else 0.0

    @property
    def max_width(self) -> float:
        return max(self.widths) if self.widths else 0.0

    def to_range(self, name: str, role: LineRole) -> RoleRange:
        return RoleRange(
            name=name,
            role=role,
            min_x0=self.min_x0,
            max_x0=self.max_x0,
            average_x0=self.average,
            average_width=self.average_width,
            max_width=self.max_width,
            count=self.count,
        )


def line_geometry(lines: Iterable[OcrLine]) -> List[Tuple[float, float]]:
    """``(x0, width)`` of every line with a usable bbox, sorted by x0."""
    pairs = [(ln.bbox.x0, ln.bbox.width()) for ln in lines if ln.bbox is not None]
    pairs.sort(key=lambda p: p[0])
    return pairs


def cluster_x0_values(
    pairs: Sequence[Tuple[float, float]], tolerance: float = 7.0
) -> List[X0Cluster]:
    """Greedy single-pass clustering of ``(x0, width)`` pairs.

    Each value joins the first cluster whose running average lies within
    *tolerance*; otherwise it starts a new cluster.  Input should be
    sorted by x0.  Clusters are returned ordered by average x0.
    """
    clusters: List[X0Cluster] = []
    for x0, width in pairs:
        for cl in clusters:
            if abs(x0 - cl.average) <= tolerance:
                cl.add(x0, width)
                break
        else:
            cl = X0Cluster()
            cl.add(x0, width)
            clusters.append(cl)
    clusters.sort(key=lambda c: c.average)
    return clusters


def _nearest_unclaimed(
    clusters: Sequence[X0Cluster], claimed: Set[int], expected: float, tolerance: float
) -> Optional[int]:
    best: Optional[int] = None
    best_dist = float("inf")
    for i, cl in enumerate(clusters):
        if i in claimed:
            continue
        dist = abs(cl.average - expected)
        if dist <= tolerance and dist < best_dist:
            best, best_dist = i, dist
    return best


def assign_roles(
    clusters: Sequence[X0Cluster],
    book_config: "BookTypeConfig",
    cfg: StructureConfig,
) -> PageMetrics:
    """Turn clusters into a :class:`PageMetrics` using the book type's offsets."""
    metrics = PageMetrics()
    if not clusters:
        return metrics
    if book_config.metrics is None:
        raise BookTypeConfigError(
            f"book type {book_config.name!r} has no metrics configuration"
        )

    # Largest cluster is body text; ties go to the leftmost.
    body_idx = 0
    for i, cl in enumerate(clusters):
        if cl.count > clusters[body_idx].count:
            body_idx = i
    body = clusters[body_idx]
    metrics.add(body.to_range(LineRole.paragraph_text.value, LineRole.paragraph_text))
    claimed = {body_idx}

    for role in OFFSET_ROLES:
        offset = book_config.metrics.get(role)
        if offset is None:
            continue
        tolerance = (
            offset.tolerance if offset.tolerance is not None else cfg.default_role_tolerance
        )
        expected = body.average + offset.expected_offset
        idx = _nearest_unclaimed(clusters, claimed, expected, tolerance)
        if idx is None:
            log.debug("No cluster near x0=%.1f for %s", expected, role.value)
            continue
        metrics.add(clusters[idx].to_range(role.value, role))
        claimed.add(idx)

    n_unknown = 0
    for i, cl in enumerate(clusters):
        if i in claimed:
            continue
        n_unknown += 1
        metrics.add(cl.to_range(f"unknown-{n_unknown}", LineRole.unknown))
    return metrics


def analyze_page_metrics(
    lines: Iterable[OcrLine],
    book_config: "BookTypeConfig",
    cfg: Optional[StructureConfig] = None,
) -> PageMetrics:
    """Cluster a page's line x0 values and assign layout roles.

    Parameters
    ----------
    lines : iterable of OcrLine
        All lines of the page in reading order.
    book_config : BookTypeConfig
        Supplies role offsets relative to the body-text cluster.
    cfg : StructureConfig, optional
        Clustering tolerance and default role tolerance.

    Returns
    -------
    PageMetrics
        Empty when no line carries a usable bbox.

    Raises
    ------
    BookTypeConfigError
        If the book type has no metrics configuration at all.
    """
    if cfg is None:
        cfg = StructureConfig()
    if book_config.metrics is None:
        log.error("Book type %r lacks metrics configuration", book_config.name)
        raise BookTypeConfigError(
            f"book type {book_config.name!r} has no metrics configuration"
        )
    pairs = line_geometry(lines)
    if not pairs:
        log.warning("No line bounding boxes available for page metrics")
        return PageMetrics()

    clusters = cluster_x0_values(pairs, cfg.cluster_tolerance)
    metrics = assign_roles(clusters, book_config, cfg)
    log.debug(
        "Page metrics: %d lines -> %s",
        len(pairs),
        ", ".join(f"{n}@{rr.average_x0:.0f}" for n, rr in metrics.ranges.items()),
    )
    return metrics
