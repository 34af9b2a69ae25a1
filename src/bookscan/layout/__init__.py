"""Page layout analysis: x0 clustering and line role classification."""

from .classify import classify_line, is_line_centered
from .page_metrics import analyze_page_metrics, cluster_x0_values

__all__ = [
    "analyze_page_metrics",
    "classify_line",
    "cluster_x0_values",
    "is_line_centered",
]
