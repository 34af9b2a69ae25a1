from .markers import (
    SuperscriptHit,
    detect_footnote_start,
    scan_superscripts,
    split_references_and_starts,
)

__all__ = [
    "SuperscriptHit",
    "detect_footnote_start",
    "scan_superscripts",
    "split_references_and_starts",
]
