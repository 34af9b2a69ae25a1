from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class ConfigValidationError(ValueError):
    """Raised when a StructureConfig field has an invalid value."""


class BookTypeConfigError(ValueError):
    """Raised when a book-type definition is missing, malformed, or unusable."""


class SequencePolicy(str, Enum):
    """What to do when a header ordinal breaks the running sequence."""

    strict = "strict"
    skip = "skip"


def _check_range(
    name: str, value: float, lo: float, hi: float, *, inclusive: bool = True
) -> None:
    if inclusive:
        if not (lo <= value <= hi):
            raise ConfigValidationError(f"{name}={value} out of range [{lo}, {hi}]")
    else:
        if not (lo < value < hi):
            raise ConfigValidationError(f"{name}={value} out of range ({lo}, {hi})")


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name}={value} must be > 0")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


# Sentence endings that close a paragraph.  German guillemet quotes close
# after the punctuation mark.
DEFAULT_PARAGRAPH_END_MARKERS: Tuple[str, ...] = (".", "!", "?", ".»", "!»", "?»")


@dataclass
class StructureConfig:
    """Tunables for structural recovery of OCR book pages."""

    # ── Page metrics clustering ────────────────────────────────────────
    # Max distance (px) between a line's x0 and a cluster's running average.
    cluster_tolerance: float = 7.0
    # Tolerance (px) used for a role whose book-type metrics omit one.
    default_role_tolerance: float = 15.0

    # ── Centering (multi-line headers) ─────────────────────────────────
    # OCR page width in px (A4 at 300 DPI).  Pages carrying their own
    # width override this.
    page_width: float = 2480.0
    # Max distance (px) between line midpoint and page center.
    centering_tolerance: float = 100.0
    # Centered lines may use at most this fraction of the widest body line.
    centered_line_width_factor: float = 0.9

    # ── Footnote superscripts ──────────────────────────────────────────
    # A marker symbol must be shorter than this fraction of the line height.
    superscript_height_ratio: float = 0.7
    # ...and end at least this many px above the symbol baseline.
    superscript_vertical_offset: float = 5.0

    # ── Text assembly ──────────────────────────────────────────────────
    paragraph_end_markers: Tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_PARAGRAPH_END_MARKERS
    )
    # Format of the in-text reference that replaces a footnote number.
    footnote_marker_format: str = "[{ref}]"
    # Heading emitted above the collected footnotes when rendering.
    footnote_heading: str = "# FUSSNOTEN"

    # ── Header sequence ────────────────────────────────────────────────
    # "strict" aborts on an out-of-sequence ordinal, "skip" demotes the
    # line to body text.
    sequence_policy: SequencePolicy = SequencePolicy.strict

    # ── Book run ───────────────────────────────────────────────────────
    # Process from the first page even when a start marker is configured.
    skip_start_marker: bool = False
    # Apply the built-in German umlaut corrections to the final text.
    apply_umlaut_corrections: bool = True

    def __post_init__(self) -> None:
        """Validate field ranges to catch misconfiguration early."""
        # -- Unit-range fractions --
        for name in ("centered_line_width_factor", "superscript_height_ratio"):
            _check_range(name, getattr(self, name), 0.0, 1.0, inclusive=False)

        # -- Strictly positive floats --
        for name in ("cluster_tolerance", "default_role_tolerance", "page_width"):
            _check_positive(name, getattr(self, name))

        # -- Non-negative floats --
        for name in ("centering_tolerance", "superscript_vertical_offset"):
            _check_non_negative(name, getattr(self, name))

        if not self.paragraph_end_markers:
            raise ConfigValidationError("paragraph_end_markers must not be empty")
        self.paragraph_end_markers = tuple(self.paragraph_end_markers)

        if "{ref}" not in self.footnote_marker_format:
            raise ConfigValidationError(
                f"footnote_marker_format={self.footnote_marker_format!r} "
                "must contain '{ref}'"
            )

        try:
            self.sequence_policy = SequencePolicy(self.sequence_policy)
        except ValueError:
            raise ConfigValidationError(
                f"sequence_policy={self.sequence_policy!r} must be one of "
                f"{[p.value for p in SequencePolicy]}"
            ) from None

    def format_reference(self, ref: str) -> str:
        """Render the in-text footnote reference for *ref*."""
        return self.footnote_marker_format.format(ref=ref)
