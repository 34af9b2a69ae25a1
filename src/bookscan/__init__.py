"""Structural recovery of headings, paragraphs and footnotes from book OCR.

Frequently-used symbols are re-exported here for convenience.
For specialised imports (placeholder fragments, superscript scans,
report builders, etc.) import directly from the relevant submodule,
e.g.::

    from bookscan.footnotes.markers import scan_superscripts
    from bookscan.headers.placeholders import Placeholder
"""

# ── Core models & config ──────────────────────────────────────────────

from .booktypes import (
    BookManifest,
    BookTypeConfig,
    BookTypeRegistry,
    load_book_manifest,
    parse_book_type,
)
from .config import (
    BookTypeConfigError,
    ConfigValidationError,
    SequencePolicy,
    StructureConfig,
)
from .export import draw_roles_overlay, render_markdown, write_book_outputs
from .headers import HeaderSequenceError, detect_header
from .ingest import IngestError, load_ocr_page, load_ocr_pages
from .layout import analyze_page_metrics, classify_line
from .models import LineRole, OcrPage, PageMetrics, ScanResults
from .pipeline import BookResult, BookRunError, PageResult, process_page, run_book
