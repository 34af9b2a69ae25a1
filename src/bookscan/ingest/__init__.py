"""Ingest stage: OCR record validation and loading.

Public API
----------
- :func:`load_ocr_page`: build an :class:`~bookscan.models.OcrPage` from a dict or JSON file
- :func:`load_ocr_pages`: load a directory of page records in page order
- :func:`flatten_lines`: all lines of a page in reading order
- :class:`IngestError`: raised on validation failures
"""

from .ingest import IngestError, flatten_lines, load_ocr_page, load_ocr_pages

__all__ = [
    "IngestError",
    "flatten_lines",
    "load_ocr_page",
    "load_ocr_pages",
]
