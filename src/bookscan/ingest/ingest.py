"""Ingest stage: OCR record validation and loading.

Centralises reading of OCR page records (dicts or JSON files) so that the
page sequencer never touches the filesystem or raw JSON.

Public API
----------
- :func:`load_ocr_page`: build an :class:`OcrPage` from a dict or JSON file
- :func:`load_ocr_pages`: load every ``*.json`` page in a directory, in page order
- :func:`flatten_lines`: all lines of a page in reading order
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from ..models import OcrLine, OcrPage

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


class IngestError(Exception):
    """Raised when an OCR record cannot be ingested."""


def _validate_json_path(path: Path) -> None:
    """Raise :class:`IngestError` for missing / empty / wrong-extension files."""
    if not path.exists():
        raise IngestError(f"File not found: {path}")
    if not path.is_file():
        raise IngestError(f"Not a file: {path}")
    if path.stat().st_size == 0:
        raise IngestError(f"Empty file: {path}")
    if path.suffix.lower() != ".json":
        raise IngestError(f"Not a JSON file (suffix={path.suffix!r}): {path}")


def _natural_key(path: Path) -> list:
    """Sort key so that page_2.json precedes page_10.json."""
    return [int(tok) if tok.isdigit() else tok.lower() for tok in re.split(r"(\d+)", path.stem)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_ocr_page(
    source: Union[Mapping[str, Any], Path, str],
    index: Optional[int] = None,
) -> OcrPage:
    """Build an :class:`OcrPage` from a dict or a JSON file.

    Args:
        source: Parsed OCR record or path to a ``.json`` file holding one.
        index: Page index to assign; defaults to the record's ``index``.

    Raises:
        IngestError: When the file is unreadable or the record malformed.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        _validate_json_path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise IngestError(f"Cannot read {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise IngestError(f"Invalid JSON in {path}: {exc}") from exc
        origin = str(path)
    else:
        data = source
        origin = "<dict>"

    if not isinstance(data, Mapping):
        raise IngestError(f"OCR record must be an object: {origin}")
    if not isinstance(data.get("paragraphs", []), list):
        raise IngestError(f"'paragraphs' must be a list: {origin}")

    try:
        page = OcrPage.from_dict(data, index=index)
    except (KeyError, TypeError, ValueError) as exc:
        raise IngestError(f"Malformed OCR record {origin}: {exc}") from exc

    log.debug(
        "Loaded page %d from %s: %d paragraphs, %d lines",
        page.index,
        origin,
        len(page.paragraphs),
        len(page.flatten_lines()),
    )
    return page


def load_ocr_pages(directory: Union[Path, str]) -> List[OcrPage]:
    """Load every ``*.json`` OCR record in *directory*, in natural file order.

    Pages are re-indexed 0..n-1 in that order.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise IngestError(f"Not a directory: {directory}")
    files = sorted(directory.glob("*.json"), key=_natural_key)
    if not files:
        raise IngestError(f"No OCR records (*.json) in {directory}")
    pages = [load_ocr_page(p, index=i) for i, p in enumerate(files)]
    log.info("Ingested %d OCR pages from %s", len(pages), directory)
    return pages


def flatten_lines(page: OcrPage) -> List[OcrLine]:
    """All lines of *page*: paragraph order, then line order."""
    return page.flatten_lines()
