"""Output rendering and run reports for book runs.

* :func:`render_markdown`: the final book text with a footnote section
* :func:`generate_json_report` / :func:`generate_html_report`: run summaries
* :func:`write_book_outputs`: write all of the above next to each other
"""

from __future__ import annotations

import html
import json
import re
from datetime import datetime
from pathlib import Path
from string import Template
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..config import StructureConfig

if TYPE_CHECKING:
    from ..pipeline import BookResult, PageResult

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def _esc(s: str) -> str:
    return html.escape(str(s), quote=True)


# ── Markdown ───────────────────────────────────────────────────────────


def render_markdown(book_result: "BookResult", cfg: Optional[StructureConfig] = None) -> str:
    """Join body text and footnotes into one Markdown document.

    Runs of blank lines are collapsed to one.  The footnote section is
    omitted when the book has no footnotes.
    """
    if cfg is None:
        cfg = book_result.config or StructureConfig()
    body = _EXCESS_NEWLINES.sub("\n\n", book_result.text_with_headers).strip()
    notes = _EXCESS_NEWLINES.sub("\n\n", book_result.footnote_text).strip()
    if not notes:
        return body + "\n"
    return f"{body}\n\n{cfg.footnote_heading}\n\n{notes}\n"


# ── HTML templates ─────────────────────────────────────────────────────

_BASE_TEMPLATE = Template(
    """\
<!DOCTYPE html>
<html lang="de">
<head>
<meta charset="utf-8">
<title>$title</title>
<style>
  body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
         margin: 2em; background: #f9f9f9; color: #333; }
  h1 { color: #1a5276; border-bottom: 2px solid #1a5276; padding-bottom: .3em; }
  h2 { color: #2c3e50; margin-top: 1.5em; }
  table { border-collapse: collapse; width: 100%; margin: .5em 0 1.5em; }
  th, td { border: 1px solid #ccc; padding: 6px 10px; text-align: left; }
  th { background: #2c3e50; color: #fff; font-weight: 600; }
  tr:nth-child(even) { background: #f0f0f0; }
  .summary-box { display: inline-block; padding: .5em 1.5em; margin: .3em;
                  border-radius: 6px; text-align: center; }
  .summary-box h3 { margin: 0; font-size: 2em; }
  .summary-box p { margin: .2em 0 0; font-size: .9em; }
  .sb-pages { background: #d5e8d4; border: 1px solid #82b366; }
  .sb-headers { background: #d1ecf1; border: 1px solid #3498db; }
  .sb-notes { background: #fff3cd; border: 1px solid #f39c12; }
</style>
</head>
<body>
<h1>$title</h1>
<p><strong>Book type:</strong> $book_type &nbsp;|&nbsp;
   <strong>Generated:</strong> $timestamp &nbsp;|&nbsp;
   <strong>Corrections:</strong> $corrections</p>

<div>
  <div class="summary-box sb-pages"><h3>$processed_count / $page_count</h3><p>Pages</p></div>
  <div class="summary-box sb-headers"><h3>$header_count</h3><p>Headers</p></div>
  <div class="summary-box sb-notes"><h3>$footnote_count</h3><p>Footnotes</p></div>
</div>

$headers_section
$page_details_section
</body></html>"""
)

_HEADER_ROW = Template("<tr><td>$page</td><td>$level</td><td>$text</td></tr>")

_PAGE_ROW = Template(
    "<tr><td>$page</td><td>$status</td><td>$ranges</td>"
    "<td>$headers</td><td>$footnotes</td><td>$duration_ms ms</td></tr>"
)


# ── Section builders ──────────────────────────────────────────────────


def _build_headers_section(pages: Sequence["PageResult"]) -> str:
    """Build the detected-headers table HTML."""
    rows: List[str] = []
    for pr in pages:
        for level, text in pr.headers:
            rows.append(_HEADER_ROW.substitute(page=pr.page, level=level, text=_esc(text)))
    if not rows:
        return "<h2>Headers</h2><p>No headers detected.</p>"
    header = "<h2>Headers</h2>\n<table><tr><th>Page</th><th>Level</th><th>Text</th></tr>"
    return header + "\n".join(rows) + "\n</table>"


def _build_page_details_section(pages: Sequence["PageResult"]) -> str:
    """Build the per-page table with metrics ranges and timings."""
    rows: List[str] = []
    for pr in pages:
        if pr.processed:
            status = "processed"
        elif pr.skip_reason is not None:
            status = f"skipped ({pr.skip_reason.value})"
        else:
            status = "skipped"
        ranges = ", ".join(
            f"{_esc(name)} [{rr.min_x0:.0f}&ndash;{rr.max_x0:.0f}]"
            for name, rr in pr.page_metrics.ranges.items()
        )
        rows.append(
            _PAGE_ROW.substitute(
                page=pr.page,
                status=_esc(status),
                ranges=ranges or "&mdash;",
                headers=len(pr.headers),
                footnotes=pr.footnotes,
                duration_ms=sum(sr.duration_ms for sr in pr.stages.values()),
            )
        )
    header = (
        "<h2>Per-Page Details</h2>\n<table><tr><th>Page</th><th>Status</th>"
        "<th>Layout ranges</th><th>Headers</th><th>Footnotes</th><th>Duration</th></tr>"
    )
    return header + "\n".join(rows) + "\n</table>"


# ── Public API ─────────────────────────────────────────────────────────


def generate_html_report(
    book_result: "BookResult",
    *,
    output_path: Optional[Path] = None,
    title: str = "Book Structure Report",
) -> str:
    """Generate an HTML summary report from a BookResult.

    Parameters
    ----------
    book_result : BookResult
        The result from :func:`~bookscan.pipeline.run_book`.
    output_path : Path, optional
        If given, the HTML is also written to this file.
    title : str
        Report title shown in the header.

    Returns
    -------
    str
        The HTML report as a string.
    """
    pages = book_result.pages
    report_html = _BASE_TEMPLATE.substitute(
        title=_esc(title),
        book_type=_esc(book_result.book_type),
        timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        corrections=book_result.corrections,
        processed_count=len(book_result.processed_pages),
        page_count=len(pages),
        header_count=len(book_result.headers()),
        footnote_count=book_result.total_footnotes(),
        headers_section=_build_headers_section(pages),
        page_details_section=_build_page_details_section(pages),
    )
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report_html, encoding="utf-8")
    return report_html


def generate_json_report(
    book_result: "BookResult",
    *,
    output_path: Optional[Path] = None,
) -> str:
    """Generate a JSON summary report from a BookResult."""
    report = book_result.to_summary_dict()
    report["generated"] = datetime.now().isoformat(timespec="seconds")
    text = json.dumps(report, indent=2, ensure_ascii=False)
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
    return text


def write_book_outputs(
    book_result: "BookResult",
    out_dir: Path,
    stem: str = "book",
    cfg: Optional[StructureConfig] = None,
) -> Dict[str, Path]:
    """Write ``<stem>.md``, ``<stem>.summary.json`` and ``<stem>.report.html``.

    Returns a mapping of output kind to written path.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "markdown": out_dir / f"{stem}.md",
        "summary": out_dir / f"{stem}.summary.json",
        "report": out_dir / f"{stem}.report.html",
    }
    paths["markdown"].write_text(render_markdown(book_result, cfg), encoding="utf-8")
    generate_json_report(book_result, output_path=paths["summary"])
    generate_html_report(book_result, output_path=paths["report"])
    return paths
