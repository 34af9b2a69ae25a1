from .overlay import draw_roles_overlay
from .report import (
    generate_html_report,
    generate_json_report,
    render_markdown,
    write_book_outputs,
)

__all__ = [
    "draw_roles_overlay",
    "generate_html_report",
    "generate_json_report",
    "render_markdown",
    "write_book_outputs",
]
