from .assembly import concatenate_text, join_line, parse_footnote_start
from .cleanup import apply_text_removal_patterns, normalize_text, remove_ocr_garbage
from .corrections import fix_german_umlaut_errors

__all__ = [
    "apply_text_removal_patterns",
    "concatenate_text",
    "fix_german_umlaut_errors",
    "join_line",
    "normalize_text",
    "parse_footnote_start",
    "remove_ocr_garbage",
]
