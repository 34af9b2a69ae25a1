"""Header recognition via placeholder patterns.

Public API
----------
- :func:`compile_header_pattern` / :func:`match_header_pattern`
- :func:`detect_header`: level 1..3 heading detection incl. multi-line headings
- :func:`extract_ordinal_value`: roman / decimal / German ordinal
- :func:`validate_header_sequence`: ordinal gap check per level
"""

from .matcher import (
    CompiledHeaderPattern,
    HeaderSequenceError,
    UnknownPlaceholderError,
    compile_header_pattern,
    detect_header,
    extract_ordinal_value,
    match_header_pattern,
    validate_header_sequence,
)
from .placeholders import Placeholder

__all__ = [
    "CompiledHeaderPattern",
    "HeaderSequenceError",
    "Placeholder",
    "UnknownPlaceholderError",
    "compile_header_pattern",
    "detect_header",
    "extract_ordinal_value",
    "match_header_pattern",
    "validate_header_sequence",
]
