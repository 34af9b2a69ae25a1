"""Post-run OCR misreading corrections.

Two sources: a built-in list of unambiguous German umlaut/sharp-s
misreadings, and per-book corrections from the book manifest.
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple

log = logging.getLogger(__name__)

Correction = Tuple["re.Pattern[str]", str]

_I = re.IGNORECASE


def _c(pattern: str, replacement: str, flags: int = _I) -> Correction:
    return (re.compile(pattern, flags), replacement)


# Only targets strings that are not valid German words.
UMLAUT_CORRECTIONS: List[Correction] = [
    # ö
    _c(r"\bEr[o0]ffn", "Eröffn"),
    _c(r"\bk[o0]nnen\b", "können"),
    _c(r"\bm[o0]glich", "möglich"),
    _c(r"\bf[o0]rder", "förder"),
    _c(r"\bg[o0]ttlich", "göttlich"),
    # ü, mostly "ii" read for "ü"
    _c(r"\bHinzufligungen\b", "Hinzufügungen"),
    _c(r"\bVerfligungen\b", "Verfügungen"),
    _c(r"\biiber\b", "über"),
    _c(r"\bfiir\b", "für"),
    _c(r"\bnatiirlich", "natürlich"),
    _c(r"\bspriiren\b", "spüren"),
    _c(r"\bmiissen\b", "müssen"),
    _c(r"\bwiirde\b", "würde"),
    _c(r"\bkiinstler", "künstler"),
    _c(r"\bzuriick", "zurück"),
    _c(r"\bRiickzug", "Rückzug"),
    _c(r"\bverfafit\b", "verfaßt"),
    _c(r"\bverfaflen\b", "verfaßten"),
    _c(r"\bverfafler\b", "verfaßter"),
    # ä
    _c(r"\berklaren\b", "erklären"),
    _c(r"\bregelmaBig\b", "regelmäßig", 0),
    _c(r"\blanger\b(?=\s+(?:als|werden|machen))", "länger"),
    # ß read as capital B; case-sensitive so "grobe" stays intact
    _c(r"\bgroBe\b", "große", 0),
    _c(r"\bweiB\b", "weiß", 0),
    _c(r"\bmuBte\b", "mußte", 0),
    _c(r"\bdaB\b", "daß", 0),
    _c(r"\bschlieBlich\b", "schließlich", 0),
    _c(r"\bgroBer\b", "größer", 0),
    _c(r"\bgroBte\b", "größte", 0),
    _c(r"\bheiBt\b", "heißt", 0),
    # I read as Z, e read as c
    _c(r"\bZdee\b", "Idee"),
    _c(r"\bSiche\b", "Siehe"),
    # generic "ii" runs inside words
    _c(r"\b([a-zA-Z]+)iii([a-zA-Z]+)\b", r"\1üi\2", 0),
    _c(r"\b([a-zA-Z]+)iie([a-zA-Z]+)\b", r"\1üe\2", 0),
    _c(r"\b([a-zA-Z]+)iien\b", r"\1üen", 0),
]


def apply_corrections(text: str, corrections: Sequence[Correction]) -> Tuple[str, int]:
    """Apply *corrections* in order; return ``(text, replacements_made)``."""
    total = 0
    for pattern, replacement in corrections:
        text, n = pattern.subn(replacement, text)
        total += n
    return text, total


def fix_german_umlaut_errors(text: str) -> Tuple[str, int]:
    corrected, n = apply_corrections(text, UMLAUT_CORRECTIONS)
    if n:
        log.info("Applied %d German umlaut corrections", n)
    return corrected, n


def compile_misreadings(pairs: Sequence[Tuple[str, str]]) -> List[Correction]:
    """Compile manifest misreadings; malformed patterns are logged and dropped.

    Patterns are regular expressions; plain words work as-is.
    """
    compiled: List[Correction] = []
    for pattern, replacement in pairs:
        try:
            compiled.append((re.compile(pattern), replacement))
        except re.error as exc:
            log.warning("Dropping malformed misreading pattern %r: %s", pattern, exc)
    return compiled
