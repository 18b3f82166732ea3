"""Basic metadata for documents without a type-specific strategy."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from docstage.metadata.validators import validate_date

EXTRACTION_METHOD = "basic"
BASIC_CONFIDENCE = 0.3

_DATE_PATTERNS = (
    re.compile(
        r"\b\d{1,2}\s+de\s+(?:enero|febrero|marzo|abril|mayo|junio|julio|agosto|"
        r"septiembre|setiembre|octubre|noviembre|diciembre)\s+(?:de|del)\s+\d{4}\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b\d{1,2}[/.-]\d{1,2}[/.-]\d{4}\b"),
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b"),
)

_SPANISH_WORDS = frozenset(
    "de la que el en los del se las por un para con una su al es lo como pero sus".split()
)
_ENGLISH_WORDS = frozenset(
    "the of and to in is that for it with as was on be by this are from at".split()
)


def title_from_filename(filename: str) -> str:
    stem = Path(filename).stem
    return re.sub(r"\s+", " ", re.sub(r"[_\-.]+", " ", stem)).strip() or filename


def detect_language(text: str) -> str | None:
    """Return ``es`` or ``en`` by stop-word counts, None when there is no signal."""
    words = re.findall(r"[a-záéíóúñü]+", text.lower())
    spanish = sum(1 for w in words if w in _SPANISH_WORDS)
    english = sum(1 for w in words if w in _ENGLISH_WORDS)
    if spanish == english == 0:
        return None
    return "es" if spanish >= english else "en"


def first_date(text: str) -> str | None:
    """Return the earliest-positioned date in *text* as ISO, if any parses."""
    matches = [m for pattern in _DATE_PATTERNS for m in pattern.finditer(text)]
    for m in sorted(matches, key=lambda m: m.start()):
        iso = validate_date(m.group(0))
        if iso:
            return iso
    return None


def basic_metadata(filename: str, text: str, page_count: int) -> dict[str, Any]:
    return {
        "title": title_from_filename(filename),
        "page_count": page_count,
        "text_length": len(text),
        "word_count": len(text.split()),
        "language": detect_language(text),
        "document_date": first_date(text),
    }
