"""Quality heuristic for natively extracted text.

A score from 0 to 100 estimating whether the text layer of a PDF is usable or
whether the document has to go through OCR. Starts at 100 and subtracts a
fixed penalty for each symptom of a broken or missing text layer.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass, field

# Letters (any script), digits and whitespace are standard; so is this set.
_STANDARD_PUNCTUATION = set(string.punctuation) | set("¿¡«»ºª°€£·–—‘’“”…")
_TOKEN_STRIP = string.punctuation + "¿¡«»“”‘’…"
_STRUCTURE_RE = re.compile(r"[.,;:]")
_REPEAT_RE = re.compile(r"(\S)\1{4,}")


@dataclass
class QualityWeights:
    """Penalties and limits used by :func:`score_text`."""

    min_length: int = 100
    short_text_penalty: int = 40
    min_word_ratio: float = 0.6
    word_ratio_penalty: int = 30
    max_nonstandard_ratio: float = 0.05
    nonstandard_penalty: int = 25
    structure_penalty: int = 20
    repetition_penalty: int = 15


@dataclass
class QualityReport:
    score: int
    reasons: list[str] = field(default_factory=list)


def is_standard_char(ch: str) -> bool:
    return ch.isalnum() or ch.isspace() or ch in _STANDARD_PUNCTUATION


def normal_word_ratio(text: str) -> float:
    """Share of tokens that are alphabetic words of three or more letters."""
    tokens = text.split()
    if not tokens:
        return 0.0
    words = [t.strip(_TOKEN_STRIP) for t in tokens]
    normal = sum(1 for w in words if len(w) >= 3 and w.isalpha())
    return normal / len(tokens)


def nonstandard_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for ch in text if not is_standard_char(ch)) / len(text)


def score_text(text: str, weights: QualityWeights | None = None) -> QualityReport:
    """Score *text* from 0 (unusable) to 100 (clean prose)."""
    w = weights or QualityWeights()
    score = 100
    reasons: list[str] = []

    if len(text) < w.min_length:
        score -= w.short_text_penalty
        reasons.append("short")
    if normal_word_ratio(text) < w.min_word_ratio:
        score -= w.word_ratio_penalty
        reasons.append("few_words")
    if nonstandard_ratio(text) > w.max_nonstandard_ratio:
        score -= w.nonstandard_penalty
        reasons.append("nonstandard_chars")
    if not _STRUCTURE_RE.search(text) or " " not in text:
        score -= w.structure_penalty
        reasons.append("no_structure")
    if _REPEAT_RE.search(text):
        score -= w.repetition_penalty
        reasons.append("repetition")

    return QualityReport(score=max(0, score), reasons=reasons)
