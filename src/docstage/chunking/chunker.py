"""Deterministic fixed-window chunker for normalized document text."""

from __future__ import annotations

import re

import structlog

from docstage.config import ChunkingCfg
from docstage.db.models import DocumentChunk
from docstage.errors import ChunkingError

log = structlog.get_logger(__name__)

FIXED_SIZE = "fixed-size"
STRATEGIES = (FIXED_SIZE, "semantic", "paragraph", "section")

_TABLE_CUES = ("tabla", "cuadro", "table")
_LIST_RE = re.compile(r"•|(?:^|\n)[ \t]*(?:[-*]\s|\d+[.)]\s|[a-z]\)\s)")
_SUMMARY_CUES = ("resumen", "conclusión", "conclusion", "summary")
_TERMINATOR_RE = re.compile(r"[.!?]+")
_CHUNK_STANDARD_PUNCTUATION = set(".,;:!?()-")


def chunk_type(content: str, start: int, total_length: int) -> str:
    """Classify a chunk by position first, then by lexical cues."""
    if start == 0:
        return "header"
    if start > total_length * 0.9:
        return "conclusion"
    lower = content.lower()
    if any(cue in lower for cue in _TABLE_CUES):
        return "table"
    if _LIST_RE.search(lower):
        return "list"
    if any(cue in lower for cue in _SUMMARY_CUES):
        return "summary"
    return "content"


def quality_score(content: str) -> float:
    score = 0.5
    if 100 <= len(content) <= 1200:
        score += 0.2
    if len(_TERMINATOR_RE.findall(content)) > 1:
        score += 0.1
    if "\n\n" in content:
        score += 0.1
    special = sum(
        1
        for ch in content
        if not (ch.isalnum() or ch.isspace() or ch in _CHUNK_STANDARD_PUNCTUATION)
    )
    if content and special / len(content) > 0.1:
        score -= 0.1
    return round(max(0.1, min(1.0, score)), 3)


def page_numbers(start: int, end: int, chars_per_page: int) -> list[int]:
    first = start // chars_per_page + 1
    last = max(start, end - 1) // chars_per_page + 1
    return list(range(first, last + 1))


class TextChunker:
    """Split normalized text into ordered, positioned, typed chunks.

    Only ``fixed-size`` windows are implemented; the other strategy names are
    accepted and fall back to it. With ``overlap == 0`` the chunks are
    contiguous and their concatenation reproduces the input exactly.
    Whitespace-only windows are folded into the previous chunk, or into the
    next one when they lead the text.
    """

    def __init__(self, cfg: ChunkingCfg | None = None) -> None:
        self._cfg = cfg or ChunkingCfg()

    @property
    def method(self) -> str:
        return self._cfg.strategy if self._cfg.strategy in STRATEGIES else FIXED_SIZE

    def chunk(self, document_id: str, text: str) -> list[DocumentChunk]:
        """Chunk *text* for *document_id*.

        Raises:
            ChunkingError: *text* is empty or the chunk size is not positive.
        """
        size = self._cfg.chunk_size
        if size <= 0:
            raise ChunkingError(f"chunk_size must be positive, got {size}")
        if not text or not text.strip():
            raise ChunkingError("Cannot chunk empty text")
        if self.method != FIXED_SIZE:
            log.debug("chunking strategy falls back to fixed-size", strategy=self.method)

        spans = self._fixed_windows(text, size, self._cfg.overlap)
        total = len(text)
        chunks = [
            DocumentChunk(
                document_id=document_id,
                chunk_number=number,
                chunk_type=chunk_type(text[start:end], start, total),
                content=text[start:end],
                start_offset=start,
                end_offset=end,
                page_numbers=page_numbers(start, end, self._cfg.chars_per_page),
                quality_score=quality_score(text[start:end]),
                chunking_method=self.method,
            )
            for number, (start, end) in enumerate(spans, start=1)
        ]
        log.info("text chunked", document_id=document_id, chunks=len(chunks), chars=total)
        return chunks

    def _fixed_windows(self, text: str, size: int, overlap: int) -> list[tuple[int, int]]:
        limit = len(text)
        if self._cfg.max_chunks:
            limit = min(limit, self._cfg.max_chunks * size)
        step = max(1, size - overlap)

        spans: list[list[int]] = []
        pending_start: int | None = None
        for start in range(0, limit, step):
            end = min(start + size, limit)
            if not text[start:end].strip():
                if spans:
                    spans[-1][1] = end
                elif pending_start is None:
                    pending_start = start
                continue
            if pending_start is not None:
                start, pending_start = pending_start, None
            spans.append([start, end])
            if end >= limit or len(spans) == self._cfg.max_chunks:
                break
        return [(s, e) for s, e in spans]
