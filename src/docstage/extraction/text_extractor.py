"""Text extraction: native PDF text layer via pypdf, batched OCR fallback."""

from __future__ import annotations

import io
import re
import threading
from dataclasses import dataclass, field

import pypdf
import structlog

from docstage.config import ExtractionCfg
from docstage.errors import (
    ExtractionError,
    ObjectNotFoundError,
    PipelineCancelled,
    ServiceError,
    TransientServiceError,
    UnsupportedFormatError,
    describe,
)
from docstage.extraction.quality import QualityWeights, score_text
from docstage.ocr import OcrPage
from docstage.retry import RetryPolicy

log = structlog.get_logger(__name__)

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset({"application/pdf", "application/x-pdf"})

NATIVE = "native"
OCR = "ocr"


@dataclass
class ExtractionResult:
    text: str
    page_count: int
    method: str
    quality_score: int
    ocr_errors: list[str] = field(default_factory=list)

    @property
    def text_length(self) -> int:
        return len(self.text)


def normalize_text(text: str) -> str:
    """Unify line endings, strip trailing whitespace, collapse blank runs, trim."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def join_ocr_pages(pages: list[OcrPage]) -> str:
    """Join recognised pages with an explicit ``--- Page N ---`` delimiter."""
    return "\n\n".join(f"--- Page {p.page_number} ---\n{p.text}" for p in pages)


class TextExtractor:
    """Obtain normalized text for a stored binary document.

    Native extraction is tried first. When its quality score falls below the
    configured threshold, pages are sent to the OCR service in fixed-size
    batches until a batch comes back empty or the page limit is reached.

    Args:
        store:   Object store with ``get(reference) -> bytes``.
        ocr:     OCR service with ``recognize(data, first_page, last_page)``.
        cfg:     Thresholds, batch size and page limit.
        retry:   Retry policy applied to storage reads and OCR batches.
        weights: Quality heuristic penalties.
    """

    def __init__(
        self,
        store,
        ocr,
        cfg: ExtractionCfg | None = None,
        retry: RetryPolicy | None = None,
        weights: QualityWeights | None = None,
    ) -> None:
        self._store = store
        self._ocr = ocr
        self._cfg = cfg or ExtractionCfg()
        self._retry = retry or RetryPolicy()
        self._weights = weights or QualityWeights()

    def extract(
        self,
        reference: str,
        mime_type: str,
        cancel: threading.Event | None = None,
    ) -> ExtractionResult:
        """Extract text from the object stored at *reference*.

        Raises:
            UnsupportedFormatError: *mime_type* is not a supported document format.
            ExtractionError: The object cannot be read, or OCR recovered no pages.
            PipelineCancelled: *cancel* was set between OCR batches.
        """
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise UnsupportedFormatError(f"Unsupported mime type {mime_type!r}")

        try:
            data = self._retry.call(self._store.get, reference, operation="storage.get")
        except (ObjectNotFoundError, TransientServiceError, OSError) as exc:
            raise ExtractionError(f"Cannot read {reference!r}: {describe(exc)}") from exc

        native_text, native_pages = _native_text(data)
        report = score_text(native_text, self._weights)
        log.info(
            "native extraction scored",
            reference=reference,
            pages=native_pages,
            chars=len(native_text),
            score=report.score,
            reasons=report.reasons,
        )
        if report.score >= self._cfg.quality_threshold:
            return ExtractionResult(
                text=normalize_text(native_text),
                page_count=native_pages,
                method=NATIVE,
                quality_score=report.score,
            )

        pages, errors, last_seen = self._run_ocr(data, cancel)
        if not pages:
            detail = "; ".join(errors) if errors else "no pages returned"
            raise ExtractionError(f"OCR recovered no pages ({detail})")

        return ExtractionResult(
            text=normalize_text(join_ocr_pages(pages)),
            page_count=max(native_pages, last_seen),
            method=OCR,
            quality_score=report.score,
            ocr_errors=errors,
        )

    def _run_ocr(
        self, data: bytes, cancel: threading.Event | None
    ) -> tuple[list[OcrPage], list[str], int]:
        cfg = self._cfg
        recovered: list[OcrPage] = []
        errors: list[str] = []
        last_seen = 0
        consecutive_errors = 0
        first = 1

        while first <= cfg.ocr_page_limit:
            if cancel is not None and cancel.is_set():
                raise PipelineCancelled(f"Cancelled before OCR of page {first}")
            last = min(first + cfg.ocr_batch_size - 1, cfg.ocr_page_limit)

            try:
                batch = self._retry.call(
                    self._ocr.recognize, data, first, last, operation="ocr.recognize"
                )
            except ServiceError as exc:
                raise ExtractionError(f"OCR failed on pages {first}-{last}: {describe(exc)}") from exc
            except TransientServiceError as exc:
                errors.append(f"pages {first}-{last}: {describe(exc)}")
                consecutive_errors += 1
                log.warning("ocr batch failed", first_page=first, last_page=last, error=str(exc))
                if consecutive_errors >= cfg.max_consecutive_batch_errors:
                    break
                first = last + 1
                continue

            consecutive_errors = 0
            if not batch:
                break
            for page in batch:
                last_seen = max(last_seen, page.page_number)
                if page.error:
                    errors.append(f"page {page.page_number}: {page.error}")
                else:
                    recovered.append(page)
            log.debug("ocr batch done", first_page=first, last_page=last, pages=len(batch))
            first = last + 1

        return recovered, errors, last_seen


def _native_text(data: bytes) -> tuple[str, int]:
    """Return the layout text of every page and the page count ('' on unreadable PDFs)."""
    try:
        reader = pypdf.PdfReader(io.BytesIO(data))
        parts = [page.extract_text(extraction_mode="layout") or "" for page in reader.pages]
    except Exception as exc:  # malformed PDFs surface as arbitrary pypdf errors
        log.warning("native extraction failed", error=f"{type(exc).__name__}: {exc}")
        return "", 0
    return "\n\n".join(parts), len(parts)
