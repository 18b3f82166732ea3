"""OCR adapter: render PDF pages with PyMuPDF and recognise them with Tesseract."""

from __future__ import annotations

import io
from dataclasses import dataclass

import fitz  # PyMuPDF
import pytesseract
import structlog
from PIL import Image

from docstage.errors import ServiceError, TransientServiceError

log = structlog.get_logger(__name__)

_RENDER_ZOOM = 2.0  # 144 dpi, enough for Tesseract on typical scans


@dataclass
class OcrPage:
    """Recognised text for one page. ``error`` is set when the page failed."""

    page_number: int
    text: str = ""
    error: str | None = None


class TesseractOcrService:
    """Page-batched OCR over a binary PDF.

    Args:
        language: Tesseract language spec, e.g. ``spa+eng``.
        timeout:  Per-page recognition timeout in seconds (0 disables it).
    """

    def __init__(self, language: str = "spa+eng", timeout: float = 120.0) -> None:
        self._language = language
        self._timeout = timeout

    def recognize(self, data: bytes, first_page: int, last_page: int) -> list[OcrPage]:
        """Recognise pages ``first_page..last_page`` (1-based, inclusive).

        Pages beyond the end of the document are not returned, so a batch that
        starts past the last page yields an empty list.

        Raises:
            ServiceError: The PDF cannot be opened or Tesseract is not installed.
            TransientServiceError: Recognition of a page timed out.
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except (fitz.FileDataError, RuntimeError) as exc:
            raise ServiceError(f"Cannot open document for OCR: {exc}") from exc

        pages: list[OcrPage] = []
        with doc:
            last = min(last_page, doc.page_count)
            for page_number in range(first_page, last + 1):
                pages.append(self._recognize_page(doc[page_number - 1], page_number))
        log.debug("ocr batch", first_page=first_page, last_page=last_page, pages=len(pages))
        return pages

    def _recognize_page(self, page: fitz.Page, page_number: int) -> OcrPage:
        try:
            pix = page.get_pixmap(matrix=fitz.Matrix(_RENDER_ZOOM, _RENDER_ZOOM))
            image = Image.open(io.BytesIO(pix.tobytes("png")))
        except (RuntimeError, ValueError, OSError) as exc:
            log.warning("ocr page render failed", page=page_number, error=str(exc))
            return OcrPage(page_number=page_number, error=f"render failed: {exc}")
        try:
            text = pytesseract.image_to_string(
                image, lang=self._language, timeout=self._timeout
            )
        except pytesseract.TesseractNotFoundError as exc:
            raise ServiceError(f"Tesseract is not installed: {exc}") from exc
        except pytesseract.TesseractError as exc:
            log.warning("ocr page failed", page=page_number, error=str(exc))
            return OcrPage(page_number=page_number, error=str(exc))
        except RuntimeError as exc:
            # pytesseract signals its timeout with a bare RuntimeError
            raise TransientServiceError(f"OCR timed out on page {page_number}: {exc}") from exc
        return OcrPage(page_number=page_number, text=text.strip())
