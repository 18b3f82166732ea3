"""Text extraction stage."""

from docstage.extraction.quality import QualityReport, QualityWeights, score_text
from docstage.extraction.text_extractor import (
    SUPPORTED_MIME_TYPES,
    ExtractionResult,
    TextExtractor,
    normalize_text,
)

__all__ = [
    "ExtractionResult",
    "QualityReport",
    "QualityWeights",
    "SUPPORTED_MIME_TYPES",
    "TextExtractor",
    "normalize_text",
    "score_text",
]
