"""Document type classification stage."""

from docstage.classification.classifier import (
    DOCUMENT_TYPES,
    UNKNOWN,
    ClassificationResult,
    Classifier,
)

__all__ = ["Classifier", "ClassificationResult", "DOCUMENT_TYPES", "UNKNOWN"]
