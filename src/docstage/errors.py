"""Exception taxonomy for the ingestion pipeline.

Every stage failure is recorded on the document as ``"<ClassName>: <message>"``
(see :func:`describe`), so class names here are part of the persisted state.
"""

from __future__ import annotations


class DocstageError(Exception):
    """Base class for all pipeline errors."""


# ---------------------------------------------------------------------------
# External service errors
# ---------------------------------------------------------------------------


class TransientServiceError(DocstageError):
    """Timeout, rate limit, connection or 5xx-equivalent failure. Retryable."""


class ServiceError(DocstageError):
    """Non-retryable provider failure (bad request, malformed input)."""


class AuthenticationError(ServiceError):
    """Credentials missing or rejected by a provider. Never retried."""


class ObjectNotFoundError(DocstageError):
    """The object store has no object for the given reference."""


# ---------------------------------------------------------------------------
# Stage errors
# ---------------------------------------------------------------------------


class UnsupportedFormatError(DocstageError):
    """Declared mime type is not a supported binary document format."""


class ExtractionError(DocstageError):
    """Storage unreachable or OCR recovered zero pages."""


class ClassificationError(DocstageError):
    """Classification service unreachable or response completely unparseable."""


class UnsupportedDocumentTypeError(DocstageError):
    """No metadata strategy is registered for a document type. Non-fatal."""

    def __init__(self, document_type: str | None) -> None:
        super().__init__(f"No extraction strategy for document type {document_type!r}")
        self.document_type = document_type


class MetadataParseError(DocstageError):
    """Model response could not be parsed and salvage recovered no fields."""


class ChunkingError(DocstageError):
    """Degenerate chunking input (empty text, non-positive chunk size)."""


class TemplateResolutionError(DocstageError):
    """Prompt template missing, or rendered with unresolved placeholders."""


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------


class DocumentNotFoundError(DocstageError):
    """No document row exists for the given identifier."""


class PipelineCancelled(DocstageError):
    """Cancellation signal observed between stages or OCR batches."""


class StageTransitionError(DocstageError):
    """A stage status change not permitted by the stage state machine."""


def describe(exc: BaseException) -> str:
    """Return the verbatim failure detail stored on a document stage."""
    return f"{type(exc).__name__}: {exc}"
