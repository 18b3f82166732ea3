"""Domain models for the docstage database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

STATUSES = (PENDING, PROCESSING, COMPLETED, FAILED)

# Stage order is the processing level each stage grants on completion.
STAGES = ("extraction", "classification", "metadata", "chunking")
STAGE_LEVEL = {stage: i + 1 for i, stage in enumerate(STAGES)}


@dataclass
class Document:
    id: str
    filename: str
    file_path: str
    mime_type: str
    file_size: int = 0
    content_hash: str = ""
    organization_id: str | None = None
    community_id: str | None = None
    extraction_status: str = PENDING
    classification_status: str = PENDING
    metadata_status: str = PENDING
    chunking_status: str = PENDING
    processing_level: int = 0
    extracted_text: str | None = None
    text_length: int = 0
    page_count: int = 0
    extraction_method: str | None = None
    document_type: str | None = None
    chunks_count: int = 0
    stage_errors: str = field(default_factory=lambda: "{}")
    created_at: str | None = None
    updated_at: str | None = None

    def status(self, stage: str) -> str:
        return getattr(self, f"{stage}_status")

    @property
    def stage_errors_dict(self) -> dict[str, str]:
        return json.loads(self.stage_errors)


@dataclass
class ClassificationRecord:
    document_id: str
    document_type: str
    confidence: float
    method: str = "agent"
    reasoning: str = ""
    is_current: bool = True
    created_at: str | None = None
    id: int | None = None  # set after insert


@dataclass
class ExtractionRecord:
    """Typed metadata for one document. ``fields`` is a JSON object string."""

    document_id: str
    document_type: str | None
    extraction_method: str
    confidence: float
    validation_status: str
    fields: str = field(default_factory=lambda: "{}")
    created_at: str | None = None
    id: int | None = None

    @property
    def fields_dict(self) -> dict:
        return json.loads(self.fields)


@dataclass
class DocumentChunk:
    document_id: str
    chunk_number: int
    chunk_type: str
    content: str
    start_offset: int
    end_offset: int
    page_numbers: list[int] = field(default_factory=list)
    quality_score: float = 0.5
    chunking_method: str = "fixed-size"
    created_at: str | None = None

    @property
    def content_length(self) -> int:
        return len(self.content)


@dataclass
class PromptTemplate:
    name: str
    body: str
    variables: list[str] = field(default_factory=list)
    version: int = 1
    is_active: bool = True
    created_at: str | None = None
    id: int | None = None
