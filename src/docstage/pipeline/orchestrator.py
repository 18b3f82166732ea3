"""Stage orchestrator: drive documents through extraction, classification,
metadata and chunking, persisting after every stage.

A document is resumable at any stage boundary. Completed stages are skipped
and their persisted output reused; a failed stage halts the run and is only
re-entered through an explicit reset (``retry_failed=True`` or :meth:`reset`).
"""

from __future__ import annotations

import json
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from docstage.chunking.chunker import TextChunker
from docstage.classification.classifier import Classifier
from docstage.config import DocstageConfig
from docstage.db.models import (
    COMPLETED,
    FAILED,
    PROCESSING,
    STAGES,
    ClassificationRecord,
    Document,
    ExtractionRecord,
)
from docstage.db.repository import Repository
from docstage.errors import (
    MetadataParseError,
    PipelineCancelled,
    UnsupportedDocumentTypeError,
    describe,
)
from docstage.extraction.text_extractor import TextExtractor
from docstage.llm_client import LanguageModelClient
from docstage.metadata.base import BASIC
from docstage.metadata.basic import BASIC_CONFIDENCE, EXTRACTION_METHOD, basic_metadata
from docstage.metadata.factory import ExtractorFactory
from docstage.ocr import TesseractOcrService
from docstage.prompts.registry import PromptRegistry
from docstage.retry import RetryPolicy
from docstage.storage import LocalObjectStore

log = structlog.get_logger(__name__)

MAX_LEVEL = len(STAGES)

# Outcome of one stage within a run.
SKIPPED = "skipped"
HALTED = "halted"


@dataclass
class StageOutcome:
    stage: str
    status: str
    error: str | None = None


@dataclass
class PipelineResult:
    document_id: str
    target_level: int
    processing_level: int = 0
    stages: list[StageOutcome] = field(default_factory=list)
    error: str | None = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.error is None and not self.cancelled and self.processing_level >= self.target_level


class PipelineOrchestrator:
    """Run the four ingestion stages for one or many documents.

    Args:
        repo:       Repository over the document registry.
        extractor:  Text extraction stage.
        classifier: Classification stage.
        factory:    Metadata strategy factory.
        chunker:    Chunking stage.
    """

    def __init__(
        self,
        repo: Repository,
        extractor: TextExtractor,
        classifier: Classifier,
        factory: ExtractorFactory,
        chunker: TextChunker,
    ) -> None:
        self._repo = repo
        self._extractor = extractor
        self._classifier = classifier
        self._factory = factory
        self._chunker = chunker
        self._runners = {
            "extraction": self._run_extraction,
            "classification": self._run_classification,
            "metadata": self._run_metadata,
            "chunking": self._run_chunking,
        }

    @classmethod
    def from_config(
        cls,
        cfg: DocstageConfig,
        repo: Repository,
        project_dir: Path | None = None,
    ) -> PipelineOrchestrator:
        """Wire the default adapters (local store, Tesseract, LiteLLM) from *cfg*."""
        base = project_dir if project_dir is not None else Path.cwd()
        retry = RetryPolicy.from_config(cfg.retry)
        prompts = PromptRegistry(repo)
        llm = LanguageModelClient(cfg.llm, retry)
        store = LocalObjectStore(base / cfg.storage.root)
        ocr = TesseractOcrService(cfg.extraction.ocr_language, cfg.extraction.ocr_timeout)
        return cls(
            repo=repo,
            extractor=TextExtractor(store, ocr, cfg.extraction, retry),
            classifier=Classifier(prompts, llm, cfg.classification),
            factory=ExtractorFactory(prompts, llm),
            chunker=TextChunker(cfg.chunking),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(
        self,
        document_id: str,
        target_level: int = MAX_LEVEL,
        cancel: threading.Event | None = None,
        retry_failed: bool = False,
    ) -> PipelineResult:
        """Advance *document_id* through every stage up to *target_level*.

        Raises:
            ValueError: *target_level* is outside 1-4.
            DocumentNotFoundError: No such document.
        """
        if not 1 <= target_level <= MAX_LEVEL:
            raise ValueError(f"target_level must be between 1 and {MAX_LEVEL}, got {target_level}")

        doc = self._repo.require_document(document_id)
        result = PipelineResult(document_id=document_id, target_level=target_level)
        bound = log.bind(document_id=document_id)

        for stage in STAGES[:target_level]:
            status = doc.status(stage)
            if status == COMPLETED:
                result.stages.append(StageOutcome(stage, SKIPPED))
                continue

            if status in (FAILED, PROCESSING):
                if not retry_failed:
                    previous = doc.stage_errors_dict.get(stage)
                    result.error = f"Stage {stage} is {status}" + (f": {previous}" if previous else "")
                    result.stages.append(StageOutcome(stage, HALTED, previous))
                    bound.warning("stage needs reset", stage=stage, status=status)
                    break
                bound.info("resetting stage for retry", stage=stage, status=status)
                self._repo.reset_stages(document_id, stage)
                doc = self._repo.require_document(document_id)

            if cancel is not None and cancel.is_set():
                result.cancelled = True
                bound.info("pipeline cancelled", before_stage=stage)
                break

            self._repo.start_stage(document_id, stage)
            bound.info("stage started", stage=stage)
            try:
                outputs = self._runners[stage](doc, cancel)
            except Exception as exc:
                detail = describe(exc)
                self._repo.fail_stage(document_id, stage, detail)
                result.stages.append(StageOutcome(stage, FAILED, detail))
                result.error = detail
                if isinstance(exc, PipelineCancelled):
                    result.cancelled = True
                    bound.info("pipeline cancelled", stage=stage)
                else:
                    bound.error("stage failed", stage=stage, error=detail, exc_info=True)
                break

            self._repo.complete_stage(document_id, stage, outputs)
            result.stages.append(StageOutcome(stage, COMPLETED))
            bound.info("stage completed", stage=stage)
            doc = self._repo.require_document(document_id)

        result.processing_level = doc.processing_level
        return result

    def process_many(
        self,
        document_ids: list[str],
        target_level: int = MAX_LEVEL,
        max_workers: int = 4,
        cancel: threading.Event | None = None,
        retry_failed: bool = False,
    ) -> dict[str, PipelineResult]:
        """Process documents concurrently, at most *max_workers* at a time.

        Stages of a single document always run sequentially. A document that
        cannot be processed at all (e.g. unknown id) gets a result carrying the
        error instead of aborting the batch.

        On KeyboardInterrupt *cancel* is set, queued documents are dropped and
        running ones stop at their next stage boundary before the interrupt
        propagates.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        cancel = cancel if cancel is not None else threading.Event()
        results: dict[str, PipelineResult] = {}
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="docstage") as pool:
            futures = {
                pool.submit(self.process, doc_id, target_level, cancel, retry_failed): doc_id
                for doc_id in dict.fromkeys(document_ids)
            }
            try:
                for future in as_completed(futures):
                    doc_id = futures[future]
                    try:
                        results[doc_id] = future.result()
                    except Exception as exc:
                        log.error("document not processed", document_id=doc_id, error=describe(exc))
                        results[doc_id] = PipelineResult(
                            document_id=doc_id, target_level=target_level, error=describe(exc)
                        )
            except KeyboardInterrupt:
                cancel.set()
                pool.shutdown(wait=False, cancel_futures=True)
                log.warning("batch interrupted", pending=len(futures) - len(results))
                raise
        return {doc_id: results[doc_id] for doc_id in dict.fromkeys(document_ids)}

    def reset(self, document_id: str, from_stage: str) -> None:
        """Return *from_stage* and all later stages to pending, clearing their outputs."""
        self._repo.reset_stages(document_id, from_stage)
        log.info("stages reset", document_id=document_id, from_stage=from_stage)

    # ------------------------------------------------------------------
    # Stage runners: each returns document columns to set on completion
    # ------------------------------------------------------------------

    def _run_extraction(self, doc: Document, cancel: threading.Event | None) -> dict:
        extracted = self._extractor.extract(doc.file_path, doc.mime_type, cancel)
        if extracted.ocr_errors:
            log.warning(
                "ocr completed with errors",
                document_id=doc.id,
                errors=extracted.ocr_errors,
            )
        return {
            "extracted_text": extracted.text,
            "text_length": extracted.text_length,
            "page_count": extracted.page_count,
            "extraction_method": extracted.method,
        }

    def _run_classification(self, doc: Document, cancel: threading.Event | None) -> dict:
        classified = self._classifier.classify(doc.extracted_text or "")
        self._repo.add_classification(
            ClassificationRecord(
                document_id=doc.id,
                document_type=classified.document_type,
                confidence=classified.confidence,
                reasoning=classified.reasoning,
            )
        )
        return {"document_type": classified.document_type}

    def _run_metadata(self, doc: Document, cancel: threading.Event | None) -> dict:
        text = doc.extracted_text or ""
        try:
            strategy = self._factory.resolve(doc.document_type)
        except UnsupportedDocumentTypeError:
            log.info(
                "no strategy for type, storing basic metadata",
                document_id=doc.id,
                document_type=doc.document_type,
            )
            record = ExtractionRecord(
                document_id=doc.id,
                document_type=doc.document_type,
                extraction_method=EXTRACTION_METHOD,
                confidence=BASIC_CONFIDENCE,
                validation_status=BASIC,
                fields=json.dumps(
                    basic_metadata(doc.filename, text, doc.page_count), ensure_ascii=False
                ),
            )
        else:
            outcome = strategy.process(doc.id, text)
            if not outcome.success:
                raise MetadataParseError(outcome.error or f"{strategy.agent_name} returned no data")
            record = ExtractionRecord(
                document_id=doc.id,
                document_type=doc.document_type,
                extraction_method=strategy.agent_name,
                confidence=outcome.confidence,
                validation_status=outcome.validation_status,
                fields=json.dumps(outcome.data, ensure_ascii=False),
            )
        self._repo.replace_extraction(record)
        return {}

    def _run_chunking(self, doc: Document, cancel: threading.Event | None) -> dict:
        chunks = self._chunker.chunk(doc.id, doc.extracted_text or "")
        self._repo.replace_chunks(doc.id, chunks)
        return {"chunks_count": len(chunks)}
