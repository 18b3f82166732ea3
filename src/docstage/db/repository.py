"""Repository pattern for all docstage database operations.

Single interface for: documents and their stage state machine,
classification history, typed metadata, chunks and prompt templates.
"""

from __future__ import annotations

import json
import sqlite3
import threading

from docstage.db.models import (
    COMPLETED,
    FAILED,
    PENDING,
    PROCESSING,
    STAGE_LEVEL,
    STAGES,
    ClassificationRecord,
    Document,
    DocumentChunk,
    ExtractionRecord,
    PromptTemplate,
)
from docstage.errors import DocumentNotFoundError, StageTransitionError

# Target status -> statuses it may be entered from.
_ALLOWED_FROM = {
    PROCESSING: (PENDING,),
    COMPLETED: (PROCESSING,),
    FAILED: (PROCESSING,),
}

_DOCUMENT_COLUMNS = (
    "id, organization_id, community_id, filename, file_path, file_size, content_hash, "
    "mime_type, extraction_status, classification_status, metadata_status, "
    "chunking_status, processing_level, extracted_text, text_length, page_count, "
    "extraction_method, document_type, chunks_count, stage_errors, created_at, updated_at"
)

# Output columns cleared when a stage is reset.
_STAGE_OUTPUT_RESET = {
    "extraction": (
        "extracted_text = NULL, text_length = 0, page_count = 0, extraction_method = NULL"
    ),
    "classification": "document_type = NULL",
    "metadata": None,
    "chunking": "chunks_count = 0",
}


class Repository:
    """Data access layer for all docstage database entities.

    Wraps an open sqlite3.Connection shared by pipeline workers. Every public
    method holds an internal lock, and multi-row changes run in a single
    transaction so readers never see a half-applied stage output.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see docstage.db.schema.initialize).
        """
        self._conn = conn
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> None:
        """Insert a new document record with every stage pending."""
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO documents (
                    id, organization_id, community_id, filename, file_path,
                    file_size, content_hash, mime_type
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document.id,
                    document.organization_id,
                    document.community_id,
                    document.filename,
                    document.file_path,
                    document.file_size,
                    document.content_hash,
                    document.mime_type,
                ),
            )

    def get_document(self, document_id: str) -> Document | None:
        """Return a document by ID, or None if not found."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            ).fetchone()
        return _row_to_document(row) if row else None

    def require_document(self, document_id: str) -> Document:
        """Return a document by ID.

        Raises:
            DocumentNotFoundError: If no document has this ID.
        """
        document = self.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")
        return document

    def get_document_by_hash(self, content_hash: str) -> Document | None:
        """Return the first document with this content hash, or None."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE content_hash = ? "
                "ORDER BY created_at LIMIT 1",
                (content_hash,),
            ).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self) -> list[Document]:
        """Return all documents ordered by creation time (oldest first)."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY created_at, rowid"
            ).fetchall()
        return [_row_to_document(r) for r in rows]

    def delete_document(self, document_id: str) -> None:
        """Delete a document. Cascades to classifications, metadata and chunks."""
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))

    # ------------------------------------------------------------------
    # Stage state machine
    # ------------------------------------------------------------------

    def start_stage(self, document_id: str, stage: str) -> None:
        """Move a stage from pending to processing.

        Raises:
            StageTransitionError: If the stage is not pending.
        """
        self._transition(document_id, stage, PROCESSING)

    def complete_stage(
        self, document_id: str, stage: str, outputs: dict | None = None
    ) -> None:
        """Mark a processing stage completed and write its document-level outputs.

        Raises the processing level to the stage's level and clears any
        recorded error for the stage, all in one UPDATE.

        Args:
            document_id: Target document.
            stage: One of STAGES.
            outputs: Column -> value pairs on the documents table to set
                alongside the status (e.g. extracted_text, document_type).
        """
        self._transition(document_id, stage, COMPLETED, outputs=outputs or {})

    def fail_stage(self, document_id: str, stage: str, error: str) -> None:
        """Mark a processing stage failed and record the error detail."""
        self._transition(document_id, stage, FAILED, error=error)

    def reset_stages(self, document_id: str, from_stage: str) -> None:
        """Return ``from_stage`` and every later stage to pending.

        Outputs of the reset stages are cleared (classification history is kept
        but nothing stays current) and the processing level drops to the last
        stage before ``from_stage``.

        Raises:
            DocumentNotFoundError: If no document has this ID.
        """
        _check_stage(from_stage)
        stages = STAGES[STAGES.index(from_stage):]
        with self._lock, self._conn:
            row = self._conn.execute(
                "SELECT processing_level, stage_errors FROM documents WHERE id = ?",
                (document_id,),
            ).fetchone()
            if row is None:
                raise DocumentNotFoundError(f"Document not found: {document_id}")

            errors = json.loads(row["stage_errors"])
            for stage in stages:
                errors.pop(stage, None)
            level = min(row["processing_level"], STAGE_LEVEL[from_stage] - 1)

            assignments = [f"{stage}_status = 'pending'" for stage in stages]
            assignments += [
                _STAGE_OUTPUT_RESET[s] for s in stages if _STAGE_OUTPUT_RESET[s]
            ]
            self._conn.execute(
                f"""
                UPDATE documents
                SET {", ".join(assignments)},
                    processing_level = ?, stage_errors = ?,
                    updated_at = datetime('now')
                WHERE id = ?
                """,
                (level, json.dumps(errors), document_id),
            )
            if "classification" in stages:
                self._conn.execute(
                    "UPDATE document_classifications SET is_current = 0 "
                    "WHERE document_id = ? AND is_current = 1",
                    (document_id,),
                )
            if "metadata" in stages:
                self._conn.execute(
                    "DELETE FROM document_extractions WHERE document_id = ?",
                    (document_id,),
                )
            if "chunking" in stages:
                self._conn.execute(
                    "DELETE FROM document_chunks WHERE document_id = ?",
                    (document_id,),
                )

    def _transition(
        self,
        document_id: str,
        stage: str,
        target: str,
        *,
        outputs: dict | None = None,
        error: str | None = None,
    ) -> None:
        _check_stage(stage)
        column = f"{stage}_status"
        with self._lock, self._conn:
            row = self._conn.execute(
                f"SELECT {column}, processing_level, stage_errors FROM documents WHERE id = ?",
                (document_id,),
            ).fetchone()
            if row is None:
                raise DocumentNotFoundError(f"Document not found: {document_id}")
            current = row[column]
            if current not in _ALLOWED_FROM[target]:
                raise StageTransitionError(
                    f"{stage}: cannot move from {current!r} to {target!r}"
                )

            errors = json.loads(row["stage_errors"])
            level = row["processing_level"]
            if target == COMPLETED:
                errors.pop(stage, None)
                level = max(level, STAGE_LEVEL[stage])
            elif target == FAILED:
                errors[stage] = error or ""

            assignments = [f"{column} = ?", "processing_level = ?", "stage_errors = ?"]
            params: list = [target, level, json.dumps(errors)]
            for key, value in (outputs or {}).items():
                assignments.append(f"{key} = ?")
                params.append(value)
            params.append(document_id)
            self._conn.execute(
                f"UPDATE documents SET {', '.join(assignments)}, "
                "updated_at = datetime('now') WHERE id = ?",
                params,
            )

    # ------------------------------------------------------------------
    # Classifications
    # ------------------------------------------------------------------

    def add_classification(self, record: ClassificationRecord) -> int:
        """Insert a classification as the current one. Returns the new rowid.

        Any previously current classification for the document is demoted in
        the same transaction, so at most one record is current at a time.
        """
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE document_classifications SET is_current = 0 "
                "WHERE document_id = ? AND is_current = 1",
                (record.document_id,),
            )
            cur = self._conn.execute(
                """
                INSERT INTO document_classifications
                    (document_id, document_type, confidence, method, reasoning, is_current)
                VALUES (?, ?, ?, ?, ?, 1)
                """,
                (
                    record.document_id,
                    record.document_type,
                    record.confidence,
                    record.method,
                    record.reasoning,
                ),
            )
        return cur.lastrowid  # type: ignore[return-value]

    def get_current_classification(self, document_id: str) -> ClassificationRecord | None:
        """Return the current classification for a document, or None."""
        with self._lock:
            row = self._conn.execute(
                """
                SELECT id, document_id, document_type, confidence, method, reasoning,
                       is_current, created_at
                FROM document_classifications
                WHERE document_id = ? AND is_current = 1
                """,
                (document_id,),
            ).fetchone()
        return _row_to_classification(row) if row else None

    def list_classifications(self, document_id: str) -> list[ClassificationRecord]:
        """Return the full classification history for a document, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT id, document_id, document_type, confidence, method, reasoning,
                       is_current, created_at
                FROM document_classifications
                WHERE document_id = ?
                ORDER BY id
                """,
                (document_id,),
            ).fetchall()
        return [_row_to_classification(r) for r in rows]

    # ------------------------------------------------------------------
    # Typed metadata
    # ------------------------------------------------------------------

    def replace_extraction(self, record: ExtractionRecord) -> int:
        """Replace the metadata record for a document. Returns the new rowid."""
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM document_extractions WHERE document_id = ?",
                (record.document_id,),
            )
            cur = self._conn.execute(
                """
                INSERT INTO document_extractions (
                    document_id, document_type, extraction_method, confidence,
                    validation_status, fields
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.document_id,
                    record.document_type,
                    record.extraction_method,
                    record.confidence,
                    record.validation_status,
                    record.fields,
                ),
            )
        return cur.lastrowid  # type: ignore[return-value]

    def get_extraction(self, document_id: str) -> ExtractionRecord | None:
        """Return the metadata record for a document, or None."""
        with self._lock:
            row = self._conn.execute(
                """
                SELECT id, document_id, document_type, extraction_method, confidence,
                       validation_status, fields, created_at
                FROM document_extractions WHERE document_id = ?
                """,
                (document_id,),
            ).fetchone()
        if row is None:
            return None
        return ExtractionRecord(
            id=row["id"],
            document_id=row["document_id"],
            document_type=row["document_type"],
            extraction_method=row["extraction_method"],
            confidence=row["confidence"],
            validation_status=row["validation_status"],
            fields=row["fields"],
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def replace_chunks(self, document_id: str, chunks: list[DocumentChunk]) -> None:
        """Replace every chunk of a document in one transaction."""
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM document_chunks WHERE document_id = ?", (document_id,)
            )
            self._conn.executemany(
                """
                INSERT INTO document_chunks (
                    document_id, chunk_number, chunk_type, content, content_length,
                    start_offset, end_offset, page_numbers, quality_score, chunking_method
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        document_id,
                        c.chunk_number,
                        c.chunk_type,
                        c.content,
                        c.content_length,
                        c.start_offset,
                        c.end_offset,
                        json.dumps(c.page_numbers),
                        c.quality_score,
                        c.chunking_method,
                    )
                    for c in chunks
                ],
            )

    def list_chunks(self, document_id: str) -> list[DocumentChunk]:
        """Return all chunks for a document ordered by chunk_number."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT document_id, chunk_number, chunk_type, content, start_offset,
                       end_offset, page_numbers, quality_score, chunking_method, created_at
                FROM document_chunks
                WHERE document_id = ?
                ORDER BY chunk_number
                """,
                (document_id,),
            ).fetchall()
        return [
            DocumentChunk(
                document_id=r["document_id"],
                chunk_number=r["chunk_number"],
                chunk_type=r["chunk_type"],
                content=r["content"],
                start_offset=r["start_offset"],
                end_offset=r["end_offset"],
                page_numbers=json.loads(r["page_numbers"]),
                quality_score=r["quality_score"],
                chunking_method=r["chunking_method"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Prompt templates
    # ------------------------------------------------------------------

    def get_active_prompt(self, name: str) -> PromptTemplate | None:
        """Return the active version of a named template, or None."""
        with self._lock:
            row = self._conn.execute(
                """
                SELECT id, name, body, variables, version, is_active, created_at
                FROM agents WHERE name = ? AND is_active = 1
                """,
                (name,),
            ).fetchone()
        return _row_to_prompt(row) if row else None

    def add_prompt_version(
        self, name: str, body: str, variables: list[str]
    ) -> PromptTemplate:
        """Store a new active version of a template, deactivating the previous one."""
        with self._lock, self._conn:
            row = self._conn.execute(
                "SELECT MAX(version) FROM agents WHERE name = ?", (name,)
            ).fetchone()
            version = (row[0] or 0) + 1
            self._conn.execute(
                "UPDATE agents SET is_active = 0 WHERE name = ? AND is_active = 1",
                (name,),
            )
            cur = self._conn.execute(
                """
                INSERT INTO agents (name, body, variables, version, is_active)
                VALUES (?, ?, ?, ?, 1)
                """,
                (name, body, json.dumps(variables), version),
            )
        return PromptTemplate(
            id=cur.lastrowid,
            name=name,
            body=body,
            variables=list(variables),
            version=version,
            is_active=True,
        )

    def list_prompts(self, *, active_only: bool = True) -> list[PromptTemplate]:
        """Return templates ordered by name then version."""
        sql = "SELECT id, name, body, variables, version, is_active, created_at FROM agents"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name, version"
        with self._lock:
            rows = self._conn.execute(sql).fetchall()
        return [_row_to_prompt(r) for r in rows]


# ------------------------------------------------------------------
# Row mappers
# ------------------------------------------------------------------


def _check_stage(stage: str) -> None:
    if stage not in STAGES:
        raise ValueError(f"Unknown stage {stage!r}. Expected one of: {', '.join(STAGES)}")


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(**{key: row[key] for key in row.keys()})


def _row_to_classification(row: sqlite3.Row) -> ClassificationRecord:
    return ClassificationRecord(
        id=row["id"],
        document_id=row["document_id"],
        document_type=row["document_type"],
        confidence=row["confidence"],
        method=row["method"],
        reasoning=row["reasoning"],
        is_current=bool(row["is_current"]),
        created_at=row["created_at"],
    )


def _row_to_prompt(row: sqlite3.Row) -> PromptTemplate:
    return PromptTemplate(
        id=row["id"],
        name=row["name"],
        body=row["body"],
        variables=json.loads(row["variables"]),
        version=row["version"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )
