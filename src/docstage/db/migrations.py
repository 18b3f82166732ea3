"""Forward-only migration runner for the docstage database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    id                      TEXT PRIMARY KEY,
    organization_id         TEXT,
    community_id            TEXT,
    filename                TEXT NOT NULL,
    file_path               TEXT NOT NULL,
    file_size               INTEGER NOT NULL DEFAULT 0,
    content_hash            TEXT NOT NULL DEFAULT '',
    mime_type               TEXT NOT NULL,
    extraction_status       TEXT NOT NULL DEFAULT 'pending'
        CHECK (extraction_status IN ('pending', 'processing', 'completed', 'failed')),
    classification_status   TEXT NOT NULL DEFAULT 'pending'
        CHECK (classification_status IN ('pending', 'processing', 'completed', 'failed')),
    metadata_status         TEXT NOT NULL DEFAULT 'pending'
        CHECK (metadata_status IN ('pending', 'processing', 'completed', 'failed')),
    chunking_status         TEXT NOT NULL DEFAULT 'pending'
        CHECK (chunking_status IN ('pending', 'processing', 'completed', 'failed')),
    processing_level        INTEGER NOT NULL DEFAULT 0
        CHECK (processing_level BETWEEN 0 AND 4),
    extracted_text          TEXT,
    text_length             INTEGER NOT NULL DEFAULT 0,
    page_count              INTEGER NOT NULL DEFAULT 0,
    extraction_method       TEXT,
    document_type           TEXT,
    chunks_count            INTEGER NOT NULL DEFAULT 0,
    stage_errors            TEXT NOT NULL DEFAULT '{}',
    created_at              DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at              DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS document_classifications (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id     TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    document_type   TEXT NOT NULL,
    confidence      REAL NOT NULL CHECK (confidence BETWEEN 0.0 AND 1.0),
    method          TEXT NOT NULL DEFAULT 'agent',
    reasoning       TEXT NOT NULL DEFAULT '',
    is_current      INTEGER NOT NULL DEFAULT 1,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

-- At most one authoritative classification per document.
CREATE UNIQUE INDEX IF NOT EXISTS idx_classifications_current
    ON document_classifications(document_id) WHERE is_current = 1;

CREATE TABLE IF NOT EXISTS document_extractions (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id         TEXT NOT NULL UNIQUE REFERENCES documents(id) ON DELETE CASCADE,
    document_type       TEXT,
    extraction_method   TEXT NOT NULL,
    confidence          REAL NOT NULL,
    validation_status   TEXT NOT NULL,
    fields              TEXT NOT NULL DEFAULT '{}',
    created_at          DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS document_chunks (
    document_id     TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_number    INTEGER NOT NULL,
    chunk_type      TEXT NOT NULL
        CHECK (chunk_type IN ('header', 'content', 'table', 'list', 'conclusion', 'summary')),
    content         TEXT NOT NULL,
    content_length  INTEGER NOT NULL,
    start_offset    INTEGER NOT NULL,
    end_offset      INTEGER NOT NULL,
    page_numbers    TEXT NOT NULL DEFAULT '[]',
    quality_score   REAL NOT NULL,
    chunking_method TEXT NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (document_id, chunk_number)
);

CREATE TABLE IF NOT EXISTS agents (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    body        TEXT NOT NULL,
    variables   TEXT NOT NULL DEFAULT '[]',
    version     INTEGER NOT NULL,
    is_active   INTEGER NOT NULL DEFAULT 1,
    created_at  DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (name, version)
);

-- Exactly one active template version per name.
CREATE UNIQUE INDEX IF NOT EXISTS idx_agents_active
    ON agents(name) WHERE is_active = 1;
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
