"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from docstage.db.connection import Database
from docstage.db.models import Document
from docstage.db.repository import Repository
from docstage.db.schema import initialize


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".docstage.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def make_document(repo):
    """Insert a pending PDF document and return it."""

    def _make(id="doc-1", filename="acta_junta.pdf", file_path="ab/acta_junta.pdf", **kw):
        doc = Document(
            id=id,
            filename=filename,
            file_path=file_path,
            mime_type=kw.pop("mime_type", "application/pdf"),
            file_size=kw.pop("file_size", 1024),
            content_hash=kw.pop("content_hash", f"hash-{id}"),
            **kw,
        )
        repo.add_document(doc)
        return doc

    return _make
