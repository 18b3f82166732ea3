"""Tests for docstage add."""

from __future__ import annotations

from pathlib import Path

from docstage.cli.main import app
from docstage.db.connection import Database
from docstage.db.models import PENDING
from docstage.db.repository import Repository
from docstage.storage import LocalObjectStore, content_hash

_PDF = b"%PDF-1.4\n% acta de la junta\n"


def _documents(project: Path):
    with Database(project / ".docstage.db") as conn:
        return Repository(conn).list_documents()


def test_add_registers_pending_document(project: Path, runner):
    (project / "acta.pdf").write_bytes(_PDF)

    result = runner.invoke(app, ["add", "acta.pdf", "--community", "olivos"])

    assert result.exit_code == 0, result.output
    [doc] = _documents(project)
    assert doc.id in result.output
    assert doc.filename == "acta.pdf"
    assert doc.mime_type == "application/pdf"
    assert doc.file_size == len(_PDF)
    assert doc.content_hash == content_hash(_PDF)
    assert doc.community_id == "olivos"
    assert doc.processing_level == 0
    assert doc.extraction_status == PENDING
    assert LocalObjectStore(project / ".docstage" / "objects").get(doc.file_path) == _PDF


def test_add_skips_identical_content(project: Path, runner):
    (project / "acta.pdf").write_bytes(_PDF)
    (project / "copia.pdf").write_bytes(_PDF)
    runner.invoke(app, ["add", "acta.pdf"])

    result = runner.invoke(app, ["add", "copia.pdf"])

    assert result.exit_code == 0
    assert "Skipped" in result.output
    assert len(_documents(project)) == 1


def test_add_force_registers_duplicate(project: Path, runner):
    (project / "acta.pdf").write_bytes(_PDF)
    runner.invoke(app, ["add", "acta.pdf"])

    result = runner.invoke(app, ["add", "acta.pdf", "--force"])

    assert result.exit_code == 0
    assert len(_documents(project)) == 2


def test_add_missing_file(project: Path, runner):
    result = runner.invoke(app, ["add", "nope.pdf"])
    assert result.exit_code == 1
    assert "File not found" in result.output
    assert _documents(project) == []


def test_add_without_database(tmp_path: Path, runner, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "acta.pdf").write_bytes(_PDF)
    result = runner.invoke(app, ["add", "acta.pdf"])
    assert result.exit_code == 1
    assert "docstage init" in result.output
