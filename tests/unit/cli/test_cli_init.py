"""Tests for docstage init."""

from __future__ import annotations

from pathlib import Path

import yaml

from docstage.cli.main import app
from docstage.db.connection import Database
from docstage.db.repository import Repository
from docstage.prompts.defaults import DEFAULT_TEMPLATES


def test_init_creates_project(project: Path):
    assert (project / ".docstage.db").exists()
    assert (project / ".docstage" / "objects").is_dir()
    cfg = yaml.safe_load((project / "docstage.yaml").read_text(encoding="utf-8"))
    assert cfg["llm"]["model"] == "gemini/gemini-2.0-flash"


def test_init_seeds_prompt_templates(project: Path):
    with Database(project / ".docstage.db") as conn:
        names = {t.name for t in Repository(conn).list_prompts()}
    assert names == set(DEFAULT_TEMPLATES)


def test_init_output(tmp_path: Path, runner, monkeypatch):
    monkeypatch.delenv("DOCSTAGE_LLM_MODEL", raising=False)
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "docstage.yaml" in result.output
    assert f"{len(DEFAULT_TEMPLATES)} prompt templates installed" in result.output
    assert "docstage project initialized" in result.output


def test_init_twice_is_harmless(project: Path, runner):
    (project / "docstage.yaml").write_text('llm:\n  model: "ollama/llama3"\n', encoding="utf-8")

    result = runner.invoke(app, ["init", str(project)])

    assert result.exit_code == 0, result.output
    assert "prompt templates already present" in result.output
    # existing config is left alone
    assert "ollama/llama3" in (project / "docstage.yaml").read_text(encoding="utf-8")
    with Database(project / ".docstage.db") as conn:
        assert all(t.version == 1 for t in Repository(conn).list_prompts())


def test_init_rejects_invalid_config(tmp_path: Path, runner):
    (tmp_path / "docstage.yaml").write_text(
        "classification:\n  confidence_floor: 3\n", encoding="utf-8"
    )
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    assert not (tmp_path / ".docstage.db").exists()
