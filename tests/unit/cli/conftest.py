"""Fixtures for docstage CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from docstage.cli.main import app

_ENV_VARS = (
    "DOCSTAGE_LLM_MODEL",
    "DOCSTAGE_STORAGE_ROOT",
    "DOCSTAGE_LOG_LEVEL",
    "GEMINI_API_KEY",
)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch, runner: CliRunner) -> Path:
    """An initialized project directory that is also the working directory."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    return tmp_path


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Render Rich tables without wrapping cell contents."""
    from docstage.cli.common import console

    monkeypatch.setattr(console, "width", 200)
