"""Tests for the docstage config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from docstage.config import ConfigError, DocstageConfig, load_config


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("DOCSTAGE_LLM_MODEL", "DOCSTAGE_STORAGE_ROOT", "DOCSTAGE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _load(tmp_path: Path, global_cfg: Path | None = None) -> DocstageConfig:
    return load_config(
        project_dir=tmp_path,
        global_config_path=global_cfg or tmp_path / "nonexistent" / "config.yaml",
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    """No config files → all hardcoded defaults."""
    cfg = _load(tmp_path)

    assert cfg.llm.model == "gemini/gemini-2.0-flash"
    assert cfg.extraction.quality_threshold == 70
    assert cfg.extraction.ocr_batch_size == 5
    assert cfg.extraction.ocr_page_limit == 50
    assert cfg.classification.confidence_floor == 0.5
    assert cfg.chunking.chunk_size == 800
    assert cfg.chunking.strategy == "fixed-size"
    assert cfg.retry.max_attempts == 3
    assert cfg.storage.root == ".docstage/objects"
    assert cfg.logging.level == "INFO"


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"llm": {"model": "openai/gpt-4o-mini"}})

    cfg = _load(tmp_path, global_cfg)
    assert cfg.llm.model == "openai/gpt-4o-mini"
    assert cfg.llm.max_tokens == 3_000


def test_global_empty_file(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("", encoding="utf-8")
    assert _load(tmp_path, global_cfg).llm.model == "gemini/gemini-2.0-flash"


def test_project_overrides_global(tmp_path: Path) -> None:
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"llm": {"model": "openai/gpt-4o", "temperature": 0.5}})
    _write_yaml(tmp_path / "docstage.yaml", {"llm": {"model": "anthropic/claude-3-5-haiku"}})

    cfg = _load(tmp_path, global_cfg)
    assert cfg.llm.model == "anthropic/claude-3-5-haiku"
    # deep merge keeps the global value that the project file does not set
    assert cfg.llm.temperature == 0.5


def test_project_sections(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "docstage.yaml",
        {
            "extraction": {"quality_threshold": 60, "ocr_language": "spa"},
            "classification": {"confidence_floor": 0.7, "extra_types": ["Circular Interna"]},
            "chunking": {"chunk_size": 500, "overlap": 50, "max_chunks": 20},
            "retry": {"max_attempts": 5, "backoff_multiplier": 0.5},
            "logging": {"level": "debug", "json": True},
        },
    )
    cfg = _load(tmp_path)
    assert cfg.extraction.quality_threshold == 60
    assert cfg.extraction.ocr_language == "spa"
    assert cfg.extraction.ocr_batch_size == 5
    assert cfg.classification.confidence_floor == 0.7
    assert cfg.classification.extra_types == ["Circular Interna"]
    assert cfg.chunking.chunk_size == 500
    assert cfg.chunking.overlap == 50
    assert cfg.chunking.max_chunks == 20
    assert cfg.retry.max_attempts == 5
    assert cfg.retry.backoff_multiplier == 0.5
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.json is True


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "section",
    [
        {"chunking": {"chunk_size": 0}},
        {"chunking": {"chunk_size": 100, "overlap": 100}},
        {"extraction": {"ocr_batch_size": 0}},
        {"extraction": {"ocr_page_limit": 0}},
        {"extraction": {"quality_threshold": -1}},
        {"extraction": {"quality_threshold": 101}},
        {"chunking": {"chars_per_page": 0}},
        {"chunking": {"max_chunks": 0}},
        {"classification": {"confidence_floor": 1.5}},
        {"retry": {"max_attempts": 0}},
    ],
)
def test_out_of_range_values_raise(tmp_path: Path, section: dict) -> None:
    _write_yaml(tmp_path / "docstage.yaml", section)
    with pytest.raises(ConfigError):
        _load(tmp_path)


@pytest.mark.parametrize(
    "bad_key",
    ["api_key", "apikey", "GEMINI_API_KEY", "secret", "password", "token", "api-key"],
)
def test_global_config_rejects_api_key_fields(tmp_path: Path, bad_key: str) -> None:
    """Global config containing API key-like field names raises ConfigError."""
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text(f"{bad_key}: sk-abc123\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="forbidden key"):
        _load(tmp_path, global_cfg)


def test_global_config_rejects_nested_api_key(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"llm": {"api_key": "sk-secret"}})

    with pytest.raises(ConfigError, match="forbidden key"):
        _load(tmp_path, global_cfg)


def test_max_tokens_is_not_a_credential(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"llm": {"max_tokens": 1000}})
    assert _load(tmp_path, global_cfg).llm.max_tokens == 1000


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    """Unknown top-level key emits UserWarning (not error)."""
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"embedding": {"model": "x"}})

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        cfg = _load(tmp_path, global_cfg)

    assert any("embedding" in str(w.message) for w in caught)
    assert cfg.llm.model == "gemini/gemini-2.0-flash"


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


def test_env_overrides_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_yaml(tmp_path / "docstage.yaml", {"llm": {"model": "openai/gpt-4o"}})
    monkeypatch.setenv("DOCSTAGE_LLM_MODEL", "ollama/llama3")
    monkeypatch.setenv("DOCSTAGE_STORAGE_ROOT", "/data/objects")
    monkeypatch.setenv("DOCSTAGE_LOG_LEVEL", "warning")

    cfg = _load(tmp_path)
    assert cfg.llm.model == "ollama/llama3"
    assert cfg.storage.root == "/data/objects"
    assert cfg.logging.level == "WARNING"
