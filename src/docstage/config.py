"""docstage configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (DOCSTAGE_LLM_MODEL, DOCSTAGE_STORAGE_ROOT, DOCSTAGE_LOG_LEVEL)
  3. Per-project docstage.yaml
  4. Global ~/.docstage/config.yaml  (defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".docstage"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "docstage.yaml"

# Key names that suggest a credential. Does NOT match max_tokens or similar.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["llm", "extraction", "classification", "chunking", "retry", "storage", "logging"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class LlmCfg:
    """Language-model service configuration (docstage.yaml: llm:)."""

    model: str = "gemini/gemini-2.0-flash"
    temperature: float = 0.1
    max_tokens: int = 3_000
    timeout: float = 60.0


@dataclass
class ExtractionCfg:
    """Text extraction + OCR fallback configuration (docstage.yaml: extraction:).

    Attributes:
        quality_threshold: Native text scoring below this triggers OCR.
        ocr_batch_size: Pages per OCR request.
        ocr_page_limit: Safety limit on pages sent to OCR.
        ocr_language: Tesseract language code(s), e.g. ``spa+eng``.
        ocr_timeout: Per-page OCR timeout in seconds.
        max_consecutive_batch_errors: OCR stops after this many failed batches in a row.
    """

    quality_threshold: int = 70
    ocr_batch_size: int = 5
    ocr_page_limit: int = 50
    ocr_language: str = "spa+eng"
    ocr_timeout: float = 120.0
    max_consecutive_batch_errors: int = 2


@dataclass
class ClassificationCfg:
    """Classifier configuration (docstage.yaml: classification:)."""

    confidence_floor: float = 0.5
    max_text_chars: int = 4_000
    extra_types: list[str] = field(default_factory=list)


@dataclass
class ChunkingCfg:
    """Chunker configuration (docstage.yaml: chunking:)."""

    chunk_size: int = 800
    strategy: str = "fixed-size"
    overlap: int = 0
    max_chunks: int | None = None
    chars_per_page: int = 2_000


@dataclass
class RetryCfg:
    """Retry policy for external calls (docstage.yaml: retry:)."""

    max_attempts: int = 3
    backoff_multiplier: float = 1.0
    backoff_max: float = 30.0


@dataclass
class StorageCfg:
    """Binary object store (docstage.yaml: storage:)."""

    root: str = ".docstage/objects"


@dataclass
class LoggingCfg:
    """Logging output (docstage.yaml: logging:)."""

    level: str = "INFO"
    json: bool = False


@dataclass
class DocstageConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    llm: LlmCfg = field(default_factory=LlmCfg)
    extraction: ExtractionCfg = field(default_factory=ExtractionCfg)
    classification: ClassificationCfg = field(default_factory=ClassificationCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    retry: RetryCfg = field(default_factory=RetryCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: DocstageConfig) -> None:
    if cfg.chunking.chunk_size < 1:
        raise ConfigError(f"chunking.chunk_size must be >= 1, got {cfg.chunking.chunk_size}")
    if not 0 <= cfg.chunking.overlap < cfg.chunking.chunk_size:
        raise ConfigError("chunking.overlap must be in [0, chunk_size)")
    if cfg.extraction.ocr_batch_size < 1:
        raise ConfigError("extraction.ocr_batch_size must be >= 1")
    if cfg.extraction.ocr_page_limit < 1:
        raise ConfigError("extraction.ocr_page_limit must be >= 1")
    if not 0 <= cfg.extraction.quality_threshold <= 100:
        raise ConfigError("extraction.quality_threshold must be in [0, 100]")
    if cfg.chunking.chars_per_page < 1:
        raise ConfigError("chunking.chars_per_page must be >= 1")
    if cfg.chunking.max_chunks is not None and cfg.chunking.max_chunks < 1:
        raise ConfigError("chunking.max_chunks must be >= 1")
    if not 0.0 <= cfg.classification.confidence_floor <= 1.0:
        raise ConfigError("classification.confidence_floor must be in [0.0, 1.0]")
    if cfg.retry.max_attempts < 1:
        raise ConfigError("retry.max_attempts must be >= 1")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DocstageConfig:
    """Build a *DocstageConfig* from a merged raw YAML dict."""
    cfg = DocstageConfig()

    if "llm" in data:
        m = data["llm"]
        cfg.llm = LlmCfg(
            model=str(m.get("model", cfg.llm.model)),
            temperature=float(m.get("temperature", cfg.llm.temperature)),
            max_tokens=int(m.get("max_tokens", cfg.llm.max_tokens)),
            timeout=float(m.get("timeout", cfg.llm.timeout)),
        )

    if "extraction" in data:
        e = data["extraction"]
        d = cfg.extraction
        cfg.extraction = ExtractionCfg(
            quality_threshold=int(e.get("quality_threshold", d.quality_threshold)),
            ocr_batch_size=int(e.get("ocr_batch_size", d.ocr_batch_size)),
            ocr_page_limit=int(e.get("ocr_page_limit", d.ocr_page_limit)),
            ocr_language=str(e.get("ocr_language", d.ocr_language)),
            ocr_timeout=float(e.get("ocr_timeout", d.ocr_timeout)),
            max_consecutive_batch_errors=int(
                e.get("max_consecutive_batch_errors", d.max_consecutive_batch_errors)
            ),
        )

    if "classification" in data:
        c = data["classification"]
        cfg.classification = ClassificationCfg(
            confidence_floor=float(c.get("confidence_floor", cfg.classification.confidence_floor)),
            max_text_chars=int(c.get("max_text_chars", cfg.classification.max_text_chars)),
            extra_types=[str(t) for t in c.get("extra_types", [])],
        )

    if "chunking" in data:
        ch = data["chunking"]
        d = cfg.chunking
        max_chunks = ch.get("max_chunks", d.max_chunks)
        cfg.chunking = ChunkingCfg(
            chunk_size=int(ch.get("chunk_size", d.chunk_size)),
            strategy=str(ch.get("strategy", d.strategy)),
            overlap=int(ch.get("overlap", d.overlap)),
            max_chunks=int(max_chunks) if max_chunks is not None else None,
            chars_per_page=int(ch.get("chars_per_page", d.chars_per_page)),
        )

    if "retry" in data:
        r = data["retry"]
        cfg.retry = RetryCfg(
            max_attempts=int(r.get("max_attempts", cfg.retry.max_attempts)),
            backoff_multiplier=float(r.get("backoff_multiplier", cfg.retry.backoff_multiplier)),
            backoff_max=float(r.get("backoff_max", cfg.retry.backoff_max)),
        )

    if "storage" in data:
        cfg.storage = StorageCfg(root=str(data["storage"].get("root", cfg.storage.root)))

    if "logging" in data:
        lg = data["logging"]
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)).upper(),
            json=bool(lg.get("json", cfg.logging.json)),
        )

    return cfg


def _apply_env_overrides(cfg: DocstageConfig) -> DocstageConfig:
    """Apply DOCSTAGE_* environment variable overrides."""
    if model := os.environ.get("DOCSTAGE_LLM_MODEL"):
        cfg.llm.model = model
    if root := os.environ.get("DOCSTAGE_STORAGE_ROOT"):
        cfg.storage.root = root
    if level := os.environ.get("DOCSTAGE_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DocstageConfig:
    """Load and return a merged *DocstageConfig*.

    Applies layers in order: global → per-project → env vars.

    Args:
        project_dir: Directory to search for *docstage.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg
