"""portable-brains configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (PORTABLE_BRAINS_EMBEDDING_MODEL,
     PORTABLE_BRAINS_CHAT_MODEL, PORTABLE_BRAINS_DB)
  3. Per-project portable-brains.yaml  (current working directory)
  4. Global ~/.portable-brains/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".portable-brains"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "portable-brains.yaml"

STORAGE_BACKENDS: frozenset[str] = frozenset(["duckdb", "memory"])

# Key names that suggest a credential; forbidden in the global config.
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
    ["storage", "embedding", "chunking", "extraction", "chat"]
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
class StorageCfg:
    """Storage backend selection (portable-brains.yaml: storage:)."""

    backend: str = "duckdb"  # duckdb | memory
    path: str = "brain.duckdb"


@dataclass
class EmbeddingCfg:
    """Embedding model and Phase 2 batching (portable-brains.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    batch_size: int = 50
    batch_delay: float = 0.1  # seconds between batches


@dataclass
class ChunkingCfg:
    """Sentence chunker sizes in characters (portable-brains.yaml: chunking:)."""

    chunk_size: int = 800
    overlap: int = 100


@dataclass
class ExtractionCfg:
    """Memory ceilings for text extraction (portable-brains.yaml: extraction:)."""

    max_file_size: int = 50 * 1024 * 1024
    max_text_length: int = 5_000_000


@dataclass
class ChatCfg:
    """Question answering over the store (portable-brains.yaml: chat:)."""

    model: str = "openai/gpt-4o-mini"
    results: int = 5
    max_tokens: int = 1_000
    temperature: float = 0.7
    api_base: str | None = None


@dataclass
class BrainsConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    storage: StorageCfg = field(default_factory=StorageCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    extraction: ExtractionCfg = field(default_factory=ExtractionCfg)
    chat: ChatCfg = field(default_factory=ChatCfg)


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


def _validate(cfg: BrainsConfig) -> None:
    if cfg.storage.backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"Unknown storage backend '{cfg.storage.backend}'. "
            f"Choose one of: {', '.join(sorted(STORAGE_BACKENDS))}"
        )
    if cfg.embedding.batch_size < 1:
        raise ConfigError("embedding.batch_size must be >= 1")
    if cfg.embedding.batch_delay < 0:
        raise ConfigError("embedding.batch_delay must be >= 0")
    if cfg.chunking.chunk_size < 1:
        raise ConfigError("chunking.chunk_size must be >= 1")
    if cfg.chunking.overlap < 0:
        raise ConfigError("chunking.overlap must be >= 0")
    if cfg.extraction.max_file_size < 1 or cfg.extraction.max_text_length < 1:
        raise ConfigError("extraction limits must be >= 1")
    if not 1 <= cfg.chat.results <= 20:
        raise ConfigError(f"chat.results must be between 1 and 20, got {cfg.chat.results}")


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


def _cfg_from_dict(data: dict[str, Any]) -> BrainsConfig:
    """Build a *BrainsConfig* from a merged raw YAML dict."""
    cfg = BrainsConfig()

    if "storage" in data:
        s = data["storage"]
        cfg.storage = StorageCfg(
            backend=str(s.get("backend", cfg.storage.backend)).lower(),
            path=str(s.get("path", cfg.storage.path)),
        )

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            batch_delay=float(e.get("batch_delay", cfg.embedding.batch_delay)),
        )

    if "chunking" in data:
        c = data["chunking"]
        cfg.chunking = ChunkingCfg(
            chunk_size=int(c.get("chunk_size", cfg.chunking.chunk_size)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )

    if "extraction" in data:
        x = data["extraction"]
        cfg.extraction = ExtractionCfg(
            max_file_size=int(x.get("max_file_size", cfg.extraction.max_file_size)),
            max_text_length=int(x.get("max_text_length", cfg.extraction.max_text_length)),
        )

    if "chat" in data:
        ch = data["chat"]
        cfg.chat = ChatCfg(
            model=str(ch.get("model", cfg.chat.model)),
            results=int(ch.get("results", cfg.chat.results)),
            max_tokens=int(ch.get("max_tokens", cfg.chat.max_tokens)),
            temperature=float(ch.get("temperature", cfg.chat.temperature)),
            api_base=ch.get("api_base") or cfg.chat.api_base,
        )

    return cfg


def _apply_env_overrides(cfg: BrainsConfig) -> BrainsConfig:
    """Apply PORTABLE_BRAINS_* environment variable overrides."""
    if model := os.environ.get("PORTABLE_BRAINS_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("PORTABLE_BRAINS_CHAT_MODEL"):
        cfg.chat.model = model
    if db := os.environ.get("PORTABLE_BRAINS_DB"):
        cfg.storage.path = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> BrainsConfig:
    """Load and return a merged *BrainsConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *portable-brains.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If the global config contains API-key-like fields, or a
            value is out of range.
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
