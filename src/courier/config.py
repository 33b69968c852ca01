"""Courier configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (COURIER_GENERATION_MODEL, COURIER_EMBEDDING_MODEL,
                             COURIER_DB)
  3. Per-project courier.yaml
  4. Global ~/.courier/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
Tenant credentials (auth tokens, storefront tokens) live in the database, not
in config files. All YAML reads use yaml.safe_load() — never yaml.load().
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".courier"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "courier.yaml"

# Fields that suggest an API key: forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # auth_token, storefront_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections: unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "database",
        "embedding",
        "generation",
        "retrieval",
        "ingest",
        "responder",
        "messaging",
        "catalog",
    ]
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
class DatabaseCfg:
    """SQLite database location (courier.yaml: database:)."""

    path: str = "courier.db"


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (courier.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536


@dataclass
class GenerationCfg:
    """Reply generation settings (courier.yaml: generation:).

    Low temperature and a small output ceiling keep replies chat-sized.
    """

    model: str = "groq/llama-3.3-70b-versatile"
    temperature: float = 0.2
    max_tokens: int = 500


@dataclass
class RetrievalCfg:
    """Retrieval configuration (courier.yaml: retrieval:)."""

    top_k: int = 5


@dataclass
class IngestCfg:
    """Chunking and catalog pagination (courier.yaml: ingest:)."""

    chunk_size: int = 1500
    product_page_size: int = 250
    page_page_size: int = 100
    collection_page_size: int = 100


@dataclass
class ResponderCfg:
    """Conversation history and mapping-read retry (courier.yaml: responder:)."""

    history_fetch: int = 20
    history_window: int = 10
    retry_attempts: int = 3
    retry_delay: float = 1.0


@dataclass
class MessagingCfg:
    """Outbound messaging API (courier.yaml: messaging:).

    The base URL is the tenant's ``origin``; *send_path* is appended to it.
    """

    send_path: str = "/v1/messages"
    timeout: float = 30.0


@dataclass
class CatalogCfg:
    """Storefront API settings (courier.yaml: catalog:)."""

    api_version: str = "2024-01"
    timeout: float = 30.0


@dataclass
class CourierConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)
    responder: ResponderCfg = field(default_factory=ResponderCfg)
    messaging: MessagingCfg = field(default_factory=MessagingCfg)
    catalog: CatalogCfg = field(default_factory=CatalogCfg)


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


def _validate(cfg: CourierConfig) -> None:
    """Raise ConfigError for values the pipeline cannot run with."""
    if cfg.embedding.dimensions < 1:
        raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")
    if cfg.ingest.chunk_size < 1:
        raise ConfigError(f"ingest.chunk_size must be >= 1, got {cfg.ingest.chunk_size}")
    if cfg.retrieval.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {cfg.retrieval.top_k}")
    if cfg.responder.retry_attempts < 1:
        raise ConfigError(
            f"responder.retry_attempts must be >= 1, got {cfg.responder.retry_attempts}"
        )
    if cfg.responder.history_window > cfg.responder.history_fetch:
        raise ConfigError(
            "responder.history_window cannot exceed responder.history_fetch "
            f"({cfg.responder.history_window} > {cfg.responder.history_fetch})"
        )


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


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


def _cfg_from_dict(data: dict[str, Any]) -> CourierConfig:
    """Build a *CourierConfig* from a merged raw YAML dict."""
    cfg = CourierConfig()

    if "database" in data:
        d = data["database"]
        cfg.database = DatabaseCfg(path=str(d.get("path", cfg.database.path)))

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
        )

    if "generation" in data:
        g = data["generation"]
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            temperature=float(g.get("temperature", cfg.generation.temperature)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(top_k=int(r.get("top_k", cfg.retrieval.top_k)))

    if "ingest" in data:
        i = data["ingest"]
        cfg.ingest = IngestCfg(
            chunk_size=int(i.get("chunk_size", cfg.ingest.chunk_size)),
            product_page_size=int(i.get("product_page_size", cfg.ingest.product_page_size)),
            page_page_size=int(i.get("page_page_size", cfg.ingest.page_page_size)),
            collection_page_size=int(
                i.get("collection_page_size", cfg.ingest.collection_page_size)
            ),
        )

    if "responder" in data:
        rs = data["responder"]
        cfg.responder = ResponderCfg(
            history_fetch=int(rs.get("history_fetch", cfg.responder.history_fetch)),
            history_window=int(rs.get("history_window", cfg.responder.history_window)),
            retry_attempts=int(rs.get("retry_attempts", cfg.responder.retry_attempts)),
            retry_delay=float(rs.get("retry_delay", cfg.responder.retry_delay)),
        )

    if "messaging" in data:
        m = data["messaging"]
        cfg.messaging = MessagingCfg(
            send_path=str(m.get("send_path", cfg.messaging.send_path)),
            timeout=float(m.get("timeout", cfg.messaging.timeout)),
        )

    if "catalog" in data:
        c = data["catalog"]
        cfg.catalog = CatalogCfg(
            api_version=str(c.get("api_version", cfg.catalog.api_version)),
            timeout=float(c.get("timeout", cfg.catalog.timeout)),
        )

    return cfg


def _apply_env_overrides(cfg: CourierConfig) -> CourierConfig:
    """Apply COURIER_* environment variable overrides (layer 2)."""
    if model := os.environ.get("COURIER_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("COURIER_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db := os.environ.get("COURIER_DB"):
        cfg.database.path = db
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> CourierConfig:
    """Load and return a merged *CourierConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *courier.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *CourierConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def write_project_config(project_dir: Path) -> Path:
    """Write a default ``courier.yaml`` into *project_dir* unless one exists.

    Returns:
        Path to the project config file.
    """
    target = project_dir / _PROJECT_CONFIG_NAME
    if not target.exists():
        defaults = CourierConfig()
        content = (
            "# Courier project configuration.\n"
            "# Provider API keys belong in environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "#   export GROQ_API_KEY=gsk_...\n"
            "\n"
            "database:\n"
            f"  path: {defaults.database.path}\n"
            "\n"
            "embedding:\n"
            f"  model: {defaults.embedding.model}\n"
            f"  dimensions: {defaults.embedding.dimensions}\n"
            "\n"
            "generation:\n"
            f"  model: {defaults.generation.model}\n"
            f"  temperature: {defaults.generation.temperature}\n"
            f"  max_tokens: {defaults.generation.max_tokens}\n"
            "\n"
            "retrieval:\n"
            f"  top_k: {defaults.retrieval.top_k}\n"
        )
        target.write_text(content, encoding="utf-8")
    return target
