"""YAML/dict config loader for aegis_shield.

Supports loading from a YAML file or a plain dict (for embedding in a
larger application config).

Example YAML:

    aegis_shield:
      enabled: true
      skip_types:
        - date
      allow_list:
        - support@example.com
      semantic:
        enabled: false
        language: en
        score_threshold: 0.35
        entities:
          - PERSON
          - ORGANIZATION
          - LOCATION
      store:
        backend: sqlite          # "memory" or "sqlite"
        path: ~/.aegis-shield/store.db
        namespace: default
"""

from __future__ import annotations
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .redactor import Redactor, RedactorConfig
from .semantic import PresidioSource
from .session import ScrubSession
from .store import MemoryStore
from .store_sqlite import SqliteStore
from .types import ScrubResult

STORE_BACKENDS = ("memory", "sqlite")


class _NoopSession:
    """Pass-through session when redaction is disabled."""
    def scrub(self, text: str) -> str:
        return text
    async def scrub_async(self, text: str) -> str:
        return text
    def scrub_result(self, text: str) -> ScrubResult:
        return ScrubResult(scrubbed=text)
    def restore(self, text: str) -> str:
        return text
    def summary(self, text: str) -> dict[str, int]:
        return {}
    def clear(self) -> None:
        pass
    @property
    def mapping(self) -> dict[str, str]:
        return {}


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "aegis_shield" key or flat
    if "aegis_shield" in data:
        data = data["aegis_shield"] or {}

    semantic = data.get("semantic") or {}
    store = data.get("store") or {}

    backend = store.get("backend", "memory")
    if backend not in STORE_BACKENDS:
        raise ConfigError(f"unknown store backend {backend!r}; expected one of {STORE_BACKENDS}")
    try:
        threshold = float(semantic.get("score_threshold", 0.35))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid semantic.score_threshold: {exc}") from exc

    return {
        "enabled": data.get("enabled", True),
        "skip_types": set(data.get("skip_types") or []),
        "allow_list": set(data.get("allow_list") or []),
        "semantic_enabled": semantic.get("enabled", False),
        "language": semantic.get("language", "en"),
        "score_threshold": threshold,
        "entities": semantic.get("entities"),
        "model_name": semantic.get("model_name"),
        "store_backend": backend,
        "store_path": store.get("path", "store.db"),
        "store_namespace": store.get("namespace", "default"),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    try:
        with open(path) as f:
            return load_config(yaml.safe_load(f))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot load {path}: {exc}") from exc


def create_redactor(cfg: dict[str, Any]) -> Redactor:
    """Build a Redactor (with its semantic source, if enabled) from a normalized config."""
    semantic = None
    if cfg["enabled"] and cfg["semantic_enabled"]:
        semantic = PresidioSource(
            language=cfg["language"],
            entities=cfg["entities"],
            score_threshold=cfg["score_threshold"],
            model_name=cfg["model_name"],
        )
    return Redactor(
        RedactorConfig(
            skip_types=cfg["skip_types"],
            allow_list=cfg["allow_list"],
            enabled=cfg["enabled"],
        ),
        semantic=semantic,
    )


def create_session(config: dict[str, Any] | None) -> ScrubSession:
    """Create a fully configured session from a config dict."""
    config = config or {}
    cfg = config if "store_backend" in config else load_config(config)

    if not cfg["enabled"]:
        # Return a pass-through session (no redaction)
        return _NoopSession()

    if cfg["store_backend"] == "sqlite":
        store = SqliteStore(cfg["store_namespace"], db_path=cfg["store_path"])
    else:
        store = MemoryStore()

    return ScrubSession(redactor=create_redactor(cfg), store=store)
