"""Aegis Shield: reversible PII redaction for text sent to third-party services."""

from .errors import AegisShieldError, ConfigError, NothingToRestoreError, SemanticSourceError
from .merge import merge, resolve_overlaps, spans_overlap
from .patterns import detect, has_pii
from .redactor import (
    PLACEHOLDERS, Redactor, RedactorConfig,
    build_mapping, get_pii_summary, placeholder_for,
    redact, restore, scrub_text, scrub_with_mapping,
)
from .sanitizer import sanitize
from .semantic import PresidioSource, SemanticSource
from .session import ScrubSession
from .store import MappingStore, MemoryStore
from .store_sqlite import SqliteStore
from .config import create_session, load_config, load_from_yaml
from .types import PIIMatch, ProgressEvent, ScrubResult

__all__ = [
    "detect", "has_pii", "sanitize",
    "merge", "resolve_overlaps", "spans_overlap",
    "redact", "scrub_text", "scrub_with_mapping", "restore",
    "build_mapping", "get_pii_summary", "placeholder_for", "PLACEHOLDERS",
    "Redactor", "RedactorConfig",
    "SemanticSource", "PresidioSource",
    "MappingStore", "MemoryStore", "SqliteStore",
    "ScrubSession",
    "create_session", "load_config", "load_from_yaml",
    "PIIMatch", "ProgressEvent", "ScrubResult",
    "AegisShieldError", "ConfigError", "NothingToRestoreError", "SemanticSourceError",
]
__version__ = "0.1.0"
