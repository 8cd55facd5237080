"""Core types."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .errors import SemanticSourceError


@dataclass(frozen=True, slots=True)
class PIIMatch:
    """A single detected PII occurrence.

    Offsets are half-open and refer to the exact string that was scanned,
    so ``value == text[start_index:end_index]``.
    """
    type: str              # e.g. "email", "creditCard", "person"
    value: str
    start_index: int
    end_index: int
    source: str = "regex"  # "regex" | name of the semantic source
    score: float = 1.0     # 0.0–1.0 confidence

    @property
    def span(self) -> tuple[int, int]:
        return (self.start_index, self.end_index)


@dataclass(slots=True)
class ScrubResult:
    """Result of a reversible scrub."""
    scrubbed: str                                        # text with placeholders
    mapping: dict[str, str] = field(default_factory=dict)  # placeholder → original
    matches: list[PIIMatch] = field(default_factory=list)
    # Set when the semantic source failed and only structural matches were used
    semantic_error: SemanticSourceError | None = None


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress notification emitted while a semantic source initializes."""
    status: str            # "initiate" | "done" | "error"
    progress: float = 0.0  # 0.0–1.0
    message: str = ""
