"""Redactor, the main API.  Structural patterns first, semantic source second.

Usage:
    from aegis_shield import scrub_with_mapping, restore

    result = scrub_with_mapping("Email me at john@acme.com")
    print(result.scrubbed)       # "Email me at [EMAIL]"
    print(result.mapping)        # {"[EMAIL]": "john@acme.com"}

    reply = "Sure, I'll write to [EMAIL]."
    print(restore(reply, result.mapping))  # "Sure, I'll write to john@acme.com."

Every function here is pure: sanitized text and match sets go in, new
strings and mappings come out.
"""

from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from .errors import NothingToRestoreError, SemanticSourceError
from .merge import merge, resolve_overlaps
from .patterns import detect
from .sanitizer import sanitize
from .types import PIIMatch, ScrubResult

if TYPE_CHECKING:
    from .semantic import SemanticSource

logger = logging.getLogger(__name__)

PLACEHOLDERS: dict[str, str] = {
    "email": "[EMAIL]",
    "phone": "[PHONE]",
    "ssn": "[SSN]",
    "creditCard": "[CARD]",
    "zipCode": "[ZIP]",
    "ipAddress": "[IP]",
    "date": "[DATE]",
    "person": "[NAME]",
    "org": "[ORG]",
    "location": "[LOCATION]",
    "misc": "[MISC]",
}


def placeholder_for(pii_type: str) -> str:
    """Canonical placeholder for a type, ``[TYPE]`` for unknown tags."""
    return PLACEHOLDERS.get(pii_type) or f"[{pii_type.upper()}]"


# ------------------------------------------------------------------
# Redaction
# ------------------------------------------------------------------

def redact(text: str, matches: Iterable[PIIMatch] | None = None) -> str:
    """Replace matched spans with placeholders.

    Without ``matches`` the text is sanitized and scanned first.  Supplied
    matches must refer to ``text`` as given.  Overlapping matches are
    coalesced into one covering placeholder before replacement.
    """
    if matches is None:
        text = sanitize(text)
        matches = detect(text)
    parts: list[str] = []
    cursor = 0
    for m in resolve_overlaps(matches):
        parts.append(text[cursor:m.start_index])
        parts.append(placeholder_for(m.type))
        cursor = m.end_index
    parts.append(text[cursor:])
    return "".join(parts)


def build_mapping(matches: Iterable[PIIMatch]) -> dict[str, str]:
    """Placeholder → first value seen for it, in position order."""
    mapping: dict[str, str] = {}
    for m in sorted(matches, key=lambda m: m.start_index):
        mapping.setdefault(placeholder_for(m.type), m.value)
    return mapping


def _scrub(text: str, matches: list[PIIMatch]) -> ScrubResult:
    """Mapping and scrubbed text from one final match set."""
    final = resolve_overlaps(matches)
    return ScrubResult(
        scrubbed=redact(text, final),
        mapping=build_mapping(final),
        matches=final,
    )


def scrub_with_mapping(
    text: str,
    extra_matches: Iterable[PIIMatch] | None = None,
) -> ScrubResult:
    """Sanitize, detect, merge in ``extra_matches`` and redact reversibly.

    ``extra_matches`` must have been computed against the sanitized text.
    """
    text = sanitize(text)
    matches = detect(text)
    if extra_matches is not None:
        matches = merge(matches, extra_matches)
    return _scrub(text, matches)


def restore(text: str, mapping: dict[str, str] | None) -> str:
    """Replace every literal placeholder occurrence with its original value.

    Raises NothingToRestoreError when the mapping is empty or missing.
    """
    if not mapping:
        raise NothingToRestoreError()
    result = text
    for placeholder, original in mapping.items():
        if placeholder in result:
            result = result.replace(placeholder, original)
    return result


def scrub_text(text: str) -> str:
    """One-shot, irreversible scrub (no mapping kept)."""
    return redact(sanitize(text))


def get_pii_summary(
    text: str,
    matches: Iterable[PIIMatch] | None = None,
) -> dict[str, int]:
    """Count detections per type, for reporting only."""
    if matches is None:
        if not text or not text.strip():
            return {}
        matches = detect(sanitize(text))
    return dict(Counter(m.type for m in matches))


# ------------------------------------------------------------------
# Configured redactor
# ------------------------------------------------------------------

@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    # Types to always skip (e.g. don't redact dates)
    skip_types: set[str] = field(default_factory=set)
    # Allow-list: values that should NEVER be redacted
    allow_list: set[str] = field(default_factory=set)
    # Off: nothing is detected or redacted
    enabled: bool = True


class Redactor:
    """Layered PII redactor.

    Layer 1: structural patterns (emails, phones, SSNs, cards, ...)
    Layer 2: optional semantic source (names, orgs, locations)

    The semantic layer only ever adds spans the structural layer left
    untouched, and its failure never blocks the structural scrub.
    """

    def __init__(
        self,
        config: RedactorConfig | None = None,
        semantic: SemanticSource | None = None,
    ) -> None:
        self.config = config or RedactorConfig()
        self.semantic = semantic

    def _keep(self, matches: Iterable[PIIMatch]) -> list[PIIMatch]:
        if not self.config.enabled:
            return []
        return [
            m for m in matches
            if m.type not in self.config.skip_types
            and m.value not in self.config.allow_list
        ]

    def detect(self, text: str) -> list[PIIMatch]:
        """Structural matches on sanitized text, after config filters."""
        return self._keep(detect(sanitize(text)))

    def scrub(self, text: str) -> ScrubResult:
        """Structural-only reversible scrub."""
        text = sanitize(text)
        return _scrub(text, self._keep(detect(text)))

    async def scrub_async(self, text: str) -> ScrubResult:
        """Scrub with the semantic layer merged in, if one is configured."""
        text = sanitize(text)
        primary = self._keep(detect(text))
        if self.semantic is None or not self.config.enabled:
            return _scrub(text, primary)

        try:
            secondary = await self.semantic.detect(text)
        except Exception as exc:
            if not isinstance(exc, SemanticSourceError):
                wrapped = SemanticSourceError(f"semantic source failed: {exc}")
                wrapped.__cause__ = exc
                exc = wrapped
            logger.warning("Semantic detection failed, using structural matches only: %s", exc)
            result = _scrub(text, primary)
            result.semantic_error = exc
            return result

        return _scrub(text, merge(primary, self._keep(secondary)))

    def summary(self, text: str) -> dict[str, int]:
        if not text or not text.strip():
            return {}
        return get_pii_summary(text, self.detect(text))
