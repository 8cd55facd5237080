"""Scrub/restore session. Saves the mapping between the two actions.

Usage:

    session = ScrubSession.create()

    # Before sending text to a third-party service
    safe = session.scrub("Mail jane@example.com")    # "Mail [EMAIL]"

    # Later, on the service's reply
    real = session.restore("Sent to [EMAIL]")        # "Sent to jane@example.com"

Each scrub replaces the saved mapping; keeping it consistent across
several scrubs is the caller's job.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass

from .redactor import Redactor, RedactorConfig, restore
from .store import MappingStore, MemoryStore
from .types import ScrubResult

logger = logging.getLogger(__name__)

MAPPING_KEY = "pii_mapping"


@dataclass
class ScrubSession:
    """Redactor plus a store holding the last mapping."""

    redactor: Redactor
    store: MappingStore
    key: str = MAPPING_KEY

    @classmethod
    def create(cls, *, config: RedactorConfig | None = None) -> "ScrubSession":
        """Factory: creates a fresh session with its own in-memory store."""
        return cls(redactor=Redactor(config), store=MemoryStore())

    def _save(self, result: ScrubResult) -> ScrubResult:
        self.store.set({self.key: result.mapping})
        logger.debug("Saved mapping with %d placeholder(s)", len(result.mapping))
        return result

    def scrub_result(self, text: str) -> ScrubResult:
        return self._save(self.redactor.scrub(text))

    def scrub(self, text: str) -> str:
        """Scrub text and save its mapping."""
        return self.scrub_result(text).scrubbed

    async def scrub_result_async(self, text: str) -> ScrubResult:
        return self._save(await self.redactor.scrub_async(text))

    async def scrub_async(self, text: str) -> str:
        """Scrub with the semantic layer, if the redactor has one."""
        return (await self.scrub_result_async(text)).scrubbed

    @property
    def mapping(self) -> dict[str, str]:
        return self.store.get([self.key]).get(self.key) or {}

    def restore(self, text: str) -> str:
        """Restore placeholders using the saved mapping.

        Raises NothingToRestoreError if nothing has been scrubbed yet.
        """
        return restore(text, self.mapping)

    def summary(self, text: str) -> dict[str, int]:
        return self.redactor.summary(text)

    def clear(self) -> None:
        self.store.remove([self.key])
        logger.debug("Cleared saved mapping")
