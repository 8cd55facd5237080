"""Layer 2: semantic (NER) detection for unstructured PII.

Catches names, organizations and locations that regex can't reliably
detect.  ``PresidioSource`` wraps Presidio/spaCy; anything exposing the
``SemanticSource`` protocol can stand in for it.

Loading the model is slow, so each source memoizes its initialization:
concurrent first callers await the same in-flight load instead of
starting their own.
"""

from __future__ import annotations
import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from .errors import SemanticSourceError
from .types import PIIMatch, ProgressEvent

if TYPE_CHECKING:
    from presidio_analyzer import AnalyzerEngine

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


@runtime_checkable
class SemanticSource(Protocol):
    """Async entity source composed with the structural detector."""

    async def detect(self, text: str) -> list[PIIMatch]: ...

    async def preload(self, on_progress: ProgressCallback | None = None) -> None: ...

    async def dispose(self) -> None: ...


# Default entity types to detect (Presidio's full set is much larger)
DEFAULT_ENTITIES = [
    "PERSON",
    "ORGANIZATION",
    "LOCATION",
    "NRP",           # nationality, religious, political group
]

# NER label → match type
LABEL_TYPES = {
    "PERSON": "person",
    "PER": "person",
    "ORGANIZATION": "org",
    "ORG": "org",
    "LOCATION": "location",
    "LOC": "location",
    "GPE": "location",
    "NRP": "misc",
}


def label_to_type(label: str) -> str:
    return LABEL_TYPES.get(label.upper(), label.lower())


def _build_engine(language: str, model_name: str) -> AnalyzerEngine:
    """Create the Presidio analyzer (blocking; loads the spaCy model)."""
    from presidio_analyzer import AnalyzerEngine
    from presidio_analyzer.nlp_engine import NlpEngineProvider

    provider = NlpEngineProvider(nlp_configuration={
        "nlp_engine_name": "spacy",
        "models": [{"lang_code": language, "model_name": model_name}],
    })
    nlp_engine = provider.create_engine()
    return AnalyzerEngine(nlp_engine=nlp_engine, supported_languages=[language])


class PresidioSource:
    """Presidio-backed semantic source.

    Args:
        language: ISO language code.
        entities: Presidio entity types to detect (None = DEFAULT_ENTITIES).
        score_threshold: Minimum confidence score.
        model_name: spaCy model (None = ``{language}_core_web_sm``).
        engine_factory: Callable building the analyzer; defaults to Presidio.
    """

    name = "presidio"

    def __init__(
        self,
        *,
        language: str = "en",
        entities: list[str] | None = None,
        score_threshold: float = 0.35,
        model_name: str | None = None,
        engine_factory: Callable[[str, str], Any] | None = None,
    ) -> None:
        self.language = language
        self.entities = entities or list(DEFAULT_ENTITIES)
        self.score_threshold = score_threshold
        self.model_name = model_name or f"{language}_core_web_sm"
        self._engine_factory = engine_factory or _build_engine
        self._engine: Any = None
        self._loading: asyncio.Task | None = None
        self._listeners: list[ProgressCallback] = []

    @property
    def loaded(self) -> bool:
        return self._engine is not None

    def _emit(self, event: ProgressEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Progress listener raised")

    async def _load(self) -> None:
        logger.info("Loading semantic model %s", self.model_name)
        self._emit(ProgressEvent("initiate", 0.0, self.model_name))
        try:
            engine = await asyncio.to_thread(
                self._engine_factory, self.language, self.model_name,
            )
        except Exception as exc:
            logger.error("Semantic model %s failed to load: %s", self.model_name, exc)
            self._emit(ProgressEvent("error", 0.0, str(exc)))
            raise SemanticSourceError(f"failed to load {self.model_name}: {exc}") from exc
        self._engine = engine
        self._emit(ProgressEvent("done", 1.0, self.model_name))
        logger.info("Semantic model %s ready", self.model_name)

    async def preload(self, on_progress: ProgressCallback | None = None) -> None:
        """Load the model once; concurrent callers share the same load."""
        if self._engine is not None:
            return
        if on_progress is not None:
            self._listeners.append(on_progress)
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._load())
        task = self._loading
        try:
            await asyncio.shield(task)
        except SemanticSourceError:
            # Failed loads are not memoized; the next call retries
            if self._loading is task:
                self._loading = None
            raise
        except asyncio.CancelledError:
            # dispose() cancelled the shared load; our own cancellation propagates
            if not task.cancelled():
                raise
            raise SemanticSourceError("semantic source was disposed") from None
        finally:
            if on_progress is not None and on_progress in self._listeners:
                self._listeners.remove(on_progress)

    async def detect(self, text: str) -> list[PIIMatch]:
        """Run NER over text (already sanitized by the caller)."""
        if not text or not text.strip():
            return []
        await self.preload()
        engine = self._engine
        if engine is None:
            raise SemanticSourceError("semantic source was disposed")
        try:
            results = await asyncio.to_thread(
                engine.analyze,
                text=text,
                language=self.language,
                entities=self.entities,
                score_threshold=self.score_threshold,
            )
        except Exception as exc:
            raise SemanticSourceError(f"inference failed: {exc}") from exc

        matches = [
            PIIMatch(
                type=label_to_type(r.entity_type),
                value=text[r.start:r.end],
                start_index=r.start,
                end_index=r.end,
                source=self.name,
                score=r.score,
            )
            for r in results
            if 0 <= r.start < r.end <= len(text)
        ]
        return sorted(matches, key=lambda m: m.start_index)

    async def dispose(self) -> None:
        """Drop the engine.  Safe to call repeatedly."""
        task, self._loading = self._loading, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, SemanticSourceError):
                pass
        self._engine = None
        self._listeners.clear()
