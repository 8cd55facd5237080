"""Tests for the semantic layer: memoized loading, label mapping, fallback."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import asyncio
import time
from dataclasses import dataclass

import pytest

from aegis_shield import (
    PIIMatch, PresidioSource, Redactor, RedactorConfig, ScrubSession,
    SemanticSource, SemanticSourceError, MemoryStore, restore,
)
from aegis_shield.semantic import label_to_type


@dataclass
class FakeResult:
    entity_type: str
    start: int
    end: int
    score: float = 0.85


class FakeEngine:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.calls = []

    def analyze(self, text, language, entities, score_threshold):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.results


def make_source(engine, loads, *, delay=0.0, fail=False):
    def factory(language, model_name):
        loads.append(model_name)
        if delay:
            time.sleep(delay)
        if fail:
            raise OSError(f"model {model_name} not installed")
        return engine
    return PresidioSource(engine_factory=factory)


class BrokenSource:
    """Semantic source whose inference always fails."""

    async def detect(self, text):
        raise SemanticSourceError("inference failed: boom")

    async def preload(self, on_progress=None):
        return None

    async def dispose(self):
        return None


class CrashingSource(BrokenSource):
    """Third-party source that fails with its own exception type."""

    async def detect(self, text):
        raise RuntimeError("onnx session crashed")


TEXT = "Jane Doe wrote jane@example.com from Paris"


# ── Label mapping ────────────────────────────────────────────────────

def test_label_to_type():
    assert label_to_type("PERSON") == "person"
    assert label_to_type("ORGANIZATION") == "org"
    assert label_to_type("GPE") == "location"
    assert label_to_type("NRP") == "misc"
    assert label_to_type("MEDICAL_LICENSE") == "medical_license"


def test_sources_satisfy_protocol():
    assert isinstance(PresidioSource(), SemanticSource)
    assert isinstance(BrokenSource(), SemanticSource)


# ── Loading ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_concurrent_preload_loads_once():
    loads = []
    source = make_source(FakeEngine(), loads, delay=0.05)
    await asyncio.gather(source.preload(), source.preload(), source.preload())
    assert loads == ["en_core_web_sm"]
    assert source.loaded
    await source.preload()
    assert len(loads) == 1


@pytest.mark.asyncio
async def test_preload_reports_progress_to_every_caller():
    first, second = [], []
    source = make_source(FakeEngine(), [], delay=0.05)
    await asyncio.gather(source.preload(first.append), source.preload(second.append))
    assert [e.status for e in first] == ["initiate", "done"]
    assert [e.status for e in second] == ["initiate", "done"]
    assert first[-1].progress == 1.0


@pytest.mark.asyncio
async def test_failed_load_is_retried():
    loads, events = [], []
    source = make_source(FakeEngine(), loads, fail=True)
    with pytest.raises(SemanticSourceError):
        await source.preload(events.append)
    assert [e.status for e in events] == ["initiate", "error"]
    with pytest.raises(SemanticSourceError):
        await source.detect(TEXT)
    assert len(loads) == 2
    assert not source.loaded


@pytest.mark.asyncio
async def test_dispose_is_idempotent():
    loads = []
    source = make_source(FakeEngine(), loads)
    await source.dispose()
    await source.preload()
    await source.dispose()
    await source.dispose()
    assert not source.loaded
    await source.preload()
    assert len(loads) == 2


# ── Detection ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_detect_maps_results():
    engine = FakeEngine([FakeResult("GPE", 37, 42), FakeResult("PERSON", 0, 8, 0.9)])
    source = make_source(engine, [])
    matches = await source.detect(TEXT)
    assert matches == [
        PIIMatch("person", "Jane Doe", 0, 8, source="presidio", score=0.9),
        PIIMatch("location", "Paris", 37, 42, source="presidio", score=0.85),
    ]


@pytest.mark.asyncio
async def test_detect_blank_text_skips_engine():
    loads = []
    source = make_source(FakeEngine(), loads)
    assert await source.detect("   ") == []
    assert loads == []


@pytest.mark.asyncio
async def test_inference_error_is_wrapped():
    source = make_source(FakeEngine(error=ValueError("bad input")), [])
    with pytest.raises(SemanticSourceError):
        await source.detect(TEXT)


# ── Redactor with semantic layer ─────────────────────────────────────

@pytest.mark.asyncio
async def test_scrub_async_merges_semantic_matches():
    engine = FakeEngine([
        FakeResult("PERSON", 0, 8),
        FakeResult("PERSON", 15, 19),   # "jane" inside the email, regex wins
        FakeResult("LOCATION", 37, 42),
    ])
    redactor = Redactor(semantic=make_source(engine, []))
    result = await redactor.scrub_async(TEXT)
    assert result.scrubbed == "[NAME] wrote [EMAIL] from [LOCATION]"
    assert result.semantic_error is None
    assert restore(result.scrubbed, result.mapping) == TEXT


@pytest.mark.asyncio
async def test_scrub_async_skip_types_apply_to_semantic():
    engine = FakeEngine([FakeResult("PERSON", 0, 8), FakeResult("LOCATION", 37, 42)])
    redactor = Redactor(RedactorConfig(skip_types={"location"}), semantic=make_source(engine, []))
    result = await redactor.scrub_async(TEXT)
    assert result.scrubbed == "[NAME] wrote [EMAIL] from Paris"


@pytest.mark.asyncio
async def test_scrub_async_falls_back_on_failure():
    redactor = Redactor(semantic=BrokenSource())
    result = await redactor.scrub_async(TEXT)
    assert result.scrubbed == "Jane Doe wrote [EMAIL] from Paris"
    assert result.mapping == {"[EMAIL]": "jane@example.com"}
    assert isinstance(result.semantic_error, SemanticSourceError)


@pytest.mark.asyncio
async def test_scrub_async_falls_back_when_model_missing():
    redactor = Redactor(semantic=make_source(FakeEngine(), [], fail=True))
    result = await redactor.scrub_async(TEXT)
    assert result.scrubbed == "Jane Doe wrote [EMAIL] from Paris"
    assert result.semantic_error is not None


@pytest.mark.asyncio
async def test_scrub_async_falls_back_on_foreign_exception():
    redactor = Redactor(semantic=CrashingSource())
    result = await redactor.scrub_async(TEXT)
    assert result.scrubbed == "Jane Doe wrote [EMAIL] from Paris"
    assert isinstance(result.semantic_error, SemanticSourceError)
    assert isinstance(result.semantic_error.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_dispose_during_load_falls_back():
    loads = []
    source = make_source(FakeEngine([FakeResult("PERSON", 0, 8)]), loads, delay=0.2)
    redactor = Redactor(semantic=source)
    pending = asyncio.ensure_future(redactor.scrub_async(TEXT))
    await asyncio.sleep(0.05)
    await source.dispose()
    result = await pending
    assert result.scrubbed == "Jane Doe wrote [EMAIL] from Paris"
    assert isinstance(result.semantic_error, SemanticSourceError)
    assert not source.loaded


@pytest.mark.asyncio
async def test_dispose_during_preload_raises_source_error():
    source = make_source(FakeEngine(), [], delay=0.2)
    pending = asyncio.ensure_future(source.preload())
    await asyncio.sleep(0.05)
    await source.dispose()
    with pytest.raises(SemanticSourceError, match="disposed"):
        await pending


@pytest.mark.asyncio
async def test_scrub_async_without_semantic_source():
    result = await Redactor().scrub_async(TEXT)
    assert result.scrubbed == "Jane Doe wrote [EMAIL] from Paris"


@pytest.mark.asyncio
async def test_session_scrub_async_saves_mapping():
    engine = FakeEngine([FakeResult("PERSON", 0, 8)])
    session = ScrubSession(Redactor(semantic=make_source(engine, [])), MemoryStore())
    scrubbed = await session.scrub_async(TEXT)
    assert scrubbed == "[NAME] wrote [EMAIL] from Paris"
    assert session.restore("Thanks [NAME]") == "Thanks Jane Doe"


def test_structural_scrub_never_loads_semantic():
    loads = []
    redactor = Redactor(semantic=make_source(FakeEngine(), loads))
    assert redactor.scrub(TEXT).scrubbed == "Jane Doe wrote [EMAIL] from Paris"
    assert loads == []
