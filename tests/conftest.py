"""Shared test fixtures."""

import asyncio
from pathlib import Path

import pytest

from subtrack.cache.store import MemoryStore
from subtrack.cache.subtitle_cache import SubtitleCache
from subtrack.core.models import SubtitleSegment, SubtitleSource
from subtrack.core.resolver import SubtitleResolver
from subtrack.transcriber.orchestrator import TranscriptionOrchestrator

FIXTURES_DIR = Path(__file__).parent / "fixtures"

V1_RECORDS = [
    {"from": 0, "to": 5, "content": "hi"},
    {"from": 5, "to": 10, "content": "there"},
]


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTranscriber:
    """Speech-to-text stand-in that counts calls.

    Set ``error`` to make calls fail, or ``gate`` (an asyncio.Event created
    inside the running loop) to hold calls until it is set.
    """

    def __init__(self, records=None):
        self.records = list(V1_RECORDS) if records is None else records
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, str]] = []

    async def transcribe(self, audio_ref: str, language: str) -> list[dict]:
        self.calls.append((audio_ref, language))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.records


def make_segments(spans, video_id="BV1", source=SubtitleSource.NATIVE) -> list[SubtitleSegment]:
    """Build segments from ``(start, end)`` or ``(start, end, text)`` tuples."""
    segments = []
    for i, span in enumerate(spans):
        start, end = span[0], span[1]
        text = span[2] if len(span) > 2 else f"line {i}"
        segments.append(
            SubtitleSegment(
                id=f"subtitle-{i}",
                video_id=video_id,
                start_time=float(start),
                end_time=float(end),
                text=text,
                index=i,
                source=source,
            )
        )
    return segments


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_srt(fixtures_dir: Path) -> Path:
    return fixtures_dir / "sample.srt"


@pytest.fixture
def bilibili_json(fixtures_dir: Path) -> Path:
    return fixtures_dir / "bilibili.json"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cache(store: MemoryStore, clock: FakeClock) -> SubtitleCache:
    return SubtitleCache(store, clock=clock)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def orchestrator(cache: SubtitleCache, transcriber: FakeTranscriber) -> TranscriptionOrchestrator:
    return TranscriptionOrchestrator(cache, transcriber, default_language="zh")


@pytest.fixture
def resolver(cache: SubtitleCache, orchestrator: TranscriptionOrchestrator) -> SubtitleResolver:
    return SubtitleResolver(cache, orchestrator)
