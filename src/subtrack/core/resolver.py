"""Subtitle resolver — pick the subtitle source for a video.

Order: platform subtitles, then the subtitle cache, then a fresh
transcription. The resolver owns a small per-video state machine, including
whether transcription was already attempted and whether it failed for good,
so callers can re-render and re-resolve freely without triggering a retry
loop.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from subtrack.cache.subtitle_cache import SubtitleCache
from subtrack.core.errors import NoSubtitlesError, NotAvailableType, TranscriptionError
from subtrack.core.events import EventCallback, StatusEvent
from subtrack.core.models import (
    Resolution,
    StatusSnapshot,
    SubtitleSegment,
    SubtitleSource,
    TaskStatus,
)
from subtrack.transcriber.orchestrator import TranscriptionOrchestrator
from subtrack.utils.console import console

NativeResult = Union[Sequence[SubtitleSegment], NotAvailableType]
NativeFetch = Callable[[str], Union[NativeResult, Awaitable[NativeResult]]]


class ResolveState(str, Enum):
    IDLE = "idle"
    CHECKING_NATIVE = "checking_native"
    CHECKING_CACHE = "checking_cache"
    TRANSCRIBING = "transcribing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class _Session:
    state: ResolveState = ResolveState.IDLE
    has_attempted: bool = False
    terminal: TranscriptionError | None = None
    result: Resolution | None = None


class SubtitleResolver:
    """Resolve subtitles for videos.

    Args:
        cache: Shared subtitle cache (the same instance the orchestrator uses).
        orchestrator: Runs speech-to-text when nothing else is available.
        on_event: Optional callback receiving stage changes.
    """

    def __init__(
        self,
        cache: SubtitleCache,
        orchestrator: TranscriptionOrchestrator,
        on_event: EventCallback | None = None,
    ):
        self._cache = cache
        self._orchestrator = orchestrator
        self._on_event = on_event
        self._sessions: dict[str, _Session] = {}

    def _session(self, video_id: str) -> _Session:
        return self._sessions.setdefault(video_id, _Session())

    def _enter(self, video_id: str, state: ResolveState, status: TaskStatus, progress: float, message: str) -> None:
        self._session(video_id).state = state
        if self._on_event:
            self._on_event(
                StatusEvent(
                    video_id=video_id,
                    stage=state.value,
                    status=status,
                    progress=progress,
                    message=message,
                )
            )

    def state(self, video_id: str) -> ResolveState:
        session = self._sessions.get(video_id)
        return session.state if session else ResolveState.IDLE

    async def resolve(
        self,
        video_id: str,
        native_fetch: NativeFetch,
        audio_ref: str | None = None,
        language: str | None = None,
    ) -> Resolution:
        """Resolve subtitles for ``video_id``.

        Args:
            video_id: Video to resolve.
            native_fetch: Returns the platform subtitles (sync or async);
                NOT_AVAILABLE, an empty list, or NoSubtitlesError mean the
                video has none.
            audio_ref: What to transcribe; defaults to ``video_id``.
            language: Spoken language for transcription.

        Returns:
            A Resolution. Transcription failures are reported in it, not raised.

        Raises:
            Exception: Whatever ``native_fetch`` raised, other than absence.
        """
        session = self._session(video_id)

        self._enter(video_id, ResolveState.CHECKING_NATIVE, TaskStatus.PENDING, 0.0, "Fetching subtitles...")
        try:
            native = native_fetch(video_id)
            if inspect.isawaitable(native):
                native = await native
        except NoSubtitlesError:
            native = None
        except Exception:
            self._enter(video_id, ResolveState.FAILED, TaskStatus.FAILED, 0.0, "Subtitle fetch failed")
            raise

        if native:
            return self._done(video_id, list(native), SubtitleSource.NATIVE, cached=False)

        console.print(f"[dim]No native subtitles for {video_id}, checking cache...[/dim]")
        self._enter(video_id, ResolveState.CHECKING_CACHE, TaskStatus.PENDING, 0.0, "Checking cache...")
        entry = await self._cache.get(video_id)
        if entry is not None:
            return self._done(video_id, entry.segments, entry.source, cached=True)

        if session.terminal is not None:
            return self._failed(video_id, session.terminal)

        self._enter(video_id, ResolveState.TRANSCRIBING, TaskStatus.PROCESSING, 0.0, "Generating subtitles...")
        session.has_attempted = True
        try:
            result = await self._orchestrator.transcribe(video_id, audio_ref or video_id, language)
        except TranscriptionError as e:
            if not e.retryable:
                session.terminal = e
            return self._failed(video_id, e)

        return self._done(video_id, result.segments, SubtitleSource.SPEECH, cached=result.cached)

    async def retry(
        self,
        video_id: str,
        native_fetch: NativeFetch,
        audio_ref: str | None = None,
        language: str | None = None,
    ) -> Resolution:
        """Explicit user retry after a failure."""
        self._session(video_id).terminal = None
        self._orchestrator.clear_failure(video_id)
        return await self.resolve(video_id, native_fetch, audio_ref, language)

    def _done(
        self,
        video_id: str,
        segments: list[SubtitleSegment],
        source: SubtitleSource,
        cached: bool,
    ) -> Resolution:
        resolution = Resolution(
            video_id=video_id,
            segments=segments,
            source=source,
            status=TaskStatus.COMPLETED,
            progress=100.0,
            cached=cached,
        )
        self._session(video_id).result = resolution
        label = "cached " if cached else ""
        message = f"Loaded {len(segments)} {label}{source.value} lines"
        self._enter(video_id, ResolveState.DONE, TaskStatus.COMPLETED, 100.0, message)
        return resolution

    def _failed(self, video_id: str, error: TranscriptionError) -> Resolution:
        resolution = Resolution(
            video_id=video_id,
            segments=[],
            source=None,
            status=TaskStatus.FAILED,
            error=error,
        )
        self._session(video_id).result = resolution
        self._enter(video_id, ResolveState.FAILED, TaskStatus.FAILED, 0.0, error.message)
        return resolution

    def status(self, video_id: str) -> StatusSnapshot:
        """Status projection for a UI layer."""
        session = self._sessions.get(video_id)
        if session is None or session.state is ResolveState.IDLE:
            return StatusSnapshot(status=None)

        if session.state is ResolveState.TRANSCRIBING:
            task = self._orchestrator.task(video_id)
            # A finished task with nothing in flight belongs to an earlier attempt
            stale = task is not None and task.is_terminal and not self._orchestrator.is_inflight(video_id)
            if task is None or stale:
                return StatusSnapshot(status=TaskStatus.PENDING, message="Waiting for transcription")
            return StatusSnapshot(
                status=task.status,
                progress=task.progress,
                message="Generating subtitles...",
                error=task.error,
            )

        if session.state is ResolveState.DONE and session.result is not None:
            return StatusSnapshot(status=TaskStatus.COMPLETED, progress=100.0, message="Subtitles ready")

        if session.state is ResolveState.FAILED:
            error = session.result.error if session.result else None
            return StatusSnapshot(
                status=TaskStatus.FAILED,
                message=error.message if error else "Subtitle fetch failed",
                error=error,
            )

        return StatusSnapshot(status=TaskStatus.PENDING, message="Resolving subtitles...")

    def has_attempted(self, video_id: str) -> bool:
        session = self._sessions.get(video_id)
        return bool(session and session.has_attempted)

    def reset(self, video_id: str) -> None:
        """Forget everything about a video (video switch / session end)."""
        self._sessions.pop(video_id, None)
        self._orchestrator.forget(video_id)
