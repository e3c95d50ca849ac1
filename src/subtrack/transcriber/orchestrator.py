"""Transcription orchestrator — one external speech-to-text call per video.

Drives the external transcription service, de-duplicates concurrent requests
for the same video, classifies failures and writes successful results through
to the subtitle cache.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol

from subtrack.cache.subtitle_cache import SubtitleCache
from subtrack.core.errors import ErrorKind, TranscriptionError, classify_error
from subtrack.core.events import EventCallback, StatusEvent
from subtrack.core.models import (
    CacheEntry,
    SubtitleSegment,
    SubtitleSource,
    TaskStatus,
    TranscriptionResult,
    TranscriptionTask,
)
from subtrack.subtitles.parser import parse_segments
from subtrack.utils.console import console

# Progress reported once the request has been handed to the service
_DISPATCHED_PROGRESS = 10.0


class Transcriber(Protocol):
    async def transcribe(self, audio_ref: str, language: str) -> list[dict]:
        """Return raw ``{from, to, content[, confidence]}`` records."""


class TranscriptionOrchestrator:
    """Runs speech-to-text for videos without native subtitles.

    Args:
        cache: Shared subtitle cache; successful results are written to it.
        transcriber: External speech-to-text collaborator.
        default_language: Language used when ``transcribe`` gets none.
        timeout: Default bound, in seconds, on how long a caller waits.
        on_event: Optional callback receiving task status changes.
    """

    def __init__(
        self,
        cache: SubtitleCache,
        transcriber: Transcriber,
        default_language: str = "zh",
        timeout: float | None = None,
        on_event: EventCallback | None = None,
    ):
        self._cache = cache
        self._transcriber = transcriber
        self._default_language = default_language
        self._timeout = timeout
        self._on_event = on_event
        self._tasks: dict[str, TranscriptionTask] = {}
        self._inflight: dict[str, asyncio.Task[TranscriptionResult]] = {}
        self._terminal: dict[str, TranscriptionError] = {}

    def _emit(self, task: TranscriptionTask, message: str, data: dict | None = None) -> None:
        if self._on_event:
            self._on_event(
                StatusEvent(
                    video_id=task.video_id,
                    stage="transcribe",
                    status=task.status,
                    progress=task.progress,
                    message=message,
                    data=data,
                )
            )

    def task(self, video_id: str) -> TranscriptionTask | None:
        """The current (or last finished) task for ``video_id``."""
        return self._tasks.get(video_id)

    def terminal_error(self, video_id: str) -> TranscriptionError | None:
        """The terminal failure remembered for ``video_id`` this session."""
        return self._terminal.get(video_id)

    def is_inflight(self, video_id: str) -> bool:
        return video_id in self._inflight

    async def transcribe(
        self,
        video_id: str,
        audio_ref: str,
        language: str | None = None,
        force_refresh: bool = False,
        timeout: float | None = None,
    ) -> TranscriptionResult:
        """Get speech-sourced subtitles for a video.

        Args:
            video_id: Video to transcribe.
            audio_ref: Reference the transcriber understands (URL or path).
            language: Spoken language code.
            force_refresh: Skip the cache lookup.
            timeout: Seconds to wait for the result; overrides the default.

        Returns:
            TranscriptionResult, with ``cached=True`` when served from cache.

        Raises:
            TranscriptionError: Classified failure (also raised, without a new
                external call, for a terminal failure remembered this session).
        """
        language = language or self._default_language

        if not force_refresh:
            entry = await self._cache.get(video_id)
            if entry is not None and entry.source is SubtitleSource.SPEECH:
                return TranscriptionResult(
                    video_id=video_id,
                    segments=entry.segments,
                    language=entry.language,
                    cached=True,
                )

        remembered = self._terminal.get(video_id)
        if remembered is not None:
            raise remembered

        # No await between the lookup and the insert: concurrent callers for
        # the same video always find the first caller's task.
        shared = self._inflight.get(video_id)
        if shared is None:
            shared = self._start(video_id, audio_ref, language)

        timeout = timeout if timeout is not None else self._timeout
        try:
            return await asyncio.wait_for(asyncio.shield(shared), timeout)
        except asyncio.TimeoutError as e:
            return self._timed_out(video_id, timeout, e)

    def _start(self, video_id: str, audio_ref: str, language: str) -> asyncio.Task:
        task = TranscriptionTask(video_id=video_id)
        self._tasks[video_id] = task
        self._emit(task, "Transcription queued")

        shared = asyncio.ensure_future(self._run(task, audio_ref, language))
        self._inflight[video_id] = shared

        def _done(fut: asyncio.Future) -> None:
            if self._inflight.get(video_id) is fut:
                del self._inflight[video_id]
            # Mark the outcome as retrieved even if every caller stopped waiting
            if not fut.cancelled():
                fut.exception()

        shared.add_done_callback(_done)
        return shared

    def _timed_out(self, video_id: str, timeout: float | None, cause: BaseException):
        error = TranscriptionError(
            ErrorKind.RETRYABLE,
            "TIMEOUT",
            f"Transcription did not finish within {timeout:g}s",
            cause=cause,
        )
        task = self._tasks.get(video_id)
        if task is not None and not task.is_terminal:
            task.status = TaskStatus.FAILED
            task.error = error
            task.retryable = True
            self._emit(task, error.message, data={"code": error.code})
        console.print(f"[yellow]Transcription timed out for {video_id}; still running in background[/yellow]")
        raise error

    async def _run(self, task: TranscriptionTask, audio_ref: str, language: str) -> TranscriptionResult:
        video_id = task.video_id
        task.status = TaskStatus.PROCESSING
        task.progress = _DISPATCHED_PROGRESS
        self._emit(task, "Transcribing audio...")
        console.print(f"[bold]Transcribing:[/bold] {video_id} ({language})")

        try:
            raw = await self._transcriber.transcribe(audio_ref, language)
        except Exception as e:
            error = classify_error(e)
            task.status = TaskStatus.FAILED
            task.error = error
            task.retryable = error.retryable
            task.completed_at = time.time()
            if not error.retryable:
                self._terminal[video_id] = error
            self._emit(task, error.message, data={"code": error.code, "kind": error.kind.value})
            console.print(f"[red]Transcription failed ({error.kind.value}, {error.code}):[/red] {error.message}")
            raise error from e

        segments = parse_segments(raw, video_id, source=SubtitleSource.SPEECH, language=language)
        await self._cache.put(
            CacheEntry(
                video_id=video_id,
                segments=segments,
                source=SubtitleSource.SPEECH,
                language=language,
            )
        )

        # A timed-out caller may have marked the task failed; the late result wins
        task.status = TaskStatus.COMPLETED
        task.progress = 100.0
        task.error = None
        task.retryable = False
        task.completed_at = time.time()
        self._emit(task, "Transcription complete", data={"segments": len(segments)})
        console.print(f"[green]Transcription complete:[/green] {len(segments)} segments")
        return TranscriptionResult(video_id=video_id, segments=segments, language=language, cached=False)

    async def retry(
        self,
        video_id: str,
        audio_ref: str,
        language: str | None = None,
        timeout: float | None = None,
    ) -> TranscriptionResult:
        """Explicit user retry: forget a terminal failure and try again."""
        self.clear_failure(video_id)
        return await self.transcribe(video_id, audio_ref, language, force_refresh=False, timeout=timeout)

    def clear_failure(self, video_id: str) -> None:
        """Forget a remembered terminal failure so the next call may run."""
        self._terminal.pop(video_id, None)

    def forget(self, video_id: str) -> None:
        """Drop session state for a video (video switch or session end).

        A call already in flight keeps running and still writes the cache.
        """
        self._tasks.pop(video_id, None)
        self._terminal.pop(video_id, None)

    async def has_cached_result(self, video_id: str) -> bool:
        return await self.cached_segments(video_id) is not None

    async def cached_segments(self, video_id: str) -> list[SubtitleSegment] | None:
        entry = await self._cache.get(video_id)
        if entry is not None and entry.source is SubtitleSource.SPEECH:
            return entry.segments
        return None

    async def clear_cache(self, video_id: str) -> None:
        await self._cache.remove(video_id)
