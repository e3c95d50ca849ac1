"""Shared data models for subtrack."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from subtrack.core.errors import TranscriptionError


class SubtitleSource(str, Enum):
    NATIVE = "native"
    SPEECH = "speech"


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SubtitleSegment:
    """One timed subtitle line.

    Created by the segment parser and never mutated afterwards.
    """

    id: str
    video_id: str
    start_time: float  # seconds
    end_time: float  # seconds
    text: str
    index: int
    source: SubtitleSource = SubtitleSource.NATIVE
    confidence: float | None = None  # speech segments only
    language: str | None = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "video_id": self.video_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "text": self.text,
            "index": self.index,
            "source": self.source.value,
            "confidence": self.confidence,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SubtitleSegment:
        return cls(
            id=data["id"],
            video_id=data["video_id"],
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            text=data["text"],
            index=int(data["index"]),
            source=SubtitleSource(data.get("source", "native")),
            confidence=data.get("confidence"),
            language=data.get("language"),
        )


@dataclass
class CacheEntry:
    """A persisted resolution result for one video."""

    video_id: str
    segments: list[SubtitleSegment]
    source: SubtitleSource
    language: str
    cached_at: float = 0.0
    expires_at: float = 0.0

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "segments": [seg.to_dict() for seg in self.segments],
            "source": self.source.value,
            "language": self.language,
            "cached_at": self.cached_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> CacheEntry:
        return cls(
            video_id=data["video_id"],
            segments=[SubtitleSegment.from_dict(seg) for seg in data["segments"]],
            source=SubtitleSource(data["source"]),
            language=data["language"],
            cached_at=float(data["cached_at"]),
            expires_at=float(data["expires_at"]),
        )


@dataclass
class TranscriptionTask:
    """In-memory record of an outstanding (or just finished) transcription."""

    video_id: str
    status: TaskStatus = TaskStatus.PENDING
    progress: float = 0.0  # 0-100
    error: TranscriptionError | None = None
    retryable: bool = False
    started_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.FAILED)


@dataclass(frozen=True)
class PlaybackCursor:
    """Playback position and the segment active at that position."""

    current_time: float
    active_segment_id: str | None


@dataclass
class TranscriptionResult:
    """Output of the transcription orchestrator."""

    video_id: str
    segments: list[SubtitleSegment]
    language: str
    cached: bool
    source: SubtitleSource = SubtitleSource.SPEECH


@dataclass
class Resolution:
    """What the resolver hands back to its caller for one video."""

    video_id: str
    segments: list[SubtitleSegment]
    source: SubtitleSource | None
    status: TaskStatus
    progress: float = 0.0
    cached: bool = False
    error: TranscriptionError | None = None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable


@dataclass(frozen=True)
class StatusSnapshot:
    """Status projection for a UI layer."""

    status: TaskStatus | None
    progress: float = 0.0
    message: str = ""
    error: TranscriptionError | None = None
