"""Status event system for streaming resolution progress to consumers.

The resolver and transcription orchestrator emit events through a callback so
a UI layer (CLI spinner, web socket, ...) can render feedback without polling
internals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from subtrack.core.models import TaskStatus


@dataclass
class StatusEvent:
    """A status change for one video.

    Attributes:
        video_id: Video the event belongs to.
        stage: Resolution stage (native, cache, transcribe).
        status: Task status at the time of the event.
        progress: Progress within the resolution, 0 to 100.
        message: Human-readable status message.
        data: Optional payload (segment count, error code, ...).
    """

    video_id: str
    stage: str
    status: TaskStatus
    progress: float
    message: str
    data: dict | None = field(default=None)


EventCallback = Callable[[StatusEvent], None]
