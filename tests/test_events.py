"""Tests for the status event system."""

from subtrack.core.events import StatusEvent
from subtrack.core.models import TaskStatus


def test_event_fields():
    event = StatusEvent(
        video_id="BV1",
        stage="transcribe",
        status=TaskStatus.PROCESSING,
        progress=10.0,
        message="Transcribing audio...",
    )
    assert event.video_id == "BV1"
    assert event.status is TaskStatus.PROCESSING
    assert event.data is None


def test_event_with_data():
    event = StatusEvent(
        video_id="BV1",
        stage="transcribe",
        status=TaskStatus.COMPLETED,
        progress=100.0,
        message="Transcription complete",
        data={"segments": 2},
    )
    assert event.data["segments"] == 2


def test_callback_collects_events():
    events: list[StatusEvent] = []
    callback = events.append
    callback(StatusEvent("BV1", "checking_cache", TaskStatus.PENDING, 0.0, "Checking cache..."))
    callback(StatusEvent("BV1", "done", TaskStatus.COMPLETED, 100.0, "Loaded 2 lines"))
    assert [e.stage for e in events] == ["checking_cache", "done"]
