"""Map playback time to the active subtitle segment.

The active segment at time ``t`` is the first segment, in ascending start
time order, with ``start_time <= t < end_time``. Overlapping segments are
resolved by that first-match rule.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence

from subtrack.core.models import PlaybackCursor, SubtitleSegment


def find_active_segment(current_time: float, segments: Sequence[SubtitleSegment]) -> SubtitleSegment | None:
    """Linear-scan lookup of the active segment. Fine for short lists."""
    for seg in segments:
        if seg.start_time <= current_time < seg.end_time:
            return seg
    return None


def get_segment_by_id(segment_id: str, segments: Sequence[SubtitleSegment]) -> SubtitleSegment | None:
    for seg in segments:
        if seg.id == segment_id:
            return seg
    return None


class PlaybackSyncEngine:
    """Answers "which line is active now?" in O(log n) per tick.

    Keeps the start times and a running maximum of end times. The running
    maximum is non-decreasing, so the first segment that could still be
    playing at ``t`` is found by bisection, and it is the first match
    whenever its start is not after ``t``.
    """

    def __init__(self, segments: Sequence[SubtitleSegment] = ()):
        self.load(segments)

    def load(self, segments: Sequence[SubtitleSegment]) -> None:
        """Replace the segment list (e.g. on video switch)."""
        segments = tuple(segments)
        starts: list[float] = []
        max_ends: list[float] = []
        running = float("-inf")
        for i, seg in enumerate(segments):
            assert seg.end_time > seg.start_time, f"segment {seg.id} ends before it starts"
            assert i == 0 or segments[i - 1].start_time <= seg.start_time, "segments not sorted by start time"
            starts.append(seg.start_time)
            running = max(running, seg.end_time)
            max_ends.append(running)
        self._segments = segments
        self._starts = starts
        self._max_ends = max_ends

    @property
    def segments(self) -> tuple[SubtitleSegment, ...]:
        return self._segments

    def active_segment(self, current_time: float) -> SubtitleSegment | None:
        # Last segment starting at or before t
        last = bisect_right(self._starts, current_time) - 1
        if last < 0:
            return None
        # First segment whose end (or an earlier one's) lies after t
        first = bisect_right(self._max_ends, current_time)
        if first > last:
            return None
        return self._segments[first]

    def cursor(self, current_time: float) -> PlaybackCursor:
        seg = self.active_segment(current_time)
        return PlaybackCursor(current_time=current_time, active_segment_id=seg.id if seg else None)
