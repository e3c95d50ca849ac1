"""Parse raw subtitle records into SubtitleSegments.

Input records look like ``{"from": 1.0, "to": 2.5, "content": "..."}``, the
shape of a Bilibili subtitle export. Speech-to-text output is mapped to the
same shape by its adapter before reaching this module.

Bad records are dropped one by one with a warning; a partially broken track
still yields every usable line.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

from subtrack.core.models import SubtitleSegment, SubtitleSource
from subtrack.utils.console import console


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _rejection(item: object) -> str | None:
    """Return why a raw record is unusable, or None if it is fine."""
    if not isinstance(item, Mapping):
        return "not a record"
    start, end, content = item.get("from"), item.get("to"), item.get("content")
    if not _is_number(start) or not _is_number(end) or not isinstance(content, str):
        return "missing or mistyped fields"
    if start < 0 or end <= start:
        return "invalid timing"
    if not content.strip():
        return "empty content"
    return None


def _confidence(item: Mapping) -> float | None:
    value = item.get("confidence")
    if _is_number(value) and 0.0 <= value <= 1.0:
        return float(value)
    return None


def parse_segments(
    raw_items: object,
    video_id: str,
    source: SubtitleSource = SubtitleSource.NATIVE,
    language: str | None = None,
) -> list[SubtitleSegment]:
    """Validate and normalize raw subtitle records.

    Args:
        raw_items: Sequence of ``{from, to, content}`` records.
        video_id: Owning video.
        source: Where the records came from. Confidence values are only kept
            for speech-sourced records.
        language: Optional language tag stored on each segment.

    Returns:
        Segments numbered densely from 0 in input order and sorted by start
        time. Empty if ``raw_items`` is not a list or tuple.
    """
    if not isinstance(raw_items, Sequence) or isinstance(raw_items, (str, bytes)):
        console.print("[yellow]Invalid subtitle data: expected a list of records[/yellow]")
        return []

    segments: list[SubtitleSegment] = []
    for item in raw_items:
        reason = _rejection(item)
        if reason:
            console.print(f"[yellow]Skipping subtitle record ({reason}):[/yellow] {item!r}")
            continue
        index = len(segments)
        segments.append(
            SubtitleSegment(
                id=f"subtitle-{index}",
                video_id=video_id,
                start_time=float(item["from"]),
                end_time=float(item["to"]),
                text=item["content"].strip(),
                index=index,
                source=source,
                confidence=_confidence(item) if source is SubtitleSource.SPEECH else None,
                language=language,
            )
        )

    # Stable: equal start times keep emission order
    segments.sort(key=lambda seg: seg.start_time)
    return segments


def is_valid_subtitle_data(data: object) -> bool:
    """Check that ``data`` is a non-empty list of well-typed raw records.

    Stricter than ``parse_segments``: a single bad record fails the check.
    Timing and content are not validated here, only field types.
    """
    if not isinstance(data, (list, tuple)) or not data:
        return False
    return all(
        isinstance(item, Mapping)
        and _is_number(item.get("from"))
        and _is_number(item.get("to"))
        and isinstance(item.get("content"), str)
        for item in data
    )
