"""Subtitle file conversion utilities.

This module handles:
- Loading subtitle files (SRT, VTT, ASS, JSON) into raw ``{from, to, content}``
  records for the segment parser
- Saving resolved SubtitleSegments to subtitle files for export
"""

from __future__ import annotations

import json
from pathlib import Path

import pysubs2

from subtrack.core.models import SubtitleSegment

EXPORT_FORMATS = ("srt", "vtt", "ass", "txt")


def load_subtitle_records(path: Path) -> list[dict]:
    """Load a subtitle file into raw records.

    Bilibili JSON tracks (``{"body": [{"from", "to", "content"}, ...]}``) are
    read as-is. Everything else goes through pysubs2.
    """
    path = Path(path)

    if path.suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("body", [])
        return data if isinstance(data, list) else []

    subs = pysubs2.load(str(path))
    return [
        {
            "from": event.start / 1000.0,
            "to": event.end / 1000.0,
            "content": event.plaintext,
        }
        for event in subs.events
        if not event.is_comment
    ]


def save_subtitles(segments: list[SubtitleSegment], path: Path, fmt: str = "srt") -> Path:
    """Save SubtitleSegments to a subtitle file.

    Args:
        segments: Segments to write, in display order.
        path: Output file path.
        fmt: Format — "srt", "vtt", "ass", or "txt".

    Returns:
        The path the file was written to.
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported format: {fmt} (expected one of {', '.join(EXPORT_FORMATS)})")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "txt":
        text = "\n".join(seg.text for seg in segments if seg.text.strip())
        path.write_text(text, encoding="utf-8")
    else:
        subs = pysubs2.SSAFile()
        for seg in segments:
            subs.events.append(
                pysubs2.SSAEvent(
                    start=pysubs2.make_time(s=seg.start_time),
                    end=pysubs2.make_time(s=seg.end_time),
                    text=seg.text,
                )
            )
        subs.save(str(path), format_=fmt)

    return path


def format_timestamp(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS past the hour."""
    if seconds != seconds or seconds < 0:
        return "0:00"
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    s = int(seconds % 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"
