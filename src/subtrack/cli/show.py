"""subtrack show / mark / export commands — work with resolved subtitles."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from subtrack.cli.utils import build_cache, segments_table, video_id_or_exit
from subtrack.core.config import SubtrackConfig, load_config
from subtrack.core.errors import HighlightStorageError
from subtrack.core.highlights import HighlightStore
from subtrack.core.models import CacheEntry
from subtrack.core.sync import PlaybackSyncEngine, get_segment_by_id
from subtrack.subtitles.converter import EXPORT_FORMATS, save_subtitles
from subtrack.utils.console import console


def _cached_or_exit(config: SubtrackConfig, video_id: str) -> CacheEntry:
    entry = asyncio.run(build_cache(config).get(video_id))
    if entry is None:
        console.print(f"[yellow]No cached subtitles for {video_id}.[/yellow] Run 'subtrack resolve' first.")
        raise typer.Exit(1)
    return entry


def _highlights(config: SubtrackConfig) -> HighlightStore:
    return HighlightStore(config.highlights_dir)


def show(
    input_ref: Annotated[str, typer.Argument(help="Video URL or Bilibili id.")],
    at: Annotated[
        Optional[float],
        typer.Option("--at", help="Playback position in seconds; marks the active line."),
    ] = None,
) -> None:
    """Show cached subtitles with highlights and the line active at --at."""
    config = load_config()
    video_id, _ = video_id_or_exit(input_ref)
    entry = _cached_or_exit(config, video_id)

    active_id = None
    if at is not None:
        cursor = PlaybackSyncEngine(entry.segments).cursor(at)
        active_id = cursor.active_segment_id
        if active_id is None:
            console.print(f"[dim]No line is active at {at:g}s.[/dim]")

    highlighted = _highlights(config).load(video_id)
    title = f"{video_id} — {entry.source.value} ({entry.language})"
    console.print(segments_table(entry.segments, title, active_id=active_id, highlighted=highlighted))


def mark(
    input_ref: Annotated[str, typer.Argument(help="Video URL or Bilibili id.")],
    segment_id: Annotated[
        Optional[str],
        typer.Argument(help="Segment id to toggle (e.g. subtitle-3)."),
    ] = None,
    clear: Annotated[
        bool,
        typer.Option("--clear", help="Remove every highlight for the video."),
    ] = False,
) -> None:
    """Toggle a highlight on a subtitle line."""
    config = load_config()
    video_id, _ = video_id_or_exit(input_ref)
    store = _highlights(config)

    if clear:
        store.clear(video_id)
        console.print(f"[green]Cleared highlights for {video_id}[/green]")
        return
    if segment_id is None:
        console.print("[red]Give a segment id or --clear.[/red]")
        raise typer.Exit(1)

    entry = _cached_or_exit(config, video_id)
    if get_segment_by_id(segment_id, entry.segments) is None:
        console.print(f"[red]Unknown segment:[/red] {segment_id}")
        raise typer.Exit(1)

    try:
        on = store.toggle(video_id, segment_id)
    except HighlightStorageError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    state = "highlighted" if on else "unhighlighted"
    console.print(f"[green]{segment_id} {state}[/green] ({store.count(video_id)} total)")


def export(
    input_ref: Annotated[str, typer.Argument(help="Video URL or Bilibili id.")],
    output: Annotated[Path, typer.Argument(help="Output file path.")],
    fmt: Annotated[
        Optional[str],
        typer.Option("--format", "-f", help="Output format: srt, vtt, ass, txt. Default: from extension."),
    ] = None,
) -> None:
    """Export cached subtitles to a subtitle file."""
    config = load_config()
    video_id, _ = video_id_or_exit(input_ref)
    fmt = fmt or output.suffix.lstrip(".") or "srt"
    if fmt not in EXPORT_FORMATS:
        console.print(f"[red]Unsupported format:[/red] {fmt}")
        raise typer.Exit(1)

    entry = _cached_or_exit(config, video_id)
    path = save_subtitles(entry.segments, output, fmt=fmt)
    console.print(f"[green]Saved:[/green] {path}")
