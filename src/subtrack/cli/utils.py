"""Shared CLI utilities."""

from __future__ import annotations

from dataclasses import dataclass

import typer
from rich.table import Table

from subtrack.cache.store import DirectoryStore, MemoryStore
from subtrack.cache.subtitle_cache import SubtitleCache
from subtrack.core.config import SubtrackConfig
from subtrack.core.models import SubtitleSegment
from subtrack.core.resolver import SubtitleResolver
from subtrack.downloader.resolver import resolve_input
from subtrack.subtitles.converter import format_timestamp
from subtrack.transcriber.api import ApiTranscriber
from subtrack.transcriber.orchestrator import TranscriptionOrchestrator
from subtrack.utils.console import console


@dataclass
class Engine:
    cache: SubtitleCache
    orchestrator: TranscriptionOrchestrator
    resolver: SubtitleResolver


def build_cache(config: SubtrackConfig, use_cache: bool = True) -> SubtitleCache:
    """Subtitle cache on the workspace directory, or in memory only."""
    if use_cache and config.cache.enabled:
        store = DirectoryStore(config.cache_dir)
    else:
        store = MemoryStore()
    return SubtitleCache(store, ttl=config.cache_ttl)


def build_engine(config: SubtrackConfig, use_cache: bool = True) -> Engine:
    """Wire cache, orchestrator and resolver around one shared cache."""
    cache = build_cache(config, use_cache)
    transcriber = ApiTranscriber(config.transcription, config.download, config.download_dir)
    orchestrator = TranscriptionOrchestrator(
        cache,
        transcriber,
        default_language=config.transcription.language,
        timeout=config.transcription.timeout,
    )
    return Engine(cache=cache, orchestrator=orchestrator, resolver=SubtitleResolver(cache, orchestrator))


def video_id_or_exit(input_ref: str) -> tuple[str, str]:
    """``resolve_input`` that turns bad input into a CLI error."""
    try:
        return resolve_input(input_ref)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def segments_table(
    segments: list[SubtitleSegment],
    title: str,
    active_id: str | None = None,
    highlighted: set[str] | None = None,
) -> Table:
    """Render segments as a rich table, marking active and highlighted lines."""
    highlighted = highlighted or set()
    show_confidence = any(seg.confidence is not None for seg in segments)

    table = Table(title=title)
    table.add_column("", width=2)
    table.add_column("ID", style="dim")
    table.add_column("Time", style="cyan", no_wrap=True)
    table.add_column("Text")
    if show_confidence:
        table.add_column("Conf.", justify="right", style="dim")

    for seg in segments:
        marker = ">" if seg.id == active_id else ("*" if seg.id in highlighted else "")
        time_range = f"{format_timestamp(seg.start_time)}-{format_timestamp(seg.end_time)}"
        style = "bold reverse" if seg.id == active_id else ("yellow" if seg.id in highlighted else None)
        row = [marker, seg.id, time_range, seg.text]
        if show_confidence:
            row.append(f"{seg.confidence:.2f}" if seg.confidence is not None else "-")
        table.add_row(*row, style=style)
    return table
