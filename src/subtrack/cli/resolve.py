"""subtrack resolve command — find subtitles for a video."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from subtrack.cli.utils import build_engine, segments_table, video_id_or_exit
from subtrack.core.config import load_config
from subtrack.core.models import Resolution
from subtrack.downloader.ytdlp import NativeSubtitleSource
from subtrack.utils.console import console


def resolve(
    input_ref: Annotated[
        str,
        typer.Argument(help="Video URL or Bilibili id (BV... / av...)."),
    ],
    language: Annotated[
        Optional[str],
        typer.Option("--language", "-l", help="Spoken language for transcription (e.g. zh, en)."),
    ] = None,
    audio: Annotated[
        Optional[Path],
        typer.Option("--audio", "-a", help="Local audio file to transcribe instead of downloading."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Drop the cached subtitles for this video first."),
    ] = False,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Do not read or write the subtitle cache."),
    ] = False,
    model: Annotated[
        Optional[str],
        typer.Option("--model", "-m", help="Transcription model (LiteLLM string)."),
    ] = None,
) -> None:
    """Resolve subtitles: platform track, then cache, then speech-to-text."""
    config = load_config(**{"transcription.language": language, "transcription.model": model})
    video_id, url = video_id_or_exit(input_ref)
    engine = build_engine(config, use_cache=not no_cache)
    native = NativeSubtitleSource(config.download, config.download_dir / "subtitles")
    audio_ref = str(audio) if audio is not None else url

    async def _resolve() -> Resolution:
        if config.cache.sweep_on_start:
            swept = await engine.cache.sweep_expired()
            if swept:
                console.print(f"[dim]Removed {swept} expired cache entries.[/dim]")
        if force:
            await engine.cache.remove(video_id)
        return await engine.resolver.resolve(video_id, native, audio_ref, language)

    try:
        with console.status(f"Resolving subtitles for {video_id}..."):
            resolution = asyncio.run(_resolve())
    except Exception as e:
        console.print(f"[red]Failed to fetch subtitles:[/red] {e}")
        raise typer.Exit(1)

    if resolution.error is not None:
        error = resolution.error
        console.print(f"[red]Transcription failed ({error.code}):[/red] {error.message}")
        if error.retryable:
            console.print("[yellow]This looks temporary; run the command again to retry.[/yellow]")
        else:
            console.print("[yellow]Retrying will not help until the problem above is fixed.[/yellow]")
        raise typer.Exit(1)

    source = resolution.source.value if resolution.source else "unknown"
    origin = " (cached)" if resolution.cached else ""
    console.print(segments_table(resolution.segments, f"{video_id} — {source}{origin}"))
    console.print(f"\n[bold green]{len(resolution.segments)} lines[/bold green] from {source}{origin}")
