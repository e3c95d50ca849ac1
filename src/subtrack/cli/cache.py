"""subtrack cache commands — inspect and maintain the subtitle cache."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer

from subtrack.cli.utils import build_cache, video_id_or_exit
from subtrack.core.config import load_config
from subtrack.utils.console import console

cache_app = typer.Typer(help="Inspect and maintain the subtitle cache.", no_args_is_help=True)


@cache_app.command("stats")
def stats() -> None:
    """Show how many entries are cached and how many have expired."""
    config = load_config()
    result = asyncio.run(build_cache(config).stats())
    console.print(f"[bold]Cache:[/bold] {config.cache_dir}")
    console.print(f"Total entries:   {result.total_entries}")
    console.print(f"Expired entries: {result.expired_entries}")


@cache_app.command("sweep")
def sweep() -> None:
    """Delete expired entries."""
    removed = asyncio.run(build_cache(load_config()).sweep_expired())
    console.print(f"[green]Removed {removed} expired entries.[/green]")


@cache_app.command("clear")
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete every cached subtitle set."""
    if not yes:
        typer.confirm("Delete all cached subtitles?", abort=True)
    asyncio.run(build_cache(load_config()).clear())
    console.print("[green]Cache cleared.[/green]")


@cache_app.command("remove")
def remove(
    input_ref: Annotated[str, typer.Argument(help="Video URL or Bilibili id.")],
) -> None:
    """Delete the cached subtitles of one video."""
    video_id, _ = video_id_or_exit(input_ref)
    asyncio.run(build_cache(load_config()).remove(video_id))
    console.print(f"[green]Removed cache entry for {video_id}[/green]")
