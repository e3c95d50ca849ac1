"""yt-dlp wrappers: platform subtitle tracks and audio for transcription."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

from rich.progress import BarColumn, DownloadColumn, Progress, TaskID, TextColumn, TransferSpeedColumn

from subtrack.core.config import DownloadConfig
from subtrack.core.errors import NOT_AVAILABLE, NotAvailableType
from subtrack.core.models import SubtitleSegment, SubtitleSource
from subtrack.downloader.resolver import resolve_input
from subtrack.subtitles.converter import load_subtitle_records
from subtrack.subtitles.parser import is_valid_subtitle_data, parse_segments
from subtrack.utils.console import console

_DEFAULT_AUDIO_FORMAT = "bestaudio[ext=m4a]/bestaudio/best"
_INDEX_NAME = "downloads.json"
# Bilibili exposes its bullet comments as a subtitle track; they are not subtitles
_IGNORED_TRACKS = {"danmaku", "live_chat"}


def _import_yt_dlp():
    try:
        import yt_dlp
    except ImportError:
        raise ImportError("yt-dlp is not installed. Install with: uv sync --extra download")
    return yt_dlp


class _AudioIndex:
    """URL -> downloaded file, so the same video is fetched once per workspace."""

    def __init__(self, output_dir: Path):
        self.path = output_dir / _INDEX_NAME

    def _read(self) -> dict:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            console.print(f"[yellow]Ignoring unreadable download index:[/yellow] {self.path}")
            return {}
        return data if isinstance(data, dict) else {}

    def lookup(self, url: str) -> Path | None:
        record = self._read().get(url) or {}
        path = Path(record["path"]) if record.get("path") else None
        if path is None or not path.is_file():
            return None
        if path.stat().st_size != record.get("size_bytes"):
            console.print(f"[yellow]Stale download (size changed):[/yellow] {path}")
            return None
        return path

    def record(self, url: str, path: Path, duration: float | None) -> None:
        data = self._read()
        data[url] = {
            "path": str(path),
            "size_bytes": path.stat().st_size,
            "duration": duration,
            "downloaded_at": datetime.now(timezone.utc).isoformat(),
        }
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


class _ProgressHook:
    """Feeds yt-dlp download progress into a rich progress bar."""

    def __init__(self, progress: Progress):
        self.progress = progress
        self.task: TaskID | None = None

    def __call__(self, status: dict) -> None:
        total = status.get("total_bytes") or status.get("total_bytes_estimate")
        if self.task is None:
            if not total:
                return
            self.task = self.progress.add_task("Audio", total=total)
        if status["status"] == "finished":
            self.progress.update(self.task, completed=self.progress.tasks[self.task].total)
        else:
            self.progress.update(self.task, completed=status.get("downloaded_bytes", 0))


def download_audio(
    url: str,
    output_dir: Path | None = None,
    fmt: str = _DEFAULT_AUDIO_FORMAT,
    max_duration: float | None = None,
) -> Path:
    """Download the audio stream of a video for transcription.

    Previously downloaded audio for the same URL is reused.

    Args:
        url: Video URL.
        output_dir: Directory to save the file.
        fmt: yt-dlp format string.
        max_duration: Refuse videos longer than this many seconds.

    Returns:
        Path to the audio file.

    Raises:
        ValueError: If the video is longer than ``max_duration``.
    """
    yt_dlp = _import_yt_dlp()

    output_dir = Path(output_dir or "./subtrack_workspace/.cache/downloads")
    output_dir.mkdir(parents=True, exist_ok=True)
    index = _AudioIndex(output_dir)

    cached = index.lookup(url)
    if cached is not None:
        console.print(f"[dim]Reusing downloaded audio:[/dim] {cached}")
        return cached

    progress = Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
    )
    opts = {
        "format": fmt,
        "outtmpl": str(output_dir / "%(id)s.%(ext)s"),
        "progress_hooks": [_ProgressHook(progress)],
        "quiet": True,
        "no_warnings": True,
    }

    with yt_dlp.YoutubeDL(opts) as ydl:
        info = ydl.extract_info(url, download=False)
        duration = info.get("duration")
        if max_duration is not None and duration and duration > max_duration:
            raise ValueError(f"Video too long ({duration:.0f}s). Max allowed: {max_duration:.0f}s")

        console.print(f"[bold]Downloading audio:[/bold] {url}")
        with progress:
            info = ydl.process_ie_result(info, download=True)
        audio_path = Path(ydl.prepare_filename(info))

    if not audio_path.is_file():
        raise RuntimeError(f"Download completed but no file found at {audio_path}")

    index.record(url, audio_path, duration)
    console.print(f"[green]Downloaded:[/green] {audio_path}")
    return audio_path


def pick_subtitle_language(tracks: dict, preferred: list[str]) -> str | None:
    """Choose a subtitle track: first preferred language present, else any."""
    available = [lang for lang in tracks if lang not in _IGNORED_TRACKS]
    for lang in preferred:
        if lang in available:
            return lang
    return available[0] if available else None


class NativeSubtitleSource:
    """Fetch platform-provided subtitles for a video through yt-dlp.

    Automatic captions are never used: a video without real subtitle tracks
    reports NOT_AVAILABLE so the resolver can fall back to transcription.
    Network or extractor failures propagate.
    """

    def __init__(self, config: DownloadConfig, output_dir: Path):
        self.config = config
        self.output_dir = Path(output_dir)

    async def __call__(self, video_id: str) -> list[SubtitleSegment] | NotAvailableType:
        return await asyncio.to_thread(self.fetch, video_id)

    def fetch(self, video_id: str) -> list[SubtitleSegment] | NotAvailableType:
        yt_dlp = _import_yt_dlp()
        _, url = resolve_input(video_id)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        with yt_dlp.YoutubeDL({"quiet": True, "no_warnings": True}) as ydl:
            info = ydl.extract_info(url, download=False)

        lang = pick_subtitle_language(info.get("subtitles") or {}, self.config.subtitle_languages)
        if lang is None:
            console.print(f"[dim]No platform subtitles for {video_id}[/dim]")
            return NOT_AVAILABLE

        opts = {
            "skip_download": True,
            "writesubtitles": True,
            "subtitleslangs": [lang],
            "subtitlesformat": "srt/vtt/json/best",
            "outtmpl": str(self.output_dir / "%(id)s.%(ext)s"),
            "quiet": True,
            "no_warnings": True,
        }
        with yt_dlp.YoutubeDL(opts) as ydl:
            info = ydl.process_ie_result(info, download=True)

        requested = (info.get("requested_subtitles") or {}).get(lang) or {}
        path = requested.get("filepath")
        if not path or not Path(path).is_file():
            console.print(f"[yellow]Subtitle track {lang} listed but not downloadable[/yellow]")
            return NOT_AVAILABLE

        records = load_subtitle_records(Path(path))
        if records and not is_valid_subtitle_data(records):
            console.print(f"[yellow]Malformed subtitle track ({lang}), keeping usable lines[/yellow]")
        segments = parse_segments(records, video_id, SubtitleSource.NATIVE, language=lang)
        console.print(f"[green]Platform subtitles:[/green] {len(segments)} lines ({lang})")
        return segments or NOT_AVAILABLE
