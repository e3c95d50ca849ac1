"""Speech-to-text adapter via LiteLLM.

Uses litellm.atranscription() to call cloud Whisper APIs (OpenAI, Groq, ...)
and maps segment-level timestamps to raw ``{from, to, content, confidence}``
records for the segment parser. Failures are raised untouched; the
orchestrator classifies them.
"""

from __future__ import annotations

import asyncio
import math
import os
from pathlib import Path

from subtrack.core.config import DownloadConfig, TranscriptionConfig
from subtrack.core.errors import ServiceNotConfiguredError
from subtrack.downloader.resolver import is_url
from subtrack.utils.console import console

# Provider prefix -> env var holding its key. Unprefixed models go to OpenAI.
_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "azure": "AZURE_API_KEY",
    "deepgram": "DEEPGRAM_API_KEY",
}


def _provider(model: str) -> str:
    return model.split("/", 1)[0] if "/" in model else "openai"


def check_configured(config: TranscriptionConfig) -> None:
    """Raise ServiceNotConfiguredError if the API cannot possibly be called."""
    if not config.model:
        raise ServiceNotConfiguredError("No transcription model configured (transcription.model).")
    if config.api_base:
        return  # self-hosted endpoint, credentials are its business
    env_var = _API_KEY_ENV.get(_provider(config.model))
    if env_var and not os.environ.get(env_var):
        raise ServiceNotConfiguredError(
            f"{env_var} is not set. Add it to your environment or .env file to enable transcription."
        )


class ApiTranscriber:
    """Transcribe audio through a LiteLLM-supported Whisper API.

    Args:
        config: Transcription settings (model, api_base, size limit).
        download: Download settings, used when the audio reference is a URL.
        download_dir: Where downloaded audio is kept.
    """

    def __init__(
        self,
        config: TranscriptionConfig,
        download: DownloadConfig | None = None,
        download_dir: Path | None = None,
    ):
        self.config = config
        self.download = download or DownloadConfig()
        self.download_dir = download_dir

    async def transcribe(self, audio_ref: str, language: str) -> list[dict]:
        """Transcribe ``audio_ref`` (local file or video URL).

        Raises:
            ServiceNotConfiguredError: Missing model or API key.
            ImportError: If litellm is not installed.
            FileNotFoundError: Local audio file missing.
            ValueError: If the file exceeds the upload size limit.
        """
        check_configured(self.config)

        try:
            import litellm
        except ImportError:
            raise ImportError("litellm is not installed. Install with: uv sync --extra api")

        audio_path = await self._audio_path(audio_ref)
        self._check_size(audio_path)

        console.print(f"[bold]Transcribing via API:[/bold] {self.config.model}")
        litellm.drop_params = True

        call_kwargs: dict = {
            "model": self.config.model,
            "response_format": "verbose_json",
            "language": language,
            "extra_body": {"timestamp_granularities": ["segment"]},
        }
        if self.config.api_base:
            call_kwargs["api_base"] = self.config.api_base

        with open(audio_path, "rb") as f:
            response = await litellm.atranscription(file=f, **call_kwargs)

        return response_to_records(response)

    async def _audio_path(self, audio_ref: str) -> Path:
        if is_url(audio_ref):
            from subtrack.downloader.ytdlp import download_audio

            return await asyncio.to_thread(
                download_audio,
                audio_ref,
                self.download_dir,
                self.download.audio_format,
                self.download.max_duration,
            )
        path = Path(audio_ref)
        if not path.is_file():
            raise FileNotFoundError(f"Audio file not found: {audio_ref}")
        return path

    def _check_size(self, audio_path: Path) -> None:
        limit = int(self.config.max_file_size_mb * 1024 * 1024)
        file_size = audio_path.stat().st_size
        if file_size > limit:
            size_mb = file_size / (1024 * 1024)
            raise ValueError(
                f"Audio file is {size_mb:.1f} MB, exceeding the "
                f"{limit / (1024 * 1024):.0f} MB API limit. Use a shorter video."
            )


def response_to_records(response) -> list[dict]:
    """Convert a LiteLLM transcription response to raw subtitle records.

    Segment confidence is ``exp(avg_logprob)`` when the provider reports it.
    Falls back to the full text as a single untimed record, which the parser
    will drop.
    """
    data = response.model_dump() if hasattr(response, "model_dump") else response

    raw_segments = _get(data, "segments") or []
    if raw_segments:
        records = []
        for seg in raw_segments:
            record = {
                "from": _get(seg, "start"),
                "to": _get(seg, "end"),
                "content": _get(seg, "text", ""),
            }
            logprob = _get(seg, "avg_logprob")
            if isinstance(logprob, (int, float)):
                record["confidence"] = min(1.0, max(0.0, math.exp(logprob)))
            records.append(record)
        return records

    text = (_get(data, "text") or "").strip()
    if text:
        console.print("[yellow]Transcription returned no timestamps, text only.[/yellow]")
        return [{"from": 0.0, "to": 0.0, "content": text}]
    return []


def _get(obj, key: str, default=None):
    """Get a value from a dict or object attribute."""
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)
