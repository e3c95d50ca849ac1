"""Configuration system for subtrack.

Layered config loading (lowest to highest priority):
1. config/default.toml (shipped with package)
2. ~/.config/subtrack/config.toml (user-level)
3. ./subtrack.toml (project-level)
4. Environment variables (SUBTRACK_TRANSCRIPTION__MODEL, etc.)
5. CLI flags
"""

from __future__ import annotations

import tomllib
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent.parent.parent
_DEFAULT_CONFIG = _PACKAGE_ROOT / "config" / "default.toml"
_USER_CONFIG = Path.home() / ".config" / "subtrack" / "config.toml"
_PROJECT_CONFIG = Path("subtrack.toml")


class TranscriptionConfig(BaseModel):
    model: str = "whisper-1"  # LiteLLM model string, e.g. groq/whisper-large-v3-turbo
    api_base: str | None = None  # Custom API endpoint (e.g. self-hosted Whisper)
    language: str = "zh"
    timeout: float | None = 600.0  # seconds a caller waits; None waits forever
    max_file_size_mb: float = Field(default=25.0, gt=0)


class CacheConfig(BaseModel):
    enabled: bool = True
    ttl_days: float = Field(default=30.0, gt=0)
    sweep_on_start: bool = True


class DownloadConfig(BaseModel):
    audio_format: str = "bestaudio[ext=m4a]/bestaudio/best"
    max_duration: float | None = 7200.0  # seconds; longer videos are not transcribed
    # Platform-provided tracks, in order of preference
    subtitle_languages: list[str] = ["zh-Hans", "zh-CN", "zh", "ai-zh", "en", "en-US"]


class SubtrackConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SUBTRACK_",
        env_nested_delimiter="__",
    )

    transcription: TranscriptionConfig = TranscriptionConfig()
    cache: CacheConfig = CacheConfig()
    download: DownloadConfig = DownloadConfig()
    workspace_dir: Path = Path("./subtrack_workspace")

    @property
    def cache_dir(self) -> Path:
        """Subtitle cache directory, under the workspace cache."""
        return self.workspace_dir / ".cache" / "subtitles"

    @property
    def highlights_dir(self) -> Path:
        return self.workspace_dir / ".cache" / "highlights"

    @property
    def download_dir(self) -> Path:
        return self.workspace_dir / ".cache" / "downloads"

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(days=self.cache.ttl_days)


def _load_toml(path: Path) -> dict:
    """Load a TOML file if it exists, return empty dict otherwise."""
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(**cli_overrides: object) -> SubtrackConfig:
    """Load configuration from all layers and merge.

    Args:
        **cli_overrides: Direct overrides from CLI flags. Keys can be
            dot-separated (e.g. transcription.language="en").
    """
    # Layer 1-3: TOML files
    config_data: dict = {}
    for path in (_DEFAULT_CONFIG, _USER_CONFIG, _PROJECT_CONFIG):
        layer = _load_toml(path)
        config_data = _deep_merge(config_data, layer)

    # Flatten 'general' section into top-level
    if "general" in config_data:
        general = config_data.pop("general")
        config_data = _deep_merge(config_data, general)

    # Layer 4: env vars. Read on their own so they outrank the TOML layers
    # (init kwargs would otherwise win over the env source).
    env_layer = SubtrackConfig().model_dump(exclude_unset=True)
    config_data = _deep_merge(config_data, env_layer)

    # Layer 5: CLI overrides (dot-separated keys)
    for key, value in cli_overrides.items():
        if value is None:
            continue
        parts = key.split(".")
        target = config_data
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    return SubtrackConfig(**config_data)
