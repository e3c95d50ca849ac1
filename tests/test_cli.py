"""Tests for the subtrack CLI, with the network collaborators mocked out."""

import asyncio

import pytest
from typer.testing import CliRunner

from conftest import FakeTranscriber, make_segments
from subtrack import __version__
from subtrack.cache.store import DirectoryStore
from subtrack.cache.subtitle_cache import SubtitleCache
from subtrack.cli.app import app
from subtrack.core.errors import NOT_AVAILABLE, TranscriptionServiceError
from subtrack.core.models import CacheEntry, SubtitleSource

VIDEO = "BV1xx411c7mD"

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run every command from a scratch directory with the default workspace."""
    monkeypatch.chdir(tmp_path)
    return tmp_path / "subtrack_workspace"


@pytest.fixture
def seeded(workspace):
    cache = SubtitleCache(DirectoryStore(workspace / ".cache" / "subtitles"))
    entry = CacheEntry(
        video_id=VIDEO,
        segments=make_segments([(0, 2, "first"), (2, 4, "second")], video_id=VIDEO),
        source=SubtitleSource.NATIVE,
        language="zh",
    )
    asyncio.run(cache.put(entry))
    return workspace


@pytest.fixture
def fake_services(monkeypatch):
    transcriber = FakeTranscriber()
    monkeypatch.setattr("subtrack.cli.utils.ApiTranscriber", lambda *args, **kwargs: transcriber)
    monkeypatch.setattr(
        "subtrack.cli.resolve.NativeSubtitleSource",
        lambda config, output_dir: (lambda video_id: NOT_AVAILABLE),
    )
    return transcriber


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_resolve_transcribes_then_uses_cache(workspace, fake_services):
    first = runner.invoke(app, ["resolve", VIDEO])
    assert first.exit_code == 0, first.output
    assert "speech" in first.output
    assert "hi" in first.output

    second = runner.invoke(app, ["resolve", VIDEO])
    assert second.exit_code == 0, second.output
    assert "cached" in second.output
    assert len(fake_services.calls) == 1


def test_resolve_no_cache(workspace, fake_services):
    runner.invoke(app, ["resolve", VIDEO, "--no-cache"])
    runner.invoke(app, ["resolve", VIDEO, "--no-cache"])
    assert len(fake_services.calls) == 2


def test_resolve_force_drops_cache(workspace, fake_services):
    runner.invoke(app, ["resolve", VIDEO])
    result = runner.invoke(app, ["resolve", VIDEO, "--force"])
    assert result.exit_code == 0
    assert len(fake_services.calls) == 2


def test_resolve_terminal_failure(workspace, fake_services):
    fake_services.error = TranscriptionServiceError("invalid api key", status_code=401)
    result = runner.invoke(app, ["resolve", VIDEO])
    assert result.exit_code == 1
    assert "NOT_CONFIGURED" in result.output
    assert "will not help" in result.output


def test_resolve_retryable_failure(workspace, fake_services):
    fake_services.error = ConnectionError("connection reset")
    result = runner.invoke(app, ["resolve", VIDEO])
    assert result.exit_code == 1
    assert "run the command again" in result.output


def test_resolve_native_fetch_error(workspace, monkeypatch):
    def broken(video_id):
        raise RuntimeError("extractor broke")

    monkeypatch.setattr("subtrack.cli.resolve.NativeSubtitleSource", lambda config, output_dir: broken)
    result = runner.invoke(app, ["resolve", VIDEO])
    assert result.exit_code == 1
    assert "extractor broke" in result.output


def test_resolve_bad_input(workspace):
    result = runner.invoke(app, ["resolve", "not-a-video"])
    assert result.exit_code == 1
    assert "Not a video URL" in result.output


def test_show_marks_active_line(seeded):
    result = runner.invoke(app, ["show", VIDEO, "--at", "2.5"])
    assert result.exit_code == 0, result.output
    assert "second" in result.output
    assert ">" in result.output


def test_show_without_cache(workspace):
    result = runner.invoke(app, ["show", VIDEO])
    assert result.exit_code == 1
    assert "No cached subtitles" in result.output


def test_mark_toggles(seeded):
    on = runner.invoke(app, ["mark", VIDEO, "subtitle-1"])
    assert on.exit_code == 0, on.output
    assert "highlighted" in on.output
    assert "(1 total)" in on.output

    off = runner.invoke(app, ["mark", VIDEO, "subtitle-1"])
    assert "unhighlighted" in off.output


def test_mark_unknown_segment(seeded):
    result = runner.invoke(app, ["mark", VIDEO, "subtitle-99"])
    assert result.exit_code == 1
    assert "Unknown segment" in result.output


def test_mark_clear(seeded):
    runner.invoke(app, ["mark", VIDEO, "subtitle-0"])
    result = runner.invoke(app, ["mark", VIDEO, "--clear"])
    assert result.exit_code == 0
    assert "Cleared" in result.output


def test_export_srt(seeded, tmp_path):
    out = tmp_path / "out.srt"
    result = runner.invoke(app, ["export", VIDEO, str(out)])
    assert result.exit_code == 0, result.output
    text = out.read_text(encoding="utf-8")
    assert "first" in text
    assert "00:00:02,000 --> 00:00:04,000" in text


def test_export_bad_format(seeded, tmp_path):
    result = runner.invoke(app, ["export", VIDEO, str(tmp_path / "out.pdf")])
    assert result.exit_code == 1
    assert "Unsupported format" in result.output


def test_cache_commands(seeded):
    stats = runner.invoke(app, ["cache", "stats"])
    assert stats.exit_code == 0
    assert "Total entries:   1" in stats.output

    removed = runner.invoke(app, ["cache", "remove", VIDEO])
    assert removed.exit_code == 0
    after = runner.invoke(app, ["cache", "stats"])
    assert "Total entries:   0" in after.output


def test_cache_clear_and_sweep(seeded):
    sweep = runner.invoke(app, ["cache", "sweep"])
    assert sweep.exit_code == 0
    assert "Removed 0 expired entries" in sweep.output

    cleared = runner.invoke(app, ["cache", "clear", "--yes"])
    assert cleared.exit_code == 0
    stats = runner.invoke(app, ["cache", "stats"])
    assert "Total entries:   0" in stats.output
