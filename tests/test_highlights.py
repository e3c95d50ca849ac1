"""Tests for per-video highlight persistence."""

import errno
from pathlib import Path

import pytest

from subtrack.core.errors import HighlightStorageError
from subtrack.core.highlights import HighlightStore


def test_toggle_on_and_off(tmp_path: Path):
    store = HighlightStore(tmp_path)
    assert store.toggle("BV1", "subtitle-3") is True
    assert store.is_highlighted("BV1", "subtitle-3")
    assert store.toggle("BV1", "subtitle-3") is False
    assert not store.is_highlighted("BV1", "subtitle-3")


def test_persisted_across_instances(tmp_path: Path):
    HighlightStore(tmp_path).toggle("BV1", "subtitle-0")
    HighlightStore(tmp_path).toggle("BV1", "subtitle-2")
    assert HighlightStore(tmp_path).load("BV1") == {"subtitle-0", "subtitle-2"}


def test_videos_are_separate(tmp_path: Path):
    store = HighlightStore(tmp_path)
    store.toggle("BV1", "subtitle-0")
    assert store.count("BV1") == 1
    assert store.count("BV2") == 0


def test_clear(tmp_path: Path):
    store = HighlightStore(tmp_path)
    store.toggle("BV1", "subtitle-0")
    store.clear("BV1")
    store.clear("never-highlighted")
    assert store.load("BV1") == set()


def test_corrupt_file_reads_as_empty(tmp_path: Path):
    store = HighlightStore(tmp_path)
    store.toggle("BV1", "subtitle-0")
    next(tmp_path.glob("highlights-*.json")).write_text("{broken", encoding="utf-8")
    assert store.load("BV1") == set()


def test_unwritable_root(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file", encoding="utf-8")
    store = HighlightStore(blocker / "highlights")

    with pytest.raises(HighlightStorageError) as exc_info:
        store.toggle("BV1", "subtitle-0")
    assert exc_info.value.code == "STORAGE_UNAVAILABLE"


def test_disk_full(tmp_path: Path, monkeypatch):
    def full(*args, **kwargs):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(Path, "write_text", full)
    with pytest.raises(HighlightStorageError) as exc_info:
        HighlightStore(tmp_path).toggle("BV1", "subtitle-0")
    assert exc_info.value.code == "QUOTA_EXCEEDED"
