"""Tests for video input resolution."""

import pytest

from subtrack.downloader.resolver import extract_video_id, is_url, resolve_input


def test_is_url():
    assert is_url("https://www.bilibili.com/video/BV1xx411c7mD")
    assert is_url("http://example.com/video.mp4")
    assert not is_url("BV1xx411c7mD")
    assert not is_url("/path/to/audio.m4a")


def test_extract_video_id():
    assert extract_video_id("https://www.bilibili.com/video/BV1xx411c7mD/?p=2") == "BV1xx411c7mD"
    assert extract_video_id("https://www.bilibili.com/video/av170001") == "av170001"
    assert extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ") is None
    assert extract_video_id("https://www.bilibili.com/bangumi/play/ep1") is None


def test_resolve_bare_bilibili_id():
    video_id, url = resolve_input("BV1xx411c7mD")
    assert video_id == "BV1xx411c7mD"
    assert url == "https://www.bilibili.com/video/BV1xx411c7mD"


def test_resolve_bilibili_url():
    video_id, url = resolve_input("https://www.bilibili.com/video/BV1xx411c7mD?p=1")
    assert video_id == "BV1xx411c7mD"
    assert url == "https://www.bilibili.com/video/BV1xx411c7mD?p=1"


def test_resolve_other_url_uses_url_as_id():
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert resolve_input(url) == (url, url)


def test_resolve_rejects_garbage():
    with pytest.raises(ValueError):
        resolve_input("not a video")
