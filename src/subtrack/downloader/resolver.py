"""Resolve user input to a video id and a fetchable URL."""

from __future__ import annotations

import re
from urllib.parse import urlparse

_BILIBILI_ID_RE = re.compile(r"(BV[0-9A-Za-z]{10}|av\d+)")
_BILIBILI_VIDEO_URL = "https://www.bilibili.com/video/{video_id}"


def is_url(input_path: str) -> bool:
    """Check if the input looks like a URL."""
    parsed = urlparse(input_path)
    return parsed.scheme in ("http", "https")


def extract_video_id(url: str) -> str | None:
    """Extract a Bilibili video id (BV... or av...) from a video URL."""
    parsed = urlparse(url)
    if "bilibili.com" not in parsed.netloc:
        return None
    match = re.search(r"/video/" + _BILIBILI_ID_RE.pattern, parsed.path)
    return match.group(1) if match else None


def resolve_input(input_ref: str) -> tuple[str, str]:
    """Turn a URL or bare id into ``(video_id, url)``.

    Bare Bilibili ids are expanded to their watch page. Other URLs keep their
    own form; their id is the URL itself so cache keys stay unique.
    """
    if is_url(input_ref):
        return extract_video_id(input_ref) or input_ref, input_ref
    if _BILIBILI_ID_RE.fullmatch(input_ref):
        return input_ref, _BILIBILI_VIDEO_URL.format(video_id=input_ref)
    raise ValueError(f"Not a video URL or Bilibili id: {input_ref}")
