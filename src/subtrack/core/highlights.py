"""Per-video highlight marks, persisted as flat JSON files.

Highlights reference segments by id only; they never touch subtitle data.
Reading never fails (a broken file reads as "no highlights"); writing raises
HighlightStorageError so the caller can tell the user.
"""

from __future__ import annotations

import errno
import json
from datetime import datetime, timezone
from pathlib import Path

from subtrack.core.errors import HighlightStorageError
from subtrack.utils.cache import cache_key
from subtrack.utils.console import console


class HighlightStore:
    """Highlighted segment ids, one JSON file per video under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, video_id: str) -> Path:
        return self.root / f"highlights-{cache_key(video_id)}.json"

    def load(self, video_id: str) -> set[str]:
        path = self._path(video_id)
        if not path.is_file():
            return set()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return {str(h["segment_id"]) for h in data.get("highlights", [])}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            console.print(f"[yellow]Failed to load highlights for {video_id}:[/yellow] {e}")
            return set()

    def save(self, video_id: str, segment_ids: set[str]) -> None:
        now = datetime.now(timezone.utc).isoformat()
        data = {
            "video_id": video_id,
            "highlights": [{"segment_id": sid, "created_at": now} for sid in sorted(segment_ids)],
        }
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._path(video_id).write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            if e.errno in (errno.ENOSPC, errno.EDQUOT):
                raise HighlightStorageError("QUOTA_EXCEEDED", "Storage is full; remove old highlights.") from e
            raise HighlightStorageError("STORAGE_UNAVAILABLE", f"Highlight storage unavailable: {e}") from e

    def toggle(self, video_id: str, segment_id: str) -> bool:
        """Flip a highlight. Returns True if the segment is now highlighted."""
        highlights = self.load(video_id)
        if segment_id in highlights:
            highlights.discard(segment_id)
        else:
            highlights.add(segment_id)
        self.save(video_id, highlights)
        return segment_id in highlights

    def is_highlighted(self, video_id: str, segment_id: str) -> bool:
        return segment_id in self.load(video_id)

    def count(self, video_id: str) -> int:
        return len(self.load(video_id))

    def clear(self, video_id: str) -> None:
        self._path(video_id).unlink(missing_ok=True)
