"""TTL cache of resolved subtitle sets, keyed by video id.

Caching is an optimization: when the backing store is unavailable or
misbehaves, every operation degrades to a no-op and resolution carries on
without it.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from subtrack.cache.store import KeyValueStore, StoreError, StoreUnavailableError
from subtrack.core.models import CacheEntry
from subtrack.utils.console import console

DEFAULT_TTL = timedelta(days=30)

_STORE_ERRORS = (StoreError, OSError, ValueError, KeyError, TypeError)


@dataclass(frozen=True)
class CacheStats:
    total_entries: int
    expired_entries: int


class SubtitleCache:
    """Per-video subtitle cache with lazy and eager expiry.

    Args:
        store: Backing key-value store.
        ttl: How long an entry stays valid after ``put``.
        clock: Returns the current time in seconds since the epoch.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._ttl = ttl.total_seconds()
        self._clock = clock
        self._available: bool | None = None
        self._open_lock = asyncio.Lock()

    @property
    def available(self) -> bool:
        """False once the up-front probe has failed."""
        return self._available is not False

    async def _ready(self) -> bool:
        if self._available is not None:
            return self._available
        async with self._open_lock:
            if self._available is None:
                try:
                    await self._store.open()
                    self._available = True
                except (StoreUnavailableError, OSError) as e:
                    console.print(f"[yellow]Subtitle cache disabled:[/yellow] {e}")
                    self._available = False
        return self._available

    def _warn(self, action: str, error: Exception) -> None:
        console.print(f"[yellow]Subtitle cache {action} failed:[/yellow] {error}")

    async def put(self, entry: CacheEntry) -> None:
        """Store ``entry``, stamping fresh ``cached_at`` / ``expires_at``.

        Any prior entry for the same video is overwritten. Entries without
        segments are not stored.
        """
        if not entry.segments:
            console.print(f"[dim]Not caching empty subtitle set for {entry.video_id}[/dim]")
            return
        if not await self._ready():
            return
        now = self._clock()
        entry.cached_at = now
        entry.expires_at = now + self._ttl
        try:
            await self._store.put(entry.video_id, entry.to_dict())
        except _STORE_ERRORS as e:
            self._warn("write", e)

    async def get(self, video_id: str) -> CacheEntry | None:
        """Return the valid entry for ``video_id``, or None.

        Expired or unreadable entries are deleted on the way out.
        """
        if not await self._ready():
            return None
        try:
            data = await self._store.get(video_id)
            if data is None:
                return None
            entry = CacheEntry.from_dict(data)
        except _STORE_ERRORS as e:
            self._warn("read", e)
            await self.remove(video_id)
            return None

        if not entry.is_valid(self._clock()):
            await self.remove(video_id)
            return None
        return entry

    async def remove(self, video_id: str) -> None:
        if not await self._ready():
            return
        try:
            await self._store.delete(video_id)
        except _STORE_ERRORS as e:
            self._warn("delete", e)

    async def clear(self) -> None:
        if not await self._ready():
            return
        try:
            await self._store.clear()
        except _STORE_ERRORS as e:
            self._warn("clear", e)

    async def sweep_expired(self) -> int:
        """Delete every expired entry. Returns how many were removed."""
        if not await self._ready():
            return 0
        removed = 0
        try:
            keys = await self._store.keys_expiring_before(self._clock())
            for key in keys:
                await self._store.delete(key)
                removed += 1
        except _STORE_ERRORS as e:
            self._warn("sweep", e)
        return removed

    async def stats(self) -> CacheStats:
        if not await self._ready():
            return CacheStats(total_entries=0, expired_entries=0)
        try:
            total = await self._store.count()
            expired = len(await self._store.keys_expiring_before(self._clock()))
        except _STORE_ERRORS as e:
            self._warn("stats", e)
            return CacheStats(total_entries=0, expired_entries=0)
        return CacheStats(total_entries=total, expired_entries=expired)
