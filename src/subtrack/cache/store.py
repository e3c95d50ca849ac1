"""Persistent key-value stores backing the subtitle cache.

Values are JSON-compatible dicts carrying an ``expires_at`` timestamp, which
``keys_expiring_before`` uses as its index. All methods are coroutines: the
store is the cache's suspension point.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from pathlib import Path
from typing import Protocol

from subtrack.utils.cache import cache_key


class StoreError(Exception):
    """A store operation failed."""


class StoreUnavailableError(StoreError):
    """The store cannot be used at all (unsupported, read-only, ...)."""


class KeyValueStore(Protocol):
    async def open(self) -> None:
        """Probe the store. Raises StoreUnavailableError if it is unusable."""

    async def get(self, key: str) -> dict | None: ...

    async def put(self, key: str, value: dict) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def count(self) -> int: ...

    async def keys_expiring_before(self, timestamp: float) -> list[str]:
        """Keys whose value has ``expires_at <= timestamp``."""


def _expires_at(value: dict) -> float:
    try:
        return float(value["expires_at"])
    except (KeyError, TypeError, ValueError):
        # No usable expiry: treat as already expired so sweeps remove it
        return float("-inf")


class MemoryStore:
    """In-process store, for tests and cache-less sessions.

    ``available=False`` behaves like a platform without persistent storage.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self._data: dict[str, dict] = {}

    async def open(self) -> None:
        if not self.available:
            raise StoreUnavailableError("memory store disabled")

    async def get(self, key: str) -> dict | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def put(self, key: str, value: dict) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def count(self) -> int:
        return len(self._data)

    async def keys_expiring_before(self, timestamp: float) -> list[str]:
        return [key for key, value in self._data.items() if _expires_at(value) <= timestamp]


class DirectoryStore:
    """One JSON file per key under ``root``.

    File names are hashed keys; each file stores ``{"key": ..., "value": ...}``
    so keys can be recovered when scanning. Writes go to a temp file first and
    are moved into place, so readers never see a half-written entry.
    """

    _PROBE_NAME = ".probe"

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{cache_key(key)}.json"

    def _probe(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        probe = self.root / self._PROBE_NAME
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()

    async def open(self) -> None:
        try:
            await asyncio.to_thread(self._probe)
        except OSError as e:
            raise StoreUnavailableError(f"cache directory not writable: {self.root} ({e})") from e

    def _read(self, path: Path) -> dict | None:
        if not path.is_file():
            return None
        record = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(record, dict) or not isinstance(record.get("value"), dict):
            raise StoreError(f"corrupt cache file: {path}")
        return record

    async def get(self, key: str) -> dict | None:
        record = await asyncio.to_thread(self._read, self._path(key))
        return record["value"] if record else None

    def _write(self, key: str, value: dict) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps({"key": key, "value": value}, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, path)

    async def put(self, key: str, value: dict) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    def _files(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        return sorted(self.root.glob("*.json"))

    def _clear(self) -> None:
        for path in self._files():
            path.unlink(missing_ok=True)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    async def count(self) -> int:
        return len(await asyncio.to_thread(self._files))

    def _scan_expired(self, timestamp: float) -> list[str]:
        keys = []
        for path in self._files():
            try:
                record = self._read(path)
            except (OSError, ValueError, StoreError):
                # Unreadable files are dropped directly; no key to report
                path.unlink(missing_ok=True)
                continue
            if not record or _expires_at(record["value"]) > timestamp:
                continue
            key = record.get("key")
            if isinstance(key, str) and key:
                keys.append(key)
            else:
                # Expired but its key is lost; delete by path
                path.unlink(missing_ok=True)
        return keys

    async def keys_expiring_before(self, timestamp: float) -> list[str]:
        return await asyncio.to_thread(self._scan_expired, timestamp)
