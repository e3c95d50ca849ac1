"""Cache key helpers for subtrack.

Persistent files are keyed by a short hash so arbitrary video ids map to safe
file names.
"""

from __future__ import annotations

import hashlib


def cache_key(key: str) -> str:
    """Compute a file-safe cache key for ``key``.

    Returns:
        16-char hex string.
    """
    return hashlib.sha256(key.encode()).hexdigest()[:16]
