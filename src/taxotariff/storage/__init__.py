"""Key-value store backends addressed by URL.

Supported URLs:
- ``memory://`` → :class:`InMemoryKVStore`
- ``sqlite:///relative/or/absolute/path.db`` → :class:`SQLiteKVStore`
- ``redis://…`` / ``rediss://…`` → :class:`taxotariff.caching.RedisKVStore`
"""

from __future__ import annotations

from pathlib import Path

from taxotariff.storage.base import KeyLocks, KeyValueStore
from taxotariff.storage.memory_backend import InMemoryKVStore
from taxotariff.storage.sqlite_backend import SQLiteKVStore


def get_store(url: str, *, read_only: bool = False) -> KeyValueStore:
    """Build a store for ``url``; raises ``ValueError`` on an unknown scheme."""
    if url.startswith("memory://"):
        return InMemoryKVStore()
    if url.startswith("sqlite:///"):
        return SQLiteKVStore(Path(url[len("sqlite:///"):]), read_only=read_only)
    if url.startswith(("redis://", "rediss://", "unix://")):
        from taxotariff.caching.redis_client import RedisKVStore

        return RedisKVStore(url, read_only=read_only)
    raise ValueError(f"Unsupported store URL: {url}")


__all__ = [
    "InMemoryKVStore",
    "KeyLocks",
    "KeyValueStore",
    "SQLiteKVStore",
    "get_store",
]
