"""Redis-backed key-value store for token, response and metadata caching.

Key layout (shared with the other backends):
- TOKEN → serialized Token (expiry checked by value, no Redis TTL)
- CATEGORY_{query} → serialized root-to-leaf category path
- SUGGESTION_{query} → serialized suggestion list
- META_{category_id} → serialized flat metadata map
- lock:{key} → distributed lock guarding multi-step updates on {key}
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

import redis
from redis.lock import Lock

from taxotariff.errors import StoreError
from taxotariff.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class RedisKVStore(KeyValueStore):
    """Redis client exposing the key-value store contract.

    Locks are Redis distributed locks, so per-key serialization holds across
    every worker sharing the Redis instance.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        client: Optional[redis.Redis] = None,
        read_only: bool = False,
        lock_timeout: int = 30,
        lock_blocking_timeout: Optional[float] = 10.0,
    ):
        self.url = url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.read_only = read_only
        self.lock_timeout = lock_timeout
        self.lock_blocking_timeout = lock_blocking_timeout
        self._client = client or redis.from_url(
            self.url,
            decode_responses=True,
            socket_keepalive=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )

    # -------------------------------------------------------------------------
    # Single-key operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except redis.exceptions.RedisError as exc:
            raise StoreError(f"Failed to read {key}: {exc}") from exc

    def put(self, key: str, value: str) -> None:
        self._check_writable()
        try:
            self._client.set(key, value)
        except redis.exceptions.RedisError as exc:
            raise StoreError(f"Failed to write {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        self._check_writable()
        try:
            self._client.delete(key)
        except redis.exceptions.RedisError as exc:
            raise StoreError(f"Failed to delete {key}: {exc}") from exc

    def _check_writable(self) -> None:
        if self.read_only:
            raise StoreError(f"Store at {self.url} is read-only")

    # -------------------------------------------------------------------------
    # Distributed Locking
    # -------------------------------------------------------------------------

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold ``lock:{key}`` for the duration of the block.

        Raises:
            StoreError: if the lock cannot be acquired within the blocking timeout.
        """
        lock = Lock(
            self._client,
            f"lock:{key}",
            timeout=self.lock_timeout,
            blocking=True,
            blocking_timeout=self.lock_blocking_timeout,
        )
        try:
            acquired = lock.acquire()
        except redis.exceptions.RedisError as exc:
            raise StoreError(f"Failed to lock {key}: {exc}") from exc
        if not acquired:
            raise StoreError(f"Timed out waiting for lock on {key}")
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                # Lock already expired/released
                logger.warning("Lock on %s expired before release", key)

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.exceptions.ConnectionError:
            return False

    def close(self) -> None:
        self._client.close()
