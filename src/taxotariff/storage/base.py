"""Key-value store contract shared by the results, metadata and tariff stores."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class KeyLocks:
    """Lazily created per-key ``threading.Lock`` objects."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


class KeyValueStore(ABC):
    """String keys to opaque serialized string values.

    Single-key ``get``/``put``/``delete`` are atomic; there are no cross-key
    transactions. ``lock(key)`` serializes multi-step sequences on one key for
    every caller sharing the backend's scope (process or cluster).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def lock(self, key: str):
        """Context manager holding an exclusive lock on ``key``."""

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None
