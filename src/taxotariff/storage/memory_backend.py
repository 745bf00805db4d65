from __future__ import annotations

import threading
from typing import Dict, Optional

from taxotariff.storage.base import KeyLocks, KeyValueStore


class InMemoryKVStore(KeyValueStore):
    """Process-local store used for tests and ``memory://`` URLs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._mutex = threading.Lock()
        self._locks = KeyLocks()

    def get(self, key: str) -> Optional[str]:
        with self._mutex:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._mutex:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._mutex:
            self._data.pop(key, None)

    def lock(self, key: str):
        return self._locks.hold(key)

    def keys(self):
        with self._mutex:
            return sorted(self._data)
