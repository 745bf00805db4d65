"""SQLite-backed key-value store."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Iterable, Optional, Tuple

from taxotariff.errors import StoreError
from taxotariff.storage.base import KeyLocks, KeyValueStore


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


class SQLiteKVStore(KeyValueStore):
    """Single-table ``kv(key, value)`` store shared across threads of one process.

    A read-only store opens an existing database with SQLite's ``mode=ro`` and
    never creates the file, its directory or the schema.
    """

    def __init__(self, db_path: Path, *, read_only: bool = False):
        self.db_path = Path(db_path)
        self.read_only = read_only
        try:
            if read_only:
                uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
                self._conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
            else:
                _ensure_parent(self.db_path)
                self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Cannot open store at {self.db_path}: {exc}") from exc
        self._lock = threading.Lock()
        self._locks = KeyLocks()
        if not read_only:
            self._init_schema()

    def _init_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def _check_writable(self) -> None:
        if self.read_only:
            raise StoreError(f"Store at {self.db_path} is read-only")

    def get(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to read {key}: {exc}") from exc
        return row[0] if row else None

    def put(self, key: str, value: str) -> None:
        self._check_writable()
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to write {key}: {exc}") from exc

    def put_many(self, items: Iterable[Tuple[str, str]]) -> int:
        """Bulk load used by the tariff schedule loader."""
        self._check_writable()
        rows = list(items)
        try:
            with self._lock, self._conn:
                self._conn.executemany("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", rows)
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to bulk write {len(rows)} keys: {exc}") from exc
        return len(rows)

    def delete(self, key: str) -> None:
        self._check_writable()
        try:
            with self._lock, self._conn:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to delete {key}: {exc}") from exc

    def lock(self, key: str):
        return self._locks.hold(key)

    def ping(self) -> bool:
        try:
            with self._lock:
                self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()
