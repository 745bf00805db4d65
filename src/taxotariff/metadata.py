"""Operator-curated metadata per taxonomy category.

Stored under ``META_{category_id}`` as a flat JSON object of string values.
Writes merge: incoming keys overwrite, unspecified keys survive, nothing is
removed except through :meth:`MetadataStore.delete`.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Mapping, Optional

from taxotariff.errors import StoreError
from taxotariff.observability import log_event
from taxotariff.storage import KeyValueStore

logger = logging.getLogger(__name__)

META_PREFIX = "META_"


def meta_key(category_id: str) -> str:
    return f"{META_PREFIX}{category_id}"


def _decode(key: str, raw: str) -> Dict[str, str]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StoreError(f"Corrupt metadata under {key}: {exc}") from exc
    if not isinstance(data, dict):
        raise StoreError(f"Corrupt metadata under {key}: expected an object")
    if not all(isinstance(v, str) for v in data.values()):
        raise StoreError(f"Corrupt metadata under {key}: values must be strings")
    return data


class MetadataStore:
    """Thin adapter over a key-value store for per-category metadata."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, category_id: str) -> Optional[Dict[str, str]]:
        key = meta_key(category_id)
        raw = self.store.get(key)
        if raw is None:
            return None
        return _decode(key, raw)

    def merge(self, category_id: str, partial: Mapping[str, str]) -> Dict[str, str]:
        """Overlay ``partial`` on the stored metadata and return the merged result.

        The read-modify-write runs under the store's per-key lock so concurrent
        merges on the same id do not drop each other's fields.
        """
        key = meta_key(category_id)
        with self.store.lock(key):
            raw = self.store.get(key)
            current = _decode(key, raw) if raw is not None else {}
            merged = {**current, **{str(k): str(v) for k, v in partial.items()}}
            self.store.put(key, json.dumps(merged))
        log_event("metadata.merge", category_id=category_id, fields=sorted(partial))
        return merged

    def delete(self, category_id: str) -> None:
        key = meta_key(category_id)
        with self.store.lock(key):
            self.store.delete(key)
        log_event("metadata.delete", category_id=category_id)
