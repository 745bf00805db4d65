"""Load a tariff schedule export into the tariff reference store.

Accepts JSON Lines or a JSON array (optionally wrapped in ``{"results": [...]}``)
of records carrying an ``htsno`` or ``hsCode`` field, as exported from the
USITC REST API. Each record is stored under its digits-only code; the
resolver applies the rounding and truncation rules at lookup time.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from taxotariff.storage import KeyValueStore


logger = logging.getLogger(__name__)

_DIGITS_RE = re.compile(r"\D")
_CODE_FIELDS = ("htsno", "hsCode", "hts_code", "code")


def _read_records(path: Path) -> List[Dict[str, Any]]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return [json.loads(line) for line in text.splitlines() if line.strip()]
    if isinstance(data, dict):
        data = data.get("results", [data])
    if not isinstance(data, list):
        raise ValueError(f"Unexpected tariff schedule format: {type(data)}")
    return data


def _record_code(record: Dict[str, Any]) -> str:
    for field in _CODE_FIELDS:
        value = record.get(field)
        if value:
            return _DIGITS_RE.sub("", str(value))
    return ""


def iter_schedule_items(records: Iterable[Dict[str, Any]]) -> Iterator[Tuple[str, str]]:
    """Yield ``(code, serialized record)`` pairs, skipping records without a code."""
    for record in records:
        code = _record_code(record)
        if not code:
            continue
        yield code, json.dumps(record, sort_keys=True, separators=(",", ":"))


def load_tariff_schedule(path: Path, store: KeyValueStore) -> int:
    """Write every coded record from ``path`` into ``store``.

    Returns the number of distinct codes written. When two records share a
    code the later one wins and the collision is logged.
    """
    records = _read_records(Path(path))
    items: Dict[str, str] = {}
    for code, value in iter_schedule_items(records):
        if code in items:
            logger.warning("Duplicate tariff code %s in %s; keeping the later record", code, path)
        items[code] = value

    put_many = getattr(store, "put_many", None)
    if put_many is not None:
        count = put_many(items.items())
    else:
        for key, value in items.items():
            store.put(key, value)
        count = len(items)
    logger.info("Loaded %d tariff codes from %s (%d records read)", count, path, len(records))
    return count
