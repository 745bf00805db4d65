"""HS code to tariff-schedule record resolution with truncation fallback.

More specific codes roll up to broader ones in the schedule, so a miss on
``12345678`` is retried as ``123456`` and then ``1234``. The number of
lookups is capped (3 by default) independently of the schedule depth.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from taxotariff.storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

_DIGITS_RE = re.compile(r"\D")


def normalize_hs_code(code: str) -> str:
    """Strip all non-digit characters, then drop one trailing ``00`` suffix."""
    digits = _DIGITS_RE.sub("", str(code))
    if digits.endswith("00"):
        digits = digits[:-2]
    return digits


@dataclass(frozen=True)
class TariffMatch:
    requested: str
    matched: str
    attempts: int
    record: str


class TariffResolver:
    """Reads serialized tariff records from a read-only key-value store."""

    def __init__(self, store: KeyValueStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.store = store
        self.max_attempts = max_attempts

    def lookup(self, hs_code: str) -> Optional[TariffMatch]:
        code = normalize_hs_code(hs_code)
        attempts = 0
        while code and attempts < self.max_attempts:
            attempts += 1
            record = self.store.get(code)
            if record is not None:
                logger.debug("Tariff match for %s at %s after %d lookups", hs_code, code, attempts)
                return TariffMatch(requested=hs_code, matched=code, attempts=attempts, record=record)
            code = code[:-2]
        logger.debug("No tariff match for %s within %d lookups", hs_code, attempts)
        return None

    def resolve(self, hs_code: str) -> Optional[str]:
        """Return the serialized tariff record for ``hs_code`` or ``None``."""
        match = self.lookup(hs_code)
        return match.record if match else None
