"""Tariff-schedule lookups for operator-assigned HS codes."""

from .loader import load_tariff_schedule
from .resolver import TariffMatch, TariffResolver, normalize_hs_code

__all__ = [
    "TariffMatch",
    "TariffResolver",
    "load_tariff_schedule",
    "normalize_hs_code",
]
