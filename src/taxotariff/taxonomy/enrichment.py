"""Fan-out metadata and tariff enrichment for resolved category paths."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from taxotariff.metadata import MetadataStore
from taxotariff.models import Category
from taxotariff.tariff import TariffResolver
from taxotariff.taxonomy.paths import iter_categories

logger = logging.getLogger(__name__)


class Enricher:
    """Attaches stored metadata (and optionally tariff records) to categories.

    Inputs are never mutated: each category is copied before ``meta`` is set,
    so paths read from the response cache stay free of metadata.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        tariffs: Optional[TariffResolver] = None,
        *,
        max_workers: int = 8,
    ):
        self.metadata = metadata
        self.tariffs = tariffs
        self.max_workers = max(1, max_workers)

    def enrich_category(self, category: Category, *, with_tariff: bool = False) -> Category:
        meta = self.metadata.get(category.id)
        if meta is None:
            return category.model_copy(update={"meta": None})
        hs_code = meta.get("hsCode")
        if with_tariff and hs_code and self.tariffs is not None:
            record = self.tariffs.resolve(hs_code)
            if record is not None:
                meta["tariff"] = record
        return category.model_copy(update={"meta": meta})

    def enrich_paths(
        self,
        paths: Sequence[Sequence[Category]],
        *,
        with_tariff: bool = False,
    ) -> List[List[Category]]:
        """Enrich every category of every path concurrently.

        Completion order is irrelevant: results are regrouped by input
        position, preserving path order and root-to-leaf order within a path.
        """
        flat = list(iter_categories(paths))
        if not flat:
            return [[] for _ in paths]

        workers = min(self.max_workers, len(flat))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="enrich") as pool:
            enriched = list(pool.map(lambda c: self.enrich_category(c, with_tariff=with_tariff), flat))

        grouped: List[List[Category]] = []
        offset = 0
        for path in paths:
            grouped.append(enriched[offset : offset + len(path)])
            offset += len(path)
        return grouped
