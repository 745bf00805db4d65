"""Best-match category path for a free-text product description."""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from taxotariff.models import Category
from taxotariff.observability import log_event
from taxotariff.storage import KeyValueStore
from taxotariff.taxonomy.classifier import Classifier
from taxotariff.taxonomy.enrichment import Enricher
from taxotariff.taxonomy.paths import category_path, normalize_query

logger = logging.getLogger(__name__)

CATEGORY_PREFIX = "CATEGORY_"

_PATH_ADAPTER = TypeAdapter(List[Category])


def category_key(query: str) -> str:
    return f"{CATEGORY_PREFIX}{query}"


class CategoryResolver:
    """Resolves a query to the top-ranked root-to-leaf category path.

    Paths are cached per normalized query without expiry; the taxonomy is
    close to static. Metadata is attached per request, outside the cache.
    """

    def __init__(self, store: KeyValueStore, classifier: Classifier, enricher: Enricher):
        self.store = store
        self.classifier = classifier
        self.enricher = enricher

    def _cached(self, key: str) -> Optional[List[Category]]:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return _PATH_ADAPTER.validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable cache entry %s", key)
            return None

    def resolve(self, query: str) -> List[Category]:
        """Root-to-leaf path of the best candidate, without metadata.

        Raises:
            UpstreamAuthError: if no token could be obtained.
            ClassificationError: if the classifier fails.
        """
        query = normalize_query(query)
        key = category_key(query)
        cached = self._cached(key)
        if cached is not None:
            log_event("category.cache_hit", query=query)
            return cached

        log_event("category.cache_miss", query=query)
        candidates = self.classifier.classify(query)
        if not candidates:
            return []

        path = category_path(candidates[0])
        self.store.put(key, json.dumps([c.model_dump(exclude_none=True) for c in path]))
        return path

    def resolve_with_meta(self, query: str) -> List[Category]:
        path = self.resolve(query)
        (enriched,) = self.enricher.enrich_paths([path])
        return enriched
