"""All ranked candidate paths for a query, enriched and fingerprinted.

The enriched list is hashed into a weak entity tag so that clients polling
with ``If-None-Match`` get a 304 until either the classification or any
attached metadata/tariff record changes.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from taxotariff.models import Suggestion
from taxotariff.observability import log_event
from taxotariff.storage import KeyValueStore
from taxotariff.taxonomy.classifier import Classifier
from taxotariff.taxonomy.enrichment import Enricher
from taxotariff.taxonomy.paths import category_path, normalize_query

logger = logging.getLogger(__name__)

SUGGESTION_PREFIX = "SUGGESTION_"

_SUGGESTIONS_ADAPTER = TypeAdapter(List[Suggestion])


def suggestion_key(query: str) -> str:
    return f"{SUGGESTION_PREFIX}{query}"


def serialize_suggestions(suggestions: Sequence[Suggestion]) -> str:
    return json.dumps(
        [s.model_dump(exclude_none=True) for s in suggestions],
        sort_keys=True,
        separators=(",", ":"),
    )


def build_etag(suggestions: Sequence[Suggestion]) -> str:
    """Weak entity tag over the serialized suggestion list."""
    digest = hashlib.md5(serialize_suggestions(suggestions).encode("utf-8")).hexdigest()
    return f'W/"{digest}"'


def _opaque(tag: str) -> str:
    tag = tag.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    return tag


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """Weak comparison of an ``If-None-Match`` header against ``etag``."""
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    target = _opaque(etag)
    return any(_opaque(candidate) == target for candidate in if_none_match.split(","))


@dataclass(frozen=True)
class SuggestResult:
    suggestions: List[Suggestion]
    etag: str
    not_modified: bool = False


class SuggestionResolver:
    def __init__(self, store: KeyValueStore, classifier: Classifier, enricher: Enricher):
        self.store = store
        self.classifier = classifier
        self.enricher = enricher

    def _cached(self, key: str) -> Optional[List[Suggestion]]:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return _SUGGESTIONS_ADAPTER.validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable cache entry %s", key)
            return None

    def resolve(self, query: str) -> List[Suggestion]:
        """Every upstream candidate as a root-to-leaf path, in upstream rank order."""
        query = normalize_query(query)
        key = suggestion_key(query)
        cached = self._cached(key)
        if cached is not None:
            log_event("suggest.cache_hit", query=query)
            return cached

        log_event("suggest.cache_miss", query=query)
        candidates = self.classifier.classify(query)
        if not candidates:
            return []

        suggestions = [Suggestion(suggestion=category_path(candidate)) for candidate in candidates]
        self.store.put(key, serialize_suggestions(suggestions))
        return suggestions

    def resolve_enriched(self, query: str) -> List[Suggestion]:
        suggestions = self.resolve(query)
        paths = self.enricher.enrich_paths([s.suggestion for s in suggestions], with_tariff=True)
        return [Suggestion(suggestion=path) for path in paths]

    def resolve_conditional(self, query: str, if_none_match: Optional[str] = None) -> SuggestResult:
        """Enriched suggestions plus their entity tag.

        ``not_modified`` is set when ``if_none_match`` matches the fresh tag;
        the caller then answers 304 without a body.
        """
        suggestions = self.resolve_enriched(query)
        etag = build_etag(suggestions)
        if etag_matches(if_none_match, etag):
            return SuggestResult(suggestions=[], etag=etag, not_modified=True)
        return SuggestResult(suggestions=suggestions, etag=etag)
