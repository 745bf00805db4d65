"""Upstream taxonomy classification: credentials, resolvers and path helpers."""

from .category import CategoryResolver
from .classifier import Classifier
from .client import TaxonomyClient
from .credentials import CredentialCache
from .enrichment import Enricher
from .paths import category_path, derive_overview, first_meta_value, normalize_query
from .suggest import SuggestionResolver, SuggestResult, build_etag, etag_matches

__all__ = [
    "CategoryResolver",
    "Classifier",
    "CredentialCache",
    "Enricher",
    "SuggestResult",
    "SuggestionResolver",
    "TaxonomyClient",
    "build_etag",
    "category_path",
    "derive_overview",
    "etag_matches",
    "first_meta_value",
    "normalize_query",
]
