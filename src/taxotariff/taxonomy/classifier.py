from __future__ import annotations

import logging
from typing import List

from taxotariff.errors import ClassificationError
from taxotariff.models import UpstreamSuggestionModel
from taxotariff.observability import log_event
from taxotariff.taxonomy.client import TaxonomyClient
from taxotariff.taxonomy.credentials import CredentialCache

logger = logging.getLogger(__name__)


class Classifier:
    """Token-gated access to the upstream ranked category suggestions."""

    def __init__(self, client: TaxonomyClient, credentials: CredentialCache):
        self.client = client
        self.credentials = credentials

    def classify(self, query: str) -> List[UpstreamSuggestionModel]:
        """Ranked candidates for ``query``; empty when the classifier has no match.

        Any classifier failure drops the cached token before re-raising, since a
        stale or revoked token is the usual cause.
        """
        token = self.credentials.get_credentials()
        try:
            payload = self.client.category_suggestions(query, token.access_token)
        except ClassificationError as exc:
            log_event("classifier.failure", query=query, status=exc.status_code)
            self.credentials.invalidate()
            raise
        if payload is None:
            log_event("classifier.no_match", query=query)
            return []
        return list(payload.categorySuggestions)
