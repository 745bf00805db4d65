"""Unified bootstrap for the resolver services.

Builds the service graph shared by the API and CLI entrypoints. Nothing is
constructed at import time; callers decide when stores are opened.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from taxotariff.config import Settings
from taxotariff.metadata import MetadataStore
from taxotariff.storage import KeyValueStore, get_store
from taxotariff.tariff import TariffResolver
from taxotariff.taxonomy import (
    CategoryResolver,
    Classifier,
    CredentialCache,
    Enricher,
    SuggestionResolver,
    TaxonomyClient,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class ResolverServices:
    settings: Settings
    results: KeyValueStore
    tariff_store: KeyValueStore
    client: TaxonomyClient
    credentials: CredentialCache
    metadata: MetadataStore
    tariffs: TariffResolver
    categories: CategoryResolver
    suggestions: SuggestionResolver

    def close(self) -> None:
        self.client.close()
        self.results.close()
        if self.tariff_store is not self.results:
            self.tariff_store.close()


def build_services(
    settings: Optional[Settings] = None,
    *,
    results: Optional[KeyValueStore] = None,
    tariff_store: Optional[KeyValueStore] = None,
    transport: Optional[httpx.BaseTransport] = None,
    clock: Callable[[], float] = time.time,
) -> ResolverServices:
    """Wire stores, the upstream client and the resolvers together.

    Stores and the HTTP transport can be injected; otherwise they are built
    from ``settings`` (read from the environment when omitted).
    """
    settings = settings or Settings.from_env()
    results = results if results is not None else get_store(settings.results_url)
    tariff_store = (
        tariff_store if tariff_store is not None else get_store(settings.tariff_url, read_only=True)
    )

    client = TaxonomyClient(settings, transport=transport, clock=clock)
    credentials = CredentialCache(results, client, clock=clock)
    classifier = Classifier(client, credentials)
    metadata = MetadataStore(results)
    tariffs = TariffResolver(tariff_store, max_attempts=settings.tariff_attempts)
    enricher = Enricher(metadata, tariffs, max_workers=settings.enrich_workers)

    LOGGER.info(
        "Resolver services ready (results=%s, tariff=%s)",
        type(results).__name__,
        type(tariff_store).__name__,
    )
    return ResolverServices(
        settings=settings,
        results=results,
        tariff_store=tariff_store,
        client=client,
        credentials=credentials,
        metadata=metadata,
        tariffs=tariffs,
        categories=CategoryResolver(results, classifier, enricher),
        suggestions=SuggestionResolver(results, classifier, enricher),
    )
