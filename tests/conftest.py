"""Shared fixtures: a scripted upstream classifier and in-memory services."""

from __future__ import annotations

import pytest

from taxotariff.bootstrap import build_services
from taxotariff.config import Settings
from taxotariff.storage import InMemoryKVStore
from tests.helpers.upstream import SHOES, SNEAKERS, FakeClock, FakeUpstream, payload


@pytest.fixture()
def upstream() -> FakeUpstream:
    fake = FakeUpstream()
    fake.respond("running shoes", 200, payload(SHOES, SNEAKERS))
    return fake


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(client_auth="Y2xpZW50OnNlY3JldA==", enrich_workers=4)


@pytest.fixture()
def results_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture()
def tariff_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture()
def services(settings, results_store, tariff_store, upstream, clock):
    built = build_services(
        settings,
        results=results_store,
        tariff_store=tariff_store,
        transport=upstream.transport,
        clock=clock,
    )
    yield built
    built.close()

