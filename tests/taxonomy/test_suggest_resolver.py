import json
import random
import threading
import time

from taxotariff.metadata import MetadataStore
from taxotariff.storage import InMemoryKVStore
from taxotariff.taxonomy import Enricher, build_etag, etag_matches
from taxotariff.taxonomy.suggest import suggestion_key
from tests.helpers.upstream import ids


def test_every_candidate_kept_in_rank_order(services):
    suggestions = services.suggestions.resolve("running shoes")

    assert [ids(s.suggestion) for s in suggestions] == [
        ["11450", "1059", "93427", "15709"],
        ["11450", "3034", "155202"],
    ]


def test_suggestions_are_cached_by_normalized_query(services, upstream, results_store):
    services.suggestions.resolve("Running Shoes")
    services.suggestions.resolve(" running shoes")

    assert upstream.classify_calls == 1
    assert results_store.get(suggestion_key("running shoes")) is not None


def test_enrichment_attaches_meta_and_tariff(services, tariff_store):
    tariff_store.put("12345678", json.dumps({"htsno": "1234.56.78", "description": "Footwear"}))
    services.metadata.merge("93427", {"hsCode": "1234567800", "prohibited": "false"})
    services.metadata.merge("3034", {"prohibited": "true"})

    suggestions = services.suggestions.resolve_enriched("running shoes")

    mens_shoes = suggestions[0].suggestion[2]
    assert mens_shoes.meta["hsCode"] == "1234567800"
    assert json.loads(mens_shoes.meta["tariff"])["description"] == "Footwear"
    womens_shoes = suggestions[1].suggestion[1]
    assert womens_shoes.meta == {"prohibited": "true"}
    assert suggestions[0].suggestion[0].meta is None


def test_tariff_miss_leaves_meta_without_tariff(services):
    services.metadata.merge("15709", {"hsCode": "9999999999"})

    suggestions = services.suggestions.resolve_enriched("running shoes")

    assert suggestions[0].suggestion[-1].meta == {"hsCode": "9999999999"}


def test_cached_suggestions_stay_free_of_meta(services, results_store):
    services.metadata.merge("15709", {"hsCode": "640411"})
    services.suggestions.resolve_enriched("running shoes")

    cached = results_store.get(suggestion_key("running shoes"))
    assert "meta" not in cached


def test_identical_content_yields_identical_etag(services):
    first = services.suggestions.resolve_conditional("running shoes")
    second = services.suggestions.resolve_conditional("running shoes")

    assert first.etag == second.etag
    assert first.etag.startswith('W/"') and first.etag.endswith('"')
    assert not first.not_modified


def test_matching_if_none_match_is_not_modified(services):
    first = services.suggestions.resolve_conditional("running shoes")

    again = services.suggestions.resolve_conditional("running shoes", first.etag)

    assert again.not_modified
    assert again.suggestions == []
    assert again.etag == first.etag


def test_metadata_change_produces_new_etag(services):
    first = services.suggestions.resolve_conditional("running shoes")
    services.metadata.merge("1059", {"protectable": "false"})

    after = services.suggestions.resolve_conditional("running shoes", first.etag)

    assert not after.not_modified
    assert after.etag != first.etag
    assert after.suggestions[0].suggestion[1].meta == {"protectable": "false"}


def test_no_match_has_stable_etag(services):
    empty = services.suggestions.resolve_conditional("nothing here")

    assert empty.suggestions == []
    assert empty.etag == build_etag([])


def test_etag_matching_rules():
    etag = 'W/"abc"'
    assert etag_matches('W/"abc"', etag)
    assert etag_matches('"abc"', etag)
    assert etag_matches('"zzz", W/"abc"', etag)
    assert etag_matches("*", etag)
    assert not etag_matches('W/"abd"', etag)
    assert not etag_matches(None, etag)
    assert not etag_matches("", etag)


class SlowStore(InMemoryKVStore):
    def get(self, key):
        time.sleep(random.uniform(0, 0.02))
        return super().get(key)


def test_fan_out_preserves_input_order(services):
    store = SlowStore()
    metadata = MetadataStore(store)
    suggestions = services.suggestions.resolve("running shoes")
    for s in suggestions:
        for category in s.suggestion:
            metadata.merge(category.id, {"label": category.name})

    enricher = Enricher(metadata, max_workers=8)
    paths = enricher.enrich_paths([s.suggestion for s in suggestions])

    assert [ids(path) for path in paths] == [ids(s.suggestion) for s in suggestions]
    for path in paths:
        assert all(c.meta == {"label": c.name} for c in path)


def test_fan_out_handles_empty_paths(services):
    enricher = Enricher(services.metadata)
    assert enricher.enrich_paths([]) == []
    assert enricher.enrich_paths([[]]) == [[]]


class ConcurrencyTrackingStore(InMemoryKVStore):
    """Records the highest number of ``get`` calls in flight at once."""

    def __init__(self, delay=0.05):
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.peak = 0
        self._counter = threading.Lock()

    def get(self, key):
        with self._counter:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
        try:
            time.sleep(self.delay)
            return super().get(key)
        finally:
            with self._counter:
                self.in_flight -= 1


def test_fan_out_reads_metadata_concurrently(services):
    store = ConcurrencyTrackingStore()
    suggestions = services.suggestions.resolve("running shoes")

    enricher = Enricher(MetadataStore(store), max_workers=4)
    paths = enricher.enrich_paths([s.suggestion for s in suggestions])

    assert sum(len(path) for path in paths) == 7
    assert store.peak > 1
    assert store.peak <= 4
