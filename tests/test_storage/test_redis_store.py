from concurrent.futures import ThreadPoolExecutor

import fakeredis
import pytest
import redis
from fastapi.testclient import TestClient

from taxotariff.api.app import create_app
from taxotariff.bootstrap import build_services
from taxotariff.caching import RedisKVStore
from taxotariff.errors import StoreError
from taxotariff.metadata import MetadataStore


class StubRedis:
    """Just enough of ``redis.Redis`` for the single-key operations."""

    def __init__(self, fail=False):
        self.data = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.exceptions.ConnectionError("connection refused")

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value):
        self._check()
        self.data[key] = value

    def delete(self, key):
        self._check()
        self.data.pop(key, None)

    def ping(self):
        self._check()
        return True

    def close(self):
        pass


def test_single_key_operations_round_trip():
    store = RedisKVStore("redis://stub", client=StubRedis())

    store.put("TOKEN", '{"access_token": "a", "expires_at": 1}')
    assert store.get("TOKEN") == '{"access_token": "a", "expires_at": 1}'
    store.delete("TOKEN")
    assert store.get("TOKEN") is None
    assert store.ping() is True


def test_backend_failures_become_store_errors():
    store = RedisKVStore("redis://stub", client=StubRedis(fail=True))

    with pytest.raises(StoreError):
        store.get("TOKEN")
    with pytest.raises(StoreError):
        store.put("TOKEN", "{}")
    assert store.ping() is False


def test_read_only_store_rejects_writes():
    store = RedisKVStore("redis://stub", client=StubRedis(), read_only=True)

    with pytest.raises(StoreError):
        store.put("6404", "{}")


@pytest.fixture()
def fake_server():
    return fakeredis.FakeServer()


def _fake_store(server, **kwargs):
    return RedisKVStore(
        "redis://fake",
        client=fakeredis.FakeRedis(server=server, decode_responses=True),
        **kwargs,
    )


def test_concurrent_merges_keep_every_field(fake_server):
    workers = [_fake_store(fake_server) for _ in range(4)]
    metadata = [MetadataStore(store) for store in workers]
    fields = [f"field{i}" for i in range(16)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(
            pool.map(
                lambda i: metadata[i % len(metadata)].merge("1059", {fields[i]: str(i)}),
                range(len(fields)),
            )
        )

    stored = MetadataStore(_fake_store(fake_server)).get("1059")
    assert stored == {name: str(i) for i, name in enumerate(fields)}


def test_lock_released_after_block(fake_server):
    store = _fake_store(fake_server)

    with store.lock("META_1059"):
        assert store._client.exists("lock:META_1059")
    assert not store._client.exists("lock:META_1059")


def test_held_lock_times_out_with_store_error(fake_server):
    holder = _fake_store(fake_server)
    waiter = _fake_store(fake_server, lock_blocking_timeout=0.1)

    with holder.lock("META_1059"):
        with pytest.raises(StoreError):
            with waiter.lock("META_1059"):
                pass
        with pytest.raises(StoreError):
            MetadataStore(waiter).merge("1059", {"prohibited": "true"})

    assert MetadataStore(waiter).merge("1059", {"prohibited": "true"}) == {"prohibited": "true"}


def test_health_reports_redis_results_store(fake_server, settings, tariff_store, upstream, clock):
    services = build_services(
        settings,
        results=_fake_store(fake_server),
        tariff_store=tariff_store,
        transport=upstream.transport,
        clock=clock,
    )
    try:
        with TestClient(create_app(services)) as client:
            response = client.get("/health")
    finally:
        services.close()

    assert response.status_code == 200
    assert response.json()["stores"] == {"results": True, "tariff": True}
