import asyncio

import pytest

from i18n_openai_sync.cache import SqliteKeyValueStore, TranslationResultCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv_store(tmp_path):
    store = SqliteKeyValueStore(tmp_path / "cache" / "cache.sqlite3")
    yield store
    store.close()


class TestSqliteKeyValueStore:
    def test_missing_key_is_absent(self, kv_store):
        assert kv_store.get("nope") is None

    def test_round_trips_value_and_timestamp(self, kv_store):
        kv_store.set("langs", ["en", "fr"], 123.5)
        assert kv_store.get("langs") == {"value": ["en", "fr"], "timestamp": 123.5}

    def test_delete(self, kv_store):
        kv_store.set("k", "v", 1.0)
        kv_store.delete("k")
        assert kv_store.get("k") is None


class TestTranslationResultCache:
    """TTL cache mirrored to durable storage."""

    def test_miss_returns_default(self, clock):
        cache = TranslationResultCache(default_ttl=10, clock=clock)
        assert cache.get("k") is None
        assert cache.get("k", default="fallback") == "fallback"

    def test_hit_within_ttl(self, clock):
        cache = TranslationResultCache(default_ttl=10, clock=clock)
        cache.set("k", "v")
        clock.now += 9.9
        assert cache.get("k") == "v"

    def test_entry_older_than_ttl_is_a_miss(self, clock):
        cache = TranslationResultCache(default_ttl=10, clock=clock)
        cache.set("k", "v")
        clock.now += 10
        assert cache.get("k") is None

    def test_per_entry_ttl(self, clock):
        cache = TranslationResultCache(default_ttl=10, clock=clock)
        cache.set("short", "v", ttl=1)
        cache.set("long", "v", ttl=100)
        clock.now += 5
        assert cache.get("short") is None
        assert cache.get("long") == "v"

    def test_survives_restart_through_durable_store(self, kv_store, clock):
        TranslationResultCache(kv_store, default_ttl=60, clock=clock).set("k", {"a": 1})
        restarted = TranslationResultCache(kv_store, default_ttl=60, clock=clock)
        assert restarted.get("k") == {"a": 1}

    def test_stale_durable_entry_is_a_miss(self, kv_store, clock):
        TranslationResultCache(kv_store, default_ttl=60, clock=clock).set("k", "v")
        clock.now += 61
        restarted = TranslationResultCache(kv_store, default_ttl=60, clock=clock)
        assert restarted.get("k") is None

    def test_invalidate(self, kv_store, clock):
        cache = TranslationResultCache(kv_store, default_ttl=60, clock=clock)
        cache.set("k", "v")
        cache.invalidate("k")
        assert cache.get("k") is None
        assert kv_store.get("k") is None

    async def test_get_or_fetch_only_fetches_on_miss(self, clock):
        cache = TranslationResultCache(default_ttl=10, clock=clock)
        calls = []

        async def fetch():
            calls.append(clock.now)
            return ["en", "fr"]

        assert await cache.get_or_fetch("langs", fetch) == ["en", "fr"]
        assert await cache.get_or_fetch("langs", fetch) == ["en", "fr"]
        assert len(calls) == 1

        clock.now += 11
        await cache.get_or_fetch("langs", fetch)
        assert len(calls) == 2

    async def test_concurrent_refresh_fetches_at_most_once_per_caller(self, clock):
        cache = TranslationResultCache(default_ttl=10, clock=clock)
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return "value"

        results = await asyncio.gather(
            cache.get_or_fetch("k", fetch), cache.get_or_fetch("k", fetch)
        )
        assert results == ["value", "value"]
        assert 1 <= calls <= 2
        assert cache.get("k") == "value"
