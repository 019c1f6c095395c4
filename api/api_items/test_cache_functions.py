"""
Tests for the response cache implementations.
"""

import json

import pytest
import redis

from cache_functions import MemoryResponseCache, RedisResponseCache, create_response_cache
from conftest import ManualClock


class FakeRedis:
    def __init__(self, fail=False):
        self.store = {}
        self.ttls = {}
        self.fail = fail

    def get(self, key):
        if self.fail:
            raise redis.ConnectionError("redis down")
        return self.store.get(key)

    def setex(self, key, ttl, value):
        if self.fail:
            raise redis.ConnectionError("redis down")
        self.store[key] = value.encode("utf-8")
        self.ttls[key] = ttl


class TestMemoryResponseCache:

    def test_miss_returns_none(self):
        assert MemoryResponseCache().get("nothing") is None

    def test_hit_within_ttl_returns_same_object(self):
        clock = ManualClock()
        cache = MemoryResponseCache(default_ttl=120, clock=clock)
        items = [{"id": "1"}]
        cache.set("k", items)
        clock.advance(119)
        assert cache.get("k") is items

    def test_entry_expires_lazily(self):
        clock = ManualClock()
        cache = MemoryResponseCache(default_ttl=120, clock=clock)
        cache.set("k", [1])
        clock.advance(120)
        assert len(cache) == 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_explicit_ttl_overrides_default(self):
        clock = ManualClock()
        cache = MemoryResponseCache(default_ttl=120, clock=clock)
        cache.set("k", [1], ttl_seconds=5)
        clock.advance(6)
        assert cache.get("k") is None

    def test_empty_list_is_a_hit(self):
        cache = MemoryResponseCache()
        cache.set("k", [])
        assert cache.get("k") == []

    def test_max_entries_evicts_oldest(self):
        cache = MemoryResponseCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_unbounded_by_default(self):
        cache = MemoryResponseCache()
        for index in range(500):
            cache.set(str(index), index)
        assert len(cache) == 500


class TestRedisResponseCache:

    def test_round_trips_json_with_prefix_and_ttl(self):
        client = FakeRedis()
        cache = RedisResponseCache(client, prefix="items", default_ttl=120)
        cache.set("tmdb:discover", [{"id": "1"}])
        assert json.loads(client.store["items:tmdb:discover"]) == [{"id": "1"}]
        assert client.ttls["items:tmdb:discover"] == 120
        assert cache.get("tmdb:discover") == [{"id": "1"}]

    def test_redis_errors_are_misses(self):
        cache = RedisResponseCache(FakeRedis(fail=True))
        cache.set("k", [1])
        assert cache.get("k") is None


class TestCreateResponseCache:

    def test_memory_default(self):
        cache = create_response_cache("memory", 60, 10)
        assert isinstance(cache, MemoryResponseCache)
        assert cache.default_ttl == 60
        assert cache.max_entries == 10

    def test_unknown_backend_falls_back_to_memory(self):
        assert isinstance(create_response_cache("memcached"), MemoryResponseCache)

    def test_redis_backend(self):
        assert isinstance(create_response_cache("redis", redis_client=FakeRedis()), RedisResponseCache)

    def test_redis_backend_requires_client(self):
        with pytest.raises(ValueError):
            create_response_cache("redis")
