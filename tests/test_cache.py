import json

import redis

from packages.cache import MemoryCache, RedisCache, build_cache, get_or_set


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


class BrokenRedis:
    def get(self, key):
        raise redis.ConnectionError("down")

    def set(self, key, value, ex=None):
        raise redis.ConnectionError("down")

    def delete(self, *keys):
        raise redis.TimeoutError("slow")


def test_memory_cache_ttl():
    clock = FakeClock()
    cache = MemoryCache(clock=clock)
    cache.set("key", {"a": 1}, 30)
    assert cache.get("key") == {"a": 1}

    clock.now += 30
    assert cache.get("key") is None


def test_memory_cache_delete_many():
    cache = MemoryCache()
    cache.set("a", 1, 10)
    cache.set("b", 2, 10)
    cache.delete("a", "b", "missing")
    assert cache.get("a") is None
    assert cache.get("b") is None


def test_get_or_set_computes_once():
    clock = FakeClock()
    cache = MemoryCache(clock=clock)
    counter = {"n": 0}

    def compute():
        counter["n"] += 1
        return counter["n"]

    first = get_or_set(cache, "key", 1, compute)
    second = get_or_set(cache, "key", 1, compute)
    assert first == second == 1

    clock.now += 1.1
    assert get_or_set(cache, "key", 1, compute) == 2


def test_redis_cache_stores_json_with_ttl():
    client = FakeRedis()
    cache = RedisCache(client)
    cache.set("streak:1", {"streak": 3}, 300)
    assert json.loads(client.store["streak:1"]) == {"streak": 3}
    assert client.ttls["streak:1"] == 300
    assert cache.get("streak:1") == {"streak": 3}

    cache.delete("streak:1")
    assert cache.get("streak:1") is None


def test_redis_cache_treats_garbage_as_miss():
    client = FakeRedis()
    client.store["strava:access_token"] = "not-json{"
    assert RedisCache(client).get("strava:access_token") is None


def test_redis_errors_degrade_to_miss():
    cache = RedisCache(BrokenRedis())
    assert cache.get("leaderboard:enriched") is None
    cache.set("leaderboard:enriched", {"x": 1}, 30)
    cache.delete("leaderboard:enriched", "streak:1")


def test_build_cache_without_url_is_memory(monkeypatch):
    import packages.config as config

    monkeypatch.setattr(config, "REDIS_URL", None)
    assert isinstance(build_cache(), MemoryCache)
