"""Short-TTL key-value cache used for tokens, sync cooldowns, streaks and leaderboard payloads.

Caching is an optimization: every backend degrades to "miss" / no-op on errors
instead of raising into the scoring code.
"""
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis

import packages.config as config


logger = logging.getLogger("leaderboard.cache")

ACCESS_TOKEN_KEY = "strava:access_token"
LAST_SYNC_KEY = "strava:last_sync"
LEADERBOARD_KEY = "leaderboard:enriched"
STREAK_PREFIX = "streak:"


def streak_key(athlete_id: int) -> str:
    return f"{STREAK_PREFIX}{athlete_id}"


class KVCache:
    """get / set-with-TTL / delete. Values must be JSON-serializable."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        raise NotImplementedError

    def delete(self, *keys: str) -> None:
        raise NotImplementedError


class MemoryCache(KVCache):
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                self._entries.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)


class RedisCache(KVCache):
    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            logger.warning("cache get failed for %s: %s", key, exc)
            return None
        if raw is None:
            logger.debug("cache miss %s", key)
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("cache payload for %s is not JSON; treating as miss", key)
            return None
        logger.debug("cache hit %s", key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self._client.set(key, json.dumps(value), ex=max(int(ttl_seconds), 1))
        except (redis.RedisError, TypeError, ValueError) as exc:
            logger.warning("cache set failed for %s: %s", key, exc)

    def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            self._client.delete(*keys)
        except redis.RedisError as exc:
            logger.warning("cache delete failed for %s: %s", ",".join(keys), exc)


def get_or_set(cache: KVCache, key: str, ttl_seconds: int, compute: Callable[[], Any]) -> Any:
    value = cache.get(key)
    if value is not None:
        return value
    value = compute()
    cache.set(key, value, ttl_seconds)
    return value


def build_cache(url: Optional[str] = None) -> KVCache:
    url = url or config.REDIS_URL
    if url:
        return RedisCache.from_url(url)
    logger.info("REDIS_URL not set; using in-process cache")
    return MemoryCache()
