from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Callable, Optional

import redis

from sitegen.cache import SITE_CACHE_SIZE, SITE_CACHE_TTL_MINUTES, CacheStats

log = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "").strip()
REDIS_KEY_PREFIX = os.getenv("REDIS_CACHE_PREFIX", "sitegen:cache")


class RedisFingerprintCache:
    """FingerprintCache contract on a shared Redis server.

    Layout per cache name:
      ``<prefix>:<name>:entries``  hash   key -> JSON payload
      ``<prefix>:<name>:inserted`` zset   key scored by insertion time
      ``<prefix>:<name>:stats``    hash   hits / misses counters
    Eviction pops the lowest score, which keeps the in-memory FIFO policy.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        max_size: int = SITE_CACHE_SIZE,
        ttl_seconds: float = SITE_CACHE_TTL_MINUTES * 60,
        name: str = "site",
        client: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.max_size = int(max_size)
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        if client is None:
            # Lazy: no network traffic until the first command
            client = redis.from_url(redis_url or REDIS_URL, decode_responses=True)
        self._client = client
        base = f"{REDIS_KEY_PREFIX}:{name}"
        self._entries_key = f"{base}:entries"
        self._inserted_key = f"{base}:inserted"
        self._stats_key = f"{base}:stats"

    def get(self, key: str) -> Optional[Any]:
        inserted_at = self._client.zscore(self._inserted_key, key)
        if inserted_at is None:
            self._client.hincrby(self._stats_key, "misses", 1)
            return None
        if self._clock() - float(inserted_at) > self.ttl_seconds:
            self._delete(key)
            self._client.hincrby(self._stats_key, "misses", 1)
            log.debug("redis_cache.get: expired cache=%s key=%s", self.name, key)
            return None
        raw = self._client.hget(self._entries_key, key)
        if raw is None:
            self._client.zrem(self._inserted_key, key)
            self._client.hincrby(self._stats_key, "misses", 1)
            return None
        self._client.hincrby(self._stats_key, "hits", 1)
        log.info("redis_cache.get: hit cache=%s key=%s", self.name, key)
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        exists = self._client.zscore(self._inserted_key, key) is not None
        if not exists and int(self._client.zcard(self._inserted_key)) >= self.max_size:
            oldest = self._client.zrange(self._inserted_key, 0, 0)
            if oldest:
                self._delete(oldest[0])
                log.info("redis_cache.set: evicted cache=%s key=%s", self.name, oldest[0])
        raw = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        pipe = self._client.pipeline()
        pipe.hset(self._entries_key, key, raw)
        pipe.zadd(self._inserted_key, {key: self._clock()})
        pipe.execute()

    def _delete(self, key: str) -> None:
        pipe = self._client.pipeline()
        pipe.hdel(self._entries_key, key)
        pipe.zrem(self._inserted_key, key)
        pipe.execute()

    def clear(self) -> None:
        self._client.delete(self._entries_key, self._inserted_key)
        log.info("redis_cache.clear: cache=%s", self.name)

    def stats(self) -> CacheStats:
        counters = self._client.hgetall(self._stats_key) or {}
        hits = int(counters.get("hits", 0) or 0)
        misses = int(counters.get("misses", 0) or 0)
        size = int(self._client.zcard(self._inserted_key))
        now = self._clock()
        oldest = self._client.zrange(self._inserted_key, 0, 0, withscores=True)
        newest = self._client.zrange(self._inserted_key, -1, -1, withscores=True)
        lookups = hits + misses
        return CacheStats(
            name=self.name,
            size=size,
            max_size=self.max_size,
            hits=hits,
            misses=misses,
            hit_rate=(hits / lookups) if lookups else 0.0,
            oldest_age=(now - float(oldest[0][1])) if oldest else None,
            newest_age=(now - float(newest[0][1])) if newest else None,
        )
