from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except Exception:
        return default


ANALYSIS_CACHE_SIZE = _env_int("ANALYSIS_CACHE_SIZE", 200)
ANALYSIS_CACHE_TTL_MINUTES = _env_int("ANALYSIS_CACHE_TTL_MINUTES", 120)
CONTENT_CACHE_SIZE = _env_int("CONTENT_CACHE_SIZE", 100)
CONTENT_CACHE_TTL_MINUTES = _env_int("CONTENT_CACHE_TTL_MINUTES", 60)
SITE_CACHE_SIZE = _env_int("SITE_CACHE_SIZE", 100)
SITE_CACHE_TTL_MINUTES = _env_int("SITE_CACHE_TTL_MINUTES", 60)

# Estimated USD cost of the model call a hit avoids, per cache
CALL_COST_ESTIMATES: Dict[str, float] = {
    "site": 0.01,
    "analysis": 0.003,
    "content": 0.006,
}


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits: List[str] = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _rolling_hash(text: str) -> str:
    """32-bit ``h*31 + c`` rolling hash, absolute value in base36."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(abs(h))


def _render_option(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_render_option(v) for v in value)
    return str(value)


def fingerprint(text: str, options: Optional[Mapping[str, Any]] = None) -> str:
    """Deterministic short key for ``text`` plus ``options``.

    The text is lowercased and trimmed; options are rendered as sorted
    ``key:value`` pairs joined by ``|``. Options whose value is ``None``
    are skipped so that an omitted option and an explicit null produce
    the same key.
    """
    normalized = (text or "").lower().strip()
    opts = options or {}
    rendered = "|".join(
        f"{key}:{_render_option(opts[key])}" for key in sorted(opts) if opts[key] is not None
    )
    return _rolling_hash(f"{normalized}::{rendered}")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float
    hits: int = 0


@dataclass
class CacheStats:
    name: str
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float
    oldest_age: Optional[float] = None
    newest_age: Optional[float] = None

    @property
    def lookups(self) -> int:
        return self.hits + self.misses


class FingerprintCache(Generic[T]):
    """Bounded in-memory cache with read-time TTL expiry.

    Eviction removes the entry with the smallest insertion time. Reads do
    not refresh insertion time, so the policy is first-in-first-out even
    for entries that are hit often.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl_seconds: float = 3600,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.name = name
        self.max_size = int(max_size)
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            age = self._clock() - entry.inserted_at
            if age > self.ttl_seconds:
                del self._entries[key]
                self._misses += 1
                log.debug("cache.get: expired cache=%s key=%s age=%.0fs", self.name, key, age)
                return None
            entry.hits += 1
            self._hits += 1
            log.info("cache.get: hit cache=%s key=%s hits=%d age=%.0fs", self.name, key, entry.hits, age)
            return entry.value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_size:
                oldest = self._oldest_key()
                if oldest is not None:
                    del self._entries[oldest]
                    log.info("cache.set: evicted cache=%s key=%s (at max size %d)", self.name, oldest, self.max_size)
            self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())
            log.debug("cache.set: stored cache=%s key=%s size=%d", self.name, key, len(self._entries))

    def _oldest_key(self) -> Optional[str]:
        oldest_key: Optional[str] = None
        oldest_time = float("inf")
        for key, entry in self._entries.items():
            if entry.inserted_at < oldest_time:
                oldest_time = entry.inserted_at
                oldest_key = key
        return oldest_key

    def clear(self) -> None:
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        log.info("cache.clear: cache=%s dropped=%d", self.name, size)

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            stamps = [e.inserted_at for e in self._entries.values()]
            lookups = self._hits + self._misses
            return CacheStats(
                name=self.name,
                size=len(self._entries),
                max_size=self.max_size,
                hits=self._hits,
                misses=self._misses,
                hit_rate=(self._hits / lookups) if lookups else 0.0,
                oldest_age=(now - min(stamps)) if stamps else None,
                newest_age=(now - max(stamps)) if stamps else None,
            )


@dataclass
class CacheRegistry:
    """The three pipeline caches, built once at startup and injected."""

    analysis: Any
    content: Any
    site: Any

    @classmethod
    def from_env(cls, site_cache: Any = None) -> "CacheRegistry":
        return cls(
            analysis=FingerprintCache(
                ANALYSIS_CACHE_SIZE, ANALYSIS_CACHE_TTL_MINUTES * 60, name="analysis"
            ),
            content=FingerprintCache(
                CONTENT_CACHE_SIZE, CONTENT_CACHE_TTL_MINUTES * 60, name="content"
            ),
            site=site_cache
            if site_cache is not None
            else FingerprintCache(SITE_CACHE_SIZE, SITE_CACHE_TTL_MINUTES * 60, name="site"),
        )

    def named(self) -> Dict[str, Any]:
        return {"site": self.site, "analysis": self.analysis, "content": self.content}

    def clear(self) -> None:
        for cache in self.named().values():
            cache.clear()


def _format_age(age: Optional[float]) -> str:
    if age is None:
        return "N/A"
    return f"{round(age / 60)}m ago"


def _format_stats(stats: CacheStats) -> Dict[str, Any]:
    return {
        "size": f"{stats.size}/{stats.max_size}",
        "hits": stats.hits,
        "misses": stats.misses,
        "hitRate": f"{stats.hit_rate * 100:.1f}%",
        "oldestEntryAge": _format_age(stats.oldest_age),
        "newestEntryAge": _format_age(stats.newest_age),
    }


def _recommendations(all_stats: Dict[str, CacheStats], total_savings: float) -> List[str]:
    recs: List[str] = []
    for name, stats in all_stats.items():
        if stats.hit_rate < 0.05 and stats.lookups > 20:
            recs.append(f"{name} cache hit rate is low (<5%). Consider increasing cache TTL or size.")
        if stats.size > 0.8 * stats.max_size:
            recs.append(
                f"{name} cache is >80% full. Consider increasing maxSize to avoid frequent evictions."
            )
    site = all_stats.get("site")
    if site is not None and site.hit_rate > 0.2:
        recs.append(
            f"Excellent site cache hit rate ({site.hit_rate * 100:.1f}%)! Cache is saving significant costs."
        )
    if total_savings > 1:
        recs.append(f"Cache has saved ${total_savings:.2f} in API costs! Keep monitoring.")
    if not recs:
        recs.append("Cache performance looks good. Continue monitoring as traffic grows.")
    return recs


def cache_report(registry: CacheRegistry) -> Dict[str, Any]:
    """Diagnostic summary of every cache: usage, estimated savings, advice."""
    all_stats = {name: cache.stats() for name, cache in registry.named().items()}
    savings: Dict[str, Any] = {}
    total_calls = 0
    total_savings = 0.0
    for name, stats in all_stats.items():
        cost = CALL_COST_ESTIMATES.get(name, 0.0)
        saved = stats.hits * cost
        total_calls += stats.hits
        total_savings += saved
        savings[name] = {"apiCallsAvoided": stats.hits, "estimatedSavings": f"${saved:.3f}"}
    savings["total"] = {"apiCallsAvoided": total_calls, "estimatedSavings": f"${total_savings:.3f}"}
    return {
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "caches": {name: _format_stats(stats) for name, stats in all_stats.items()},
        "savings": savings,
        "recommendations": _recommendations(all_stats, total_savings),
    }
