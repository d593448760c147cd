import pytest

from sitegen.cache import ANALYSIS_CACHE_SIZE, CacheRegistry, FingerprintCache, cache_report, fingerprint


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_fingerprint_of_empty_text_is_stable():
    # "::" hashed with h*31+c, rendered base36
    assert fingerprint("") == "1fk"
    assert fingerprint("   ", None) == "1fk"


def test_fingerprint_ignores_option_order_and_text_case():
    a = fingerprint("  Italian Restaurant ", {"tone": "casual", "industry": "Food"})
    b = fingerprint("italian restaurant", {"industry": "Food", "tone": "casual"})
    assert a == b


def test_fingerprint_changes_with_option_values():
    base = fingerprint("bakery", {"tone": "casual"})
    assert fingerprint("bakery", {"tone": "modern"}) != base
    assert fingerprint("bakery", {"tone": "casual", "colors": "#FF0000"}) != base


def test_fingerprint_skips_none_options():
    assert fingerprint("bakery", {"tone": None}) == fingerprint("bakery", {})


def test_size_never_exceeds_max():
    clock = Clock()
    cache = FingerprintCache(3, 3600, name="t", clock=clock)
    for i in range(10):
        clock.now += 1
        cache.set(f"k{i}", i)
        assert len(cache) <= 3
    assert len(cache) == 3
    assert "k9" in cache and "k0" not in cache


def test_entry_expires_on_read_after_ttl():
    clock = Clock()
    cache = FingerprintCache(10, 60, name="t", clock=clock)
    cache.set("a", {"v": 1})
    clock.now += 60
    assert cache.get("a") == {"v": 1}
    clock.now += 1
    assert cache.get("a") is None
    assert "a" not in cache
    stats = cache.stats()
    assert stats.hits == 1 and stats.misses == 1


def test_eviction_is_by_insertion_time_even_for_hot_entries():
    clock = Clock()
    cache = FingerprintCache(2, 3600, name="t", clock=clock)
    cache.set("old", 1)
    clock.now += 1
    cache.set("newer", 2)
    for _ in range(5):
        assert cache.get("old") == 1
    clock.now += 1
    cache.set("newest", 3)
    assert "old" not in cache
    assert cache.get("newer") == 2
    assert cache.get("newest") == 3


def test_overwriting_existing_key_does_not_evict():
    clock = Clock()
    cache = FingerprintCache(2, 3600, name="t", clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert len(cache) == 2
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_clear_keeps_counters():
    cache = FingerprintCache(5, 3600, name="t")
    cache.set("a", 1)
    cache.get("a")
    cache.get("zzz")
    cache.clear()
    stats = cache.stats()
    assert stats.size == 0
    assert (stats.hits, stats.misses) == (1, 1)
    assert stats.oldest_age is None


def test_rejects_non_positive_size():
    with pytest.raises(ValueError):
        FingerprintCache(0, 60)


def test_cache_report_formats_usage_and_savings():
    clock = Clock()
    site = FingerprintCache(100, 3600, name="site", clock=clock)
    registry = CacheRegistry(
        analysis=FingerprintCache(200, 7200, name="analysis", clock=clock),
        content=FingerprintCache(100, 3600, name="content", clock=clock),
        site=site,
    )
    site.set("k", {"x": 1})
    clock.now += 180
    for _ in range(3):
        site.get("k")
    site.get("missing")

    report = cache_report(registry)
    site_stats = report["caches"]["site"]
    assert site_stats["size"] == "1/100"
    assert site_stats["hitRate"] == "75.0%"
    assert site_stats["oldestEntryAge"] == "3m ago"
    assert report["caches"]["analysis"]["newestEntryAge"] == "N/A"
    assert report["savings"]["site"] == {"apiCallsAvoided": 3, "estimatedSavings": "$0.030"}
    assert report["savings"]["total"]["apiCallsAvoided"] == 3
    assert any("Excellent site cache hit rate (75.0%)" in r for r in report["recommendations"])


def test_cache_report_flags_low_hit_rate_and_full_cache():
    clock = Clock()
    content = FingerprintCache(4, 3600, name="content", clock=clock)
    registry = CacheRegistry(
        analysis=FingerprintCache(10, 60, name="analysis", clock=clock),
        content=content,
        site=FingerprintCache(10, 60, name="site", clock=clock),
    )
    for i in range(4):
        content.set(f"k{i}", i)
    for i in range(25):
        content.get(f"miss{i}")

    recs = cache_report(registry)["recommendations"]
    assert any(r.startswith("content cache hit rate is low") for r in recs)
    assert any(r.startswith("content cache is >80% full") for r in recs)


def test_cache_report_with_no_traffic_says_all_good():
    registry = CacheRegistry(
        analysis=FingerprintCache(10, 60, name="analysis"),
        content=FingerprintCache(10, 60, name="content"),
        site=FingerprintCache(10, 60, name="site"),
    )
    recs = cache_report(registry)["recommendations"]
    assert recs == ["Cache performance looks good. Continue monitoring as traffic grows."]


def test_registry_from_env_uses_given_site_cache():
    site = FingerprintCache(5, 60, name="site")
    registry = CacheRegistry.from_env(site_cache=site)
    assert registry.site is site
    assert registry.analysis.max_size == ANALYSIS_CACHE_SIZE
    assert set(registry.named()) == {"site", "analysis", "content"}
