import pytest

from wallsearch.search.cache import ResultCache


def test_hit_within_ttl(clock):
    cache = ResultCache(max_size=10, ttl_seconds=60.0, clock=clock)
    cache.put("q=nature", "page-1")
    clock.advance(59.9)
    assert cache.get("q=nature") == "page-1"


def test_entry_at_or_past_ttl_is_a_miss_and_is_dropped(clock):
    cache = ResultCache(max_size=10, ttl_seconds=60.0, clock=clock)
    cache.put("q=nature", "page-1")
    clock.advance(60.0)
    assert cache.get("q=nature") is None
    assert "q=nature" not in cache
    assert len(cache) == 0


def test_eleventh_key_evicts_exactly_the_oldest(clock):
    cache = ResultCache(max_size=10, ttl_seconds=60.0, clock=clock)
    for i in range(10):
        cache.put(f"k{i}", i)
        clock.advance(1.0)

    cache.put("k10", 10)

    assert len(cache) == 10
    assert "k0" not in cache
    assert cache.keys() == [f"k{i}" for i in range(1, 11)]
    assert cache.stats()["evictions"] == 1


def test_reads_do_not_refresh_eviction_order(clock):
    cache = ResultCache(max_size=2, ttl_seconds=60.0, clock=clock)
    cache.put("a", 1)
    clock.advance(1)
    cache.put("b", 2)
    clock.advance(1)
    assert cache.get("a") == 1  # no LRU-on-read

    cache.put("c", 3)
    assert "a" not in cache
    assert cache.keys() == ["b", "c"]


def test_overwrite_refreshes_timestamp_without_eviction(clock):
    cache = ResultCache(max_size=2, ttl_seconds=10.0, clock=clock)
    cache.put("a", 1)
    cache.put("b", 2)
    clock.advance(8)
    cache.put("a", 11)
    assert len(cache) == 2
    clock.advance(5)
    assert cache.get("a") == 11
    assert cache.get("b") is None


def test_cleanup_expired_and_stats(clock):
    cache = ResultCache(max_size=5, ttl_seconds=10.0, clock=clock)
    cache.put("old", 1)
    clock.advance(11)
    cache.put("new", 2)

    assert cache.cleanup_expired() == 1
    assert cache.keys() == ["new"]

    cache.get("new")
    cache.get("missing")
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.5

    cache.clear()
    assert len(cache) == 0
    assert cache.stats()["hits"] == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ResultCache(max_size=0)
