from __future__ import annotations

from datetime import timedelta

import pytest

from birdboard.lib.cache import TimedCache, cache_key


def test_cache_key_ignores_order_and_duplicates():
    assert cache_key(["b", "a", "b"]) == cache_key(["a", "b"]) == "a_b"
    assert cache_key(["b", "a"], "today") == "today_a_b"
    assert cache_key(["a"], "today") != cache_key(["a"], "historical")


def test_get_after_put_returns_data_unchanged(clock):
    cache = TimedCache(timedelta(minutes=5), clock=clock)
    payload = ("d1", "d2")

    cache.put("k", payload)
    entry = cache.get("k")

    assert entry is not None
    assert entry.data is payload
    assert entry.cached_at == clock.now
    assert entry.expires_at == clock.now + timedelta(minutes=5)
    assert entry.is_fresh(clock.now)


def test_expired_entry_is_stale_but_retained(clock):
    cache = TimedCache(timedelta(minutes=5), clock=clock)
    cache.put("k", ["x"])

    clock.advance(minutes=5)

    entry = cache.get("k")
    assert entry is not None
    assert not entry.is_fresh(clock.now)
    assert cache.get_fresh("k") is None
    assert entry.data == ["x"]


def test_put_accepts_per_entry_ttl(clock):
    cache = TimedCache(timedelta(minutes=5), clock=clock)
    entry = cache.put("k", [], ttl=timedelta(seconds=30))
    assert entry.expires_at - entry.cached_at == timedelta(seconds=30)


def test_invalidate_all_removes_every_key(clock):
    cache = TimedCache(timedelta(minutes=5), clock=clock)
    for key in ("a", "b", "c"):
        cache.put(key, [key])

    cache.invalidate_all()

    assert len(cache) == 0
    assert all(cache.get(key) is None for key in ("a", "b", "c"))


def test_status_reports_expiry_and_sizes(clock):
    cache = TimedCache(timedelta(minutes=5), clock=clock)
    cache.put("k", [1, 2, 3])
    clock.advance(minutes=1)

    (row,) = cache.status()
    assert row.key == "k"
    assert row.expires_in == pytest.approx(240.0)
    assert row.item_count == 3


def test_non_positive_ttl_is_rejected():
    with pytest.raises(ValueError):
        TimedCache(timedelta(0))


@pytest.mark.parametrize("ttl", [timedelta(0), timedelta(seconds=-30)])
def test_put_rejects_non_positive_ttl(clock, ttl):
    cache = TimedCache(timedelta(minutes=5), clock=clock)

    with pytest.raises(ValueError):
        cache.put("k", ["x"], ttl=ttl)

    assert cache.get("k") is None
