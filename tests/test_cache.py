from __future__ import annotations

import time

from graph_adapters.core import CacheKey, ErrorType, QueryContext, QueryError, QueryMethod, ResultCache

ADAPTER = "ecs-cluster-adapter"
SCOPE = "052392120703.eu-west-1"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _lookup(cache: ResultCache, query: str = "prod", **kwargs):
    return cache.lookup(ADAPTER, QueryMethod.GET, SCOPE, "ecs-cluster", query, **kwargs)


def test_miss_then_hit(make_item):
    cache = ResultCache()
    first = _lookup(cache)
    assert first.hit is False

    cache.store_items([make_item("prod")], 60, first.key)
    second = _lookup(cache)

    assert second.hit is True
    assert second.error is None
    assert [item.unique_attribute_value for item in second.items] == ["prod"]
    assert second.key == first.key


def test_empty_result_is_cached():
    cache = ResultCache()
    lookup = cache.lookup(ADAPTER, QueryMethod.LIST, SCOPE, "ecs-cluster")

    cache.store_items([], 60, lookup.key)

    again = cache.lookup(ADAPTER, QueryMethod.LIST, SCOPE, "ecs-cluster")
    assert again.hit is True
    assert again.items == []


def test_ignore_cache_forces_miss_but_keeps_key(make_item):
    cache = ResultCache()
    key = _lookup(cache).key
    cache.store_items([make_item("prod")], 60, key)

    bypass = _lookup(cache, ignore_cache=True)

    assert bypass.hit is False
    assert bypass.key == key
    assert _lookup(cache).hit is True


def test_only_permanent_errors_are_cached():
    cache = ResultCache()
    key = _lookup(cache).key

    assert cache.store_error(QueryError(ErrorType.OTHER, "throttled"), 60, key) is False
    assert cache.store_error(QueryError(ErrorType.TIMEOUT, "cancelled"), 60, key) is False
    assert _lookup(cache).hit is False

    assert cache.store_error(QueryError(ErrorType.NOTFOUND, "gone"), 60, key) is True
    cached = _lookup(cache)
    assert cached.hit is True
    assert cached.error.error_type is ErrorType.NOTFOUND
    assert cached.items is None


def test_store_overwrites_previous_error(make_item):
    cache = ResultCache()
    key = _lookup(cache).key
    cache.store_error(QueryError(ErrorType.NOTFOUND, "gone"), 60, key)

    cache.store_items([make_item("prod")], 60, key)

    assert _lookup(cache).error is None


def test_entries_expire(make_item):
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    key = _lookup(cache).key
    cache.store_items([make_item("prod")], 10, key)

    clock.advance(9)
    assert _lookup(cache).hit is True
    clock.advance(2)
    assert _lookup(cache).hit is False
    assert len(cache) == 0
    assert cache.stats()["evictions"] == 1


def test_purge_and_clear(make_item):
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.store_items([make_item("a")], 5, _lookup(cache, "a").key)
    cache.store_items([make_item("b")], 50, _lookup(cache, "b").key)

    clock.advance(10)

    assert cache.purge() == 1
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
    assert cache.stats() == {"entries": 0, "hits": 0, "misses": 0, "evictions": 0}


def test_background_purger_removes_expired_entries(make_item):
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.store_items([make_item("a")], 1, _lookup(cache, "a").key)
    clock.advance(5)
    context = QueryContext()

    thread = cache.start_purger(context, interval=0.01)
    try:
        deadline = time.monotonic() + 2.0
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        context.cancel()
    thread.join(timeout=1.0)

    assert len(cache) == 0
    assert not thread.is_alive()


def test_cache_key_rendering():
    key = CacheKey.from_parts(ADAPTER, "SEARCH", SCOPE, "ecs-cluster", None)

    assert key.method is QueryMethod.SEARCH
    assert str(key) == f"{ADAPTER}|SEARCH|{SCOPE}|ecs-cluster|"
