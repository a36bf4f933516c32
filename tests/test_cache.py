import asyncio

import pytest
from starlette.requests import Request

from api.shared.cache import RequestCoalescer, request_cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def counting_factory(counter: list):
    async def factory():
        counter.append(1)
        await asyncio.sleep(0)
        return len(counter)

    return factory


def test_cache_key_sorts_query_parameters():
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/api/v1/conversations",
            "query_string": b"userId=u1&page=2",
            "headers": [],
        }
    )
    assert request_cache_key(request) == "GET:/api/v1/conversations?page=2&userId=u1"


async def test_concurrent_identical_requests_share_one_computation():
    cache = RequestCoalescer(window_ms=500, clock=FakeClock())
    calls = []
    results = await asyncio.gather(
        cache.run("k", counting_factory(calls)),
        cache.run("k", counting_factory(calls)),
        cache.run("k", counting_factory(calls)),
    )
    assert results == [1, 1, 1]
    assert len(calls) == 1


async def test_result_is_recomputed_after_window():
    clock = FakeClock()
    cache = RequestCoalescer(window_ms=500, clock=clock)
    calls = []
    assert await cache.run("k", counting_factory(calls)) == 1
    clock.now += 0.2
    assert await cache.run("k", counting_factory(calls)) == 1
    clock.now += 0.5
    assert await cache.run("k", counting_factory(calls)) == 2


async def test_failed_computation_is_not_shared():
    cache = RequestCoalescer(window_ms=500, clock=FakeClock())

    async def boom():
        raise ValueError("nope")

    with pytest.raises(ValueError):
        await cache.run("k", boom)
    assert len(cache) == 0

    calls = []
    assert await cache.run("k", counting_factory(calls)) == 1


async def test_clear_forces_recompute():
    cache = RequestCoalescer(window_ms=500, clock=FakeClock())
    calls = []
    await cache.run("k", counting_factory(calls))
    cache.clear()
    assert len(cache) == 0
    assert await cache.run("k", counting_factory(calls)) == 2


async def test_expired_entries_are_evicted():
    clock = FakeClock()
    cache = RequestCoalescer(window_ms=100, ttl_seconds=5, clock=clock)
    await cache.run("a", counting_factory([]))
    await cache.run("b", counting_factory([]))
    clock.now += 10
    assert cache.evict_expired() == 2
    assert len(cache) == 0


async def test_entry_count_is_bounded():
    cache = RequestCoalescer(window_ms=500, max_entries=2, clock=FakeClock())
    for key in ("a", "b", "c"):
        await cache.run(key, counting_factory([]))
    assert len(cache) == 2

    calls = []
    await cache.run("a", counting_factory(calls))
    assert calls == [1]


async def test_invalidate_drops_a_single_key():
    cache = RequestCoalescer(window_ms=500, clock=FakeClock())
    a_calls, b_calls = [], []
    await cache.run("a", counting_factory(a_calls))
    await cache.run("b", counting_factory(b_calls))

    cache.invalidate("a")
    await cache.run("a", counting_factory(a_calls))
    await cache.run("b", counting_factory(b_calls))

    assert (len(a_calls), len(b_calls)) == (2, 1)
