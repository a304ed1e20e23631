"""Tests for the time-boxed Resource Cache."""

import asyncio

import pytest

from obpdash.sync.cache import ResourceCache, cache_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestCacheKey:
    def test_key_composition(self) -> None:
        assert cache_key("banks") == "banks"
        assert cache_key("transactions", "rbs", "a1", "owner") == (
            "transactions-rbs-a1-owner"
        )


@pytest.mark.unit
class TestGetOrFetch:
    """Payloads are reused within the TTL and refetched after it."""

    def test_reuse_within_ttl_and_refetch_after(self) -> None:
        clock = FakeClock()
        cache = ResourceCache(ttl_seconds=300, clock=clock)
        calls: list[int] = []

        async def producer() -> list[int]:
            calls.append(1)
            return [len(calls)]

        async def scenario() -> list[list[int]]:
            first = await cache.get_or_fetch("banks", producer)
            clock.now += 299
            second = await cache.get_or_fetch("banks", producer)
            clock.now += 2
            third = await cache.get_or_fetch("banks", producer)
            return [first, second, third]

        assert asyncio.run(scenario()) == [[1], [1], [2]]
        assert len(calls) == 2

    def test_keys_are_independent(self) -> None:
        cache = ResourceCache()

        async def scenario() -> tuple[str, str]:
            a = await cache.get_or_fetch(cache_key("accounts", "a"), _value("A"))
            b = await cache.get_or_fetch(cache_key("accounts", "b"), _value("B"))
            return a, b

        assert asyncio.run(scenario()) == ("A", "B")
        assert len(cache) == 2
        assert "accounts-a" in cache

    def test_failures_are_not_cached(self) -> None:
        cache = ResourceCache()
        attempts: list[int] = []

        async def flaky() -> str:
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("upstream down")
            return "ok"

        async def scenario() -> str:
            with pytest.raises(RuntimeError):
                await cache.get_or_fetch("banks", flaky)
            assert "banks" not in cache
            return await cache.get_or_fetch("banks", flaky)

        assert asyncio.run(scenario()) == "ok"
        assert len(attempts) == 2

    def test_concurrent_callers_share_one_producer(self) -> None:
        cache = ResourceCache()
        calls: list[int] = []

        async def slow() -> str:
            calls.append(1)
            await asyncio.sleep(0.01)
            return "payload"

        async def scenario() -> list[str]:
            return await asyncio.gather(
                *(cache.get_or_fetch("banks", slow) for _ in range(5))
            )

        assert asyncio.run(scenario()) == ["payload"] * 5
        assert len(calls) == 1


@pytest.mark.unit
class TestInvalidateAll:
    """Invalidation drops entries and fences in-flight producers."""

    def test_invalidate_empties_cache(self) -> None:
        cache = ResourceCache()

        asyncio.run(cache.get_or_fetch("banks", _value("x")))
        assert len(cache) == 1

        cache.invalidate_all()
        assert len(cache) == 0
        assert "banks" not in cache

    def test_inflight_producer_does_not_repopulate(self) -> None:
        cache = ResourceCache()

        async def scenario() -> str:
            release = asyncio.Event()

            async def producer() -> str:
                await release.wait()
                return "stale"

            task = asyncio.create_task(cache.get_or_fetch("banks", producer))
            await asyncio.sleep(0)
            cache.invalidate_all()
            release.set()
            return await task

        # The waiting caller still gets its payload
        assert asyncio.run(scenario()) == "stale"
        assert len(cache) == 0


def _value(payload: str):
    async def producer() -> str:
        return payload

    return producer
