import asyncio

import pytest

from edutube.services.cache import GenerationCache
from edutube.services.errors import GenerationTimeoutError


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _counting(result_factory=object):
    calls = {"n": 0}

    async def generate():
        calls["n"] += 1
        await asyncio.sleep(0.01)
        return result_factory()

    return generate, calls


def test_concurrent_requests_share_one_generation():
    cache = GenerationCache()
    generate, calls = _counting()

    async def main():
        return await asyncio.gather(
            cache.get_or_generate("v1", generate),
            cache.get_or_generate("v1", generate),
        )

    a, b = asyncio.run(main())
    assert calls["n"] == 1
    assert a is b
    assert not cache.in_flight("v1")


def test_fresh_entry_is_served_until_ttl():
    clock = FakeClock()
    cache = GenerationCache(ttl=300, cooldown=30, clock=clock)
    generate, calls = _counting()

    async def main():
        first = await cache.get_or_generate("v1", generate)
        clock.now += 299
        second = await cache.get_or_generate("v1", generate)
        clock.now += 2
        third = await cache.get_or_generate("v1", generate)
        return first, second, third

    first, second, third = asyncio.run(main())
    assert first is second
    assert third is not first
    assert calls["n"] == 2


def test_failure_is_not_cached():
    cache = GenerationCache()
    attempts = {"n": 0}

    async def flaky():
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise RuntimeError("boom")
        return "ok"

    async def main():
        with pytest.raises(RuntimeError):
            await cache.get_or_generate("v1", flaky)
        assert len(cache) == 0
        return await cache.get_or_generate("v1", flaky)

    assert asyncio.run(main()) == "ok"
    assert attempts["n"] == 2


def test_force_refresh_within_cooldown_serves_cache():
    clock = FakeClock()
    cache = GenerationCache(ttl=300, cooldown=30, clock=clock)
    generate, calls = _counting()

    async def main():
        first = await cache.get_or_generate("v1", generate)
        clock.now += 10
        within = await cache.get_or_generate("v1", generate, force_refresh=True)
        clock.now += 60
        after = await cache.get_or_generate("v1", generate, force_refresh=True)
        return first, within, after

    first, within, after = asyncio.run(main())
    assert within is first
    assert after is not first
    assert calls["n"] == 2


def test_timeout_leaves_generation_running_and_cached():
    cache = GenerationCache()

    async def slow():
        await asyncio.sleep(0.2)
        return "done"

    async def main():
        with pytest.raises(GenerationTimeoutError):
            await cache.get_or_generate("v1", slow, timeout=0.01)
        assert cache.in_flight("v1")
        await asyncio.sleep(0.3)
        return cache.get("v1")

    assert asyncio.run(main()) == "done"
