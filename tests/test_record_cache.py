try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from portfolio_pulse.services import NullRecordCache, TTLRecordCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingFetcher:
    def __init__(self, *values) -> None:
        self.values = list(values)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        value = self.values.pop(0)
        if isinstance(value, Exception):
            raise value
        return value


@pytest.mark.asyncio
async def test_ttl_cache_serves_fresh_entries_then_refetches():
    clock = FakeClock()
    cache = TTLRecordCache(ttl_seconds=60, clock=clock)
    fetcher = CountingFetcher(["a"], ["b"])

    assert await cache.get_or_fetch("sessions:c1", fetcher) == ["a"]
    clock.now += 30
    assert await cache.get_or_fetch("sessions:c1", fetcher) == ["a"]
    assert fetcher.calls == 1

    clock.now += 31
    assert await cache.get_or_fetch("sessions:c1", fetcher) == ["b"]
    assert fetcher.calls == 2


@pytest.mark.asyncio
async def test_ttl_cache_serves_stale_value_when_refresh_fails():
    clock = FakeClock()
    cache = TTLRecordCache(ttl_seconds=10, clock=clock)
    fetcher = CountingFetcher(["a"], RuntimeError("boom"))

    await cache.get_or_fetch("sessions:c1", fetcher)
    clock.now += 11

    assert await cache.get_or_fetch("sessions:c1", fetcher) == ["a"]


@pytest.mark.asyncio
async def test_ttl_cache_propagates_error_without_entry():
    cache = TTLRecordCache(ttl_seconds=10, clock=FakeClock())

    with pytest.raises(RuntimeError):
        await cache.get_or_fetch("sessions:c1", CountingFetcher(RuntimeError("boom")))


@pytest.mark.asyncio
async def test_invalidate_drops_only_matching_company():
    cache = TTLRecordCache(ttl_seconds=10, clock=FakeClock())
    await cache.get_or_fetch("sessions:c1", CountingFetcher(1))
    await cache.get_or_fetch("company:c1", CountingFetcher(2))
    await cache.get_or_fetch("sessions:c11", CountingFetcher(3))

    assert cache.invalidate("c1") == 2
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_null_cache_always_fetches():
    cache = NullRecordCache()
    fetcher = CountingFetcher("a", "b")

    assert await cache.get_or_fetch("k:c1", fetcher) == "a"
    assert await cache.get_or_fetch("k:c1", fetcher) == "b"
    assert cache.invalidate("c1") == 0
