"""Tests for MemoryCacheAdapter (injected clock, no real sleeping)."""

from __future__ import annotations

import asyncio

import pytest

from brasilrd.infrastructure.cache.memory_adapter import CacheEntry, MemoryCacheAdapter


class _Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _make_cache(clock: _Clock | None = None, **kwargs: object) -> MemoryCacheAdapter:
    return MemoryCacheAdapter(clock=clock or _Clock(), **kwargs)


class TestCacheEntry:
    def test_expiry_is_strictly_after_ttl(self) -> None:
        entry = CacheEntry(value=1, inserted_at=100.0, ttl=10)
        assert not entry.is_expired(110.0)
        assert entry.is_expired(110.5)


class TestMemoryCacheAdapter:
    @pytest.mark.asyncio()
    async def test_set_get(self) -> None:
        cache = _make_cache()
        await cache.set("k", {"a": 1})
        assert await cache.get("k") == {"a": 1}
        assert await cache.exists("k")

    @pytest.mark.asyncio()
    async def test_missing_key(self) -> None:
        cache = _make_cache()
        assert await cache.get("nope") is None
        assert not await cache.exists("nope")

    @pytest.mark.asyncio()
    async def test_lazy_expiry_on_read(self) -> None:
        clock = _Clock()
        cache = _make_cache(clock)
        await cache.set("k", "v", ttl=60)

        clock.now += 60
        assert await cache.get("k") == "v"

        clock.now += 1
        assert await cache.get("k") is None
        assert await cache.size() == 0

    @pytest.mark.asyncio()
    async def test_default_ttl(self) -> None:
        clock = _Clock()
        cache = _make_cache(clock, ttl_seconds=5)
        await cache.set("k", "v")
        clock.now += 6
        assert await cache.get("k") is None

    @pytest.mark.asyncio()
    async def test_sweep_removes_only_expired(self) -> None:
        clock = _Clock()
        cache = _make_cache(clock)
        await cache.set("short", 1, ttl=10)
        await cache.set("long", 2, ttl=1000)

        clock.now += 11
        assert await cache.size() == 2
        assert await cache.sweep() == 1
        assert await cache.size() == 1
        assert await cache.get("long") == 2

    @pytest.mark.asyncio()
    async def test_delete(self) -> None:
        cache = _make_cache()
        await cache.set("k", 1)
        assert await cache.delete("k") is True
        assert await cache.delete("k") is False

    @pytest.mark.asyncio()
    async def test_delete_prefix(self) -> None:
        cache = _make_cache()
        await cache.set("streams:series:tt1:1:1", 1)
        await cache.set("streams:series:tt1:1:2", 2)
        await cache.set("streams:series:tt2:1:1", 3)

        assert await cache.delete_prefix("streams:series:tt1:") == 2
        assert await cache.get("streams:series:tt2:1:1") == 3

    @pytest.mark.asyncio()
    async def test_clear(self) -> None:
        cache = _make_cache()
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.clear()
        assert await cache.size() == 0

    @pytest.mark.asyncio()
    async def test_context_manager_runs_sweep_task(self) -> None:
        clock = _Clock()
        cache = _make_cache(clock, sweep_interval=0.01)
        async with cache:
            await cache.set("k", 1, ttl=1)
            clock.now += 5
            for _ in range(50):
                if await cache.size() == 0:
                    break
                await asyncio.sleep(0.01)
            assert await cache.size() == 0
        assert cache._sweep_task is None

    @pytest.mark.asyncio()
    async def test_aclose_without_enter(self) -> None:
        cache = _make_cache()
        await cache.aclose()
        assert cache._sweep_task is None

    @pytest.mark.asyncio()
    async def test_concurrent_writers(self) -> None:
        cache = _make_cache()
        await asyncio.gather(*(cache.set(f"k{i}", i) for i in range(100)))
        assert await cache.size() == 100
