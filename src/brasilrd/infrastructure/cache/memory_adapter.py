"""In-process cache adapter with lazy expiry and a periodic sweep."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

log = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    """Stored value plus its insertion time and lifetime (seconds)."""

    value: Any
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


class MemoryCacheAdapter:
    """Dict-backed cache guarded by an ``asyncio.Lock``.

    - Expired entries are dropped lazily on read.
    - ``__aenter__`` starts a sweep task that purges expired entries every
      ``sweep_interval`` seconds; ``aclose()`` cancels it.
    - The clock is injectable so expiry can be tested without sleeping.

    Args:
        ttl_seconds: Default TTL for ``set()`` without explicit value.
        sweep_interval: Seconds between background sweeps.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = ttl_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    # --- Context Manager ---
    async def __aenter__(self) -> MemoryCacheAdapter:
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            log.info("memory_cache_started", sweep_interval=self.sweep_interval)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
            log.info("memory_cache_closed", entries=len(self._entries))

    # --- Sweep ---
    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = await self.sweep()
            if removed:
                log.debug("memory_cache_swept", removed=removed)

    async def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        async with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                log.debug("cache_miss", key=key)
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                log.debug("cache_expired", key=key)
                return None
            log.debug("cache_hit", key=key)
            return entry.value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        expire_time = ttl if ttl is not None else self.default_ttl
        async with self._lock:
            self._entries[key] = CacheEntry(
                value=value, inserted_at=self._clock(), ttl=expire_time
            )
        log.debug("cache_set", key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            deleted = self._entries.pop(key, None) is not None
        log.debug("cache_delete", key=key, deleted=deleted)
        return deleted

    async def delete_prefix(self, prefix: str) -> int:
        async with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        log.debug("cache_delete_prefix", prefix=prefix, deleted=len(keys))
        return len(keys)

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def size(self) -> int:
        async with self._lock:
            return len(self._entries)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
        log.warning("cache_cleared", backend="memory")
