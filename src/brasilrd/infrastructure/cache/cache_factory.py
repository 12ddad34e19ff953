"""Cache factory - builds the adapter selected in the config."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import structlog

from brasilrd.domain.ports.cache import CachePort
from brasilrd.infrastructure.cache.diskcache_adapter import DiskcacheAdapter
from brasilrd.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from brasilrd.infrastructure.cache.redis_adapter import RedisAdapter
from brasilrd.infrastructure.config.schema import CacheConfig

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "diskcache", "redis"]


def create_cache(
    backend: CacheBackend = "memory",
    *,
    # Diskcache
    directory: str | Path = "./.cache/brasilrd",
    # Redis
    redis_url: str = "redis://localhost:6379/0",
    # Shared
    ttl_seconds: int = 3600,
    max_concurrent: int = 10,
    sweep_interval: float = 300.0,
) -> CachePort:
    """Create a cache adapter for *backend*.

    Args:
        backend: "memory" (default), "diskcache" (SQLite) or "redis".
        directory: Diskcache path.
        redis_url: Redis connection string.
        ttl_seconds: Default TTL for every backend.
        max_concurrent: Semaphore limit (diskcache; Redis uses 50).
        sweep_interval: Expired-entry sweep period (memory only).

    Returns:
        CachePort implementation. Callers enter it with ``async with``.

    Raises:
        ValueError: If ``backend`` is unknown.
    """
    log.info("cache_factory_create", backend=backend, ttl=ttl_seconds)
    if backend == "memory":
        return MemoryCacheAdapter(ttl_seconds=ttl_seconds, sweep_interval=sweep_interval)
    if backend == "diskcache":
        return DiskcacheAdapter(
            directory=directory,
            ttl_seconds=ttl_seconds,
            max_concurrent=max_concurrent,
        )
    if backend == "redis":
        return RedisAdapter(url=redis_url, ttl_seconds=ttl_seconds, max_concurrent=50)
    raise ValueError(
        f"Unknown cache backend: {backend!r}. Must be 'memory', 'diskcache' or 'redis'."
    )


def create_cache_from_config(config: CacheConfig) -> CachePort:
    return create_cache(
        config.backend,
        directory=config.directory,
        redis_url=config.redis_url,
        ttl_seconds=config.ttl_seconds,
        max_concurrent=config.max_concurrent,
        sweep_interval=config.sweep_interval_seconds,
    )
