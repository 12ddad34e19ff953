"""Redis adapter - async Redis via redis.asyncio."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

log = structlog.get_logger(__name__)


class RedisAdapter:
    """Async Redis cache, values stored as JSON under a key namespace.

    A semaphore bounds parallel Redis ops. Prefix deletion, ``size`` and
    ``clear`` walk the namespace with ``SCAN`` and never touch foreign keys.

    Args:
        url: Redis URL (e.g. ``redis://localhost:6379/0``).
        ttl_seconds: Default TTL.
        max_concurrent: Max parallel Redis ops.
        namespace: Prefix prepended to every key.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 3600,
        max_concurrent: int = 50,
        namespace: str = "brasilrd:",
    ) -> None:
        self.url = url
        self.default_ttl = ttl_seconds
        self.namespace = namespace
        self._client: Redis | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    # --- Context Manager ---
    async def __aenter__(self) -> RedisAdapter:
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
            try:
                await self._client.ping()
                log.info("redis_connected", url=self.url)
            except RedisError as e:
                log.error("redis_connection_failed", url=self.url, error=str(e))
                raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.info("redis_closed")

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def _scan(self, pattern: str) -> list[str]:
        if self._client is None:
            return []
        return [k async for k in self._client.scan_iter(match=pattern, count=500)]

    # --- CachePort implementation ---
    async def get(self, key: str) -> Any | None:
        if self._client is None:
            raise RuntimeError("Redis not initialized. Use 'async with cache:'")

        async with self._semaphore:
            try:
                raw = await self._client.get(self._key(key))
            except RedisError as e:
                log.error("redis_get_error", key=key, error=str(e))
                return None
        if raw is None:
            log.debug("cache_miss", key=key)
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            log.error("redis_decode_error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        if self._client is None:
            raise RuntimeError("Redis not initialized.")

        expire_time = ttl if ttl is not None else self.default_ttl
        try:
            packed = json.dumps(value)
        except (TypeError, ValueError) as e:
            log.error("redis_serialize_error", key=key, error=str(e))
            return

        async with self._semaphore:
            try:
                await self._client.setex(self._key(key), expire_time, packed)
                log.debug("cache_set", key=key, ttl=expire_time, size_bytes=len(packed))
            except RedisError as e:
                log.error("redis_set_error", key=key, error=str(e))

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False

        async with self._semaphore:
            try:
                deleted = await self._client.delete(self._key(key))
            except RedisError as e:
                log.error("redis_delete_error", key=key, error=str(e))
                return False
        log.debug("cache_delete", key=key, deleted=deleted > 0)
        return deleted > 0

    async def delete_prefix(self, prefix: str) -> int:
        if self._client is None:
            return 0

        async with self._semaphore:
            try:
                keys = await self._scan(f"{self._key(prefix)}*")
                deleted = await self._client.delete(*keys) if keys else 0
            except RedisError as e:
                log.error("redis_delete_prefix_error", prefix=prefix, error=str(e))
                return 0
        log.debug("cache_delete_prefix", prefix=prefix, deleted=deleted)
        return int(deleted)

    async def exists(self, key: str) -> bool:
        if self._client is None:
            return False

        async with self._semaphore:
            try:
                return await self._client.exists(self._key(key)) > 0
            except RedisError as e:
                log.error("redis_exists_error", key=key, error=str(e))
                return False

    async def size(self) -> int:
        if self._client is None:
            return 0

        async with self._semaphore:
            try:
                return len(await self._scan(f"{self.namespace}*"))
            except RedisError as e:
                log.error("redis_size_error", error=str(e))
                return 0

    async def clear(self) -> None:
        if self._client is None:
            return

        deleted = await self.delete_prefix("")
        log.warning("cache_cleared", backend="redis", deleted=deleted)
