"""Tests for RedisAdapter with a mocked redis.asyncio client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import RedisError

from brasilrd.infrastructure.cache.cache_factory import create_cache
from brasilrd.infrastructure.cache.redis_adapter import RedisAdapter


def _make_client(keys: list[str] | None = None) -> AsyncMock:
    client = AsyncMock()

    async def _scan_iter(match: str, count: int):  # noqa: ARG001
        prefix = match.rstrip("*")
        for key in keys or []:
            if key.startswith(prefix):
                yield key

    client.scan_iter = MagicMock(side_effect=_scan_iter)
    return client


def _make_adapter(client: AsyncMock) -> RedisAdapter:
    adapter = RedisAdapter(ttl_seconds=60)
    adapter._client = client
    return adapter


class TestRedisAdapter:
    @pytest.mark.asyncio()
    async def test_set_stores_namespaced_json(self) -> None:
        client = _make_client()
        adapter = _make_adapter(client)

        await adapter.set("streams:movie:tt1", {"a": 1})

        client.setex.assert_awaited_once_with(
            "brasilrd:streams:movie:tt1", 60, json.dumps({"a": 1})
        )

    @pytest.mark.asyncio()
    async def test_get_decodes_json(self) -> None:
        client = _make_client()
        client.get.return_value = '{"a": 1}'
        adapter = _make_adapter(client)

        assert await adapter.get("k") == {"a": 1}
        client.get.assert_awaited_once_with("brasilrd:k")

    @pytest.mark.asyncio()
    async def test_get_error_is_a_miss(self) -> None:
        client = _make_client()
        client.get.side_effect = RedisError("down")
        assert await _make_adapter(client).get("k") is None

    @pytest.mark.asyncio()
    async def test_undecodable_value_is_a_miss(self) -> None:
        client = _make_client()
        client.get.return_value = "{broken"
        assert await _make_adapter(client).get("k") is None

    @pytest.mark.asyncio()
    async def test_delete_prefix_scans_namespace(self) -> None:
        client = _make_client(
            ["brasilrd:season:tt1:1", "brasilrd:season:tt1:2", "brasilrd:season:tt2:1"]
        )
        client.delete.return_value = 2
        adapter = _make_adapter(client)

        assert await adapter.delete_prefix("season:tt1:") == 2
        client.delete.assert_awaited_once_with(
            "brasilrd:season:tt1:1", "brasilrd:season:tt1:2"
        )

    @pytest.mark.asyncio()
    async def test_delete_prefix_without_matches(self) -> None:
        client = _make_client([])
        assert await _make_adapter(client).delete_prefix("x:") == 0
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_size_counts_namespace_only(self) -> None:
        client = _make_client(["brasilrd:a", "brasilrd:b", "other:c"])
        assert await _make_adapter(client).size() == 2

    @pytest.mark.asyncio()
    async def test_uninitialized(self) -> None:
        adapter = RedisAdapter()
        with pytest.raises(RuntimeError, match="not initialized"):
            await adapter.get("k")
        assert await adapter.delete("k") is False
        assert await adapter.size() == 0
        assert await adapter.delete_prefix("season:") == 0
        assert await adapter._scan("brasilrd:*") == []

    @pytest.mark.asyncio()
    async def test_enter_pings_and_aclose_closes(self) -> None:
        client = _make_client()
        with patch(
            "brasilrd.infrastructure.cache.redis_adapter.Redis.from_url",
            return_value=client,
        ):
            async with RedisAdapter(url="redis://cache.example:6379/1") as adapter:
                assert adapter._client is client
        client.ping.assert_awaited_once()
        client.aclose.assert_awaited_once()

    def test_factory_builds_redis(self) -> None:
        cache = create_cache("redis", redis_url="redis://cache.example:6379/2")
        assert isinstance(cache, RedisAdapter)
        assert cache.url == "redis://cache.example:6379/2"
