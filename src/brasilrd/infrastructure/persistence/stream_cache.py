"""Stream result cache with status-dependent TTL, backed by CachePort."""

from __future__ import annotations

import json
from collections.abc import Sequence

import structlog

from brasilrd.domain.entities import (
    ContentType,
    QualityTier,
    StreamResult,
    TorrentStatus,
)
from brasilrd.domain.ports.cache import CachePort
from brasilrd.infrastructure.config.schema import StreamsConfig

log = structlog.get_logger(__name__)

_KEY_PREFIX = "streams"


def _serialize_streams(streams: Sequence[StreamResult]) -> str:
    return json.dumps(
        [
            {
                "title": s.title,
                "play_url": s.play_url,
                "quality": s.quality.value,
                "name": s.name,
                "grouping_key": s.grouping_key,
                "status": s.status.value,
                "filename": s.filename,
                "description": s.description,
                "size_bytes": s.size_bytes,
                "seeders": s.seeders,
                "provider": s.provider,
            }
            for s in streams
        ]
    )


def _deserialize_streams(data: str) -> list[StreamResult]:
    return [
        StreamResult(
            title=d["title"],
            play_url=d["play_url"],
            quality=QualityTier(d["quality"]),
            name=d["name"],
            grouping_key=d["grouping_key"],
            status=TorrentStatus(d.get("status", "downloaded")),
            filename=d.get("filename", ""),
            description=d.get("description", ""),
            size_bytes=d.get("size_bytes", 0),
            seeders=d.get("seeders", 0),
            provider=d.get("provider", ""),
        )
        for d in json.loads(data)
    ]


def stream_cache_key(content_type: ContentType, cache_id: str) -> str:
    return f"{_KEY_PREFIX}:{content_type}:{cache_id}"


class StreamCacheRepository:
    """Final stream lists keyed by ``streams:<type>:<id>``.

    Lists where everything is downloaded live for a day; lists with
    in-progress torrents only for minutes, so they get re-resolved.
    """

    def __init__(self, cache: CachePort, config: StreamsConfig) -> None:
        self.cache = cache
        self._config = config

    def compute_ttl(self, streams: Sequence[StreamResult]) -> int:
        if not streams:
            return self._config.error_ttl_seconds
        if all(s.status is TorrentStatus.DOWNLOADED for s in streams):
            return self._config.downloaded_ttl_seconds
        if any(s.status is TorrentStatus.DOWNLOADING for s in streams):
            return self._config.downloading_ttl_seconds
        return self._config.error_ttl_seconds

    async def get(
        self, content_type: ContentType, cache_id: str
    ) -> list[StreamResult] | None:
        key = stream_cache_key(content_type, cache_id)
        data = await self.cache.get(key)
        if data is None:
            return None
        try:
            return _deserialize_streams(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("stream_cache_deserialize_error", key=key, error=str(e))
            await self.cache.delete(key)
            return None

    async def save(
        self,
        content_type: ContentType,
        cache_id: str,
        streams: Sequence[StreamResult],
    ) -> int:
        """Store *streams*; returns the TTL that was applied."""
        ttl = self.compute_ttl(streams)
        key = stream_cache_key(content_type, cache_id)
        await self.cache.set(key, _serialize_streams(streams), ttl=ttl)
        log.debug("stream_cache_saved", key=key, streams=len(streams), ttl=ttl)
        return ttl

    async def delete(self, content_type: ContentType, cache_id: str) -> bool:
        return await self.cache.delete(stream_cache_key(content_type, cache_id))

    async def delete_for_content(self, base_id: str) -> int:
        """Drop the movie list, the series list and every episode list of an id."""
        deleted = 0
        for content_type in ("movie", "series"):
            if await self.delete(content_type, base_id):
                deleted += 1
        deleted += await self.cache.delete_prefix(
            f"{stream_cache_key('series', base_id)}:"
        )
        return deleted
