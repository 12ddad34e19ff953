"""Snapshots of downloaded torrents, plus a per-content index for invalidation."""

from __future__ import annotations

import asyncio
import json

import structlog

from brasilrd.domain.entities import ResolvedTorrent, TorrentFile, TorrentStatus
from brasilrd.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)


def _serialize_torrent(torrent: ResolvedTorrent) -> str:
    return json.dumps(
        {
            "external_id": torrent.external_id,
            "info_hash": torrent.info_hash,
            "status": torrent.status.value,
            "progress": torrent.progress,
            "filename": torrent.filename,
            "links": list(torrent.links),
            "files": [
                {"id": f.id, "path": f.path, "bytes": f.bytes, "selected": f.selected}
                for f in torrent.files
            ],
        }
    )


def _deserialize_torrent(data: str) -> ResolvedTorrent:
    d = json.loads(data)
    return ResolvedTorrent(
        external_id=d["external_id"],
        info_hash=d["info_hash"],
        status=TorrentStatus(d["status"]),
        progress=d.get("progress", 0.0),
        filename=d.get("filename", ""),
        links=tuple(d.get("links", [])),
        files=tuple(
            TorrentFile(
                id=f["id"],
                path=f["path"],
                bytes=f.get("bytes", 0),
                selected=f.get("selected", False),
            )
            for f in d.get("files", [])
        ),
    )


class TorrentCacheRepository:
    """Stores snapshots of downloaded torrents only.

    Torrent ids belong to the debrid account that added the magnet, so
    snapshots live under ``torrent:<account>:<info_hash>`` (plain
    ``torrent:<info_hash>`` without an account). ``torrent-index:<content_id>``
    lists the snapshot keys recorded for a content id so that invalidating
    the id can drop them.
    """

    def __init__(self, cache: CachePort, ttl_seconds: int = 3600) -> None:
        self.cache = cache
        self.ttl = ttl_seconds
        self._index_lock = asyncio.Lock()

    @staticmethod
    def key(info_hash: str, account: str = "") -> str:
        if account:
            return f"torrent:{account}:{info_hash.lower()}"
        return f"torrent:{info_hash.lower()}"

    @staticmethod
    def index_key(content_id: str) -> str:
        return f"torrent-index:{content_id}"

    async def get(self, info_hash: str, *, account: str = "") -> ResolvedTorrent | None:
        data = await self.cache.get(self.key(info_hash, account))
        if data is None:
            return None
        try:
            return _deserialize_torrent(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.error("torrent_cache_deserialize_error", info_hash=info_hash, error=str(e))
            return None

    async def save(
        self,
        torrent: ResolvedTorrent,
        *,
        account: str = "",
        content_id: str | None = None,
    ) -> bool:
        """Store *torrent* if downloaded. Returns whether it was stored."""
        if not torrent.is_ready or not torrent.info_hash:
            return False
        key = self.key(torrent.info_hash, account)
        await self.cache.set(key, _serialize_torrent(torrent), ttl=self.ttl)
        if content_id:
            await self._remember(content_id, key)
        log.debug("torrent_cached", info_hash=torrent.info_hash, content_id=content_id)
        return True

    async def _remember(self, content_id: str, snapshot_key: str) -> None:
        async with self._index_lock:
            key = self.index_key(content_id)
            raw = await self.cache.get(key)
            keys: list[str] = json.loads(raw) if raw else []
            if snapshot_key not in keys:
                keys.append(snapshot_key)
                await self.cache.set(key, json.dumps(keys), ttl=self.ttl)

    async def delete_for_content(self, content_id: str) -> int:
        """Drop every snapshot recorded for *content_id*. Returns the count."""
        async with self._index_lock:
            key = self.index_key(content_id)
            raw = await self.cache.get(key)
            await self.cache.delete(key)
        deleted = 0
        for snapshot_key in json.loads(raw) if raw else []:
            if await self.cache.delete(snapshot_key):
                deleted += 1
        return deleted
