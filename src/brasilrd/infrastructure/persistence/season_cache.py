"""Season entry cache (one resolved season torrent per content id and season)."""

from __future__ import annotations

import json

import structlog

from brasilrd.domain.entities import SeasonEntry, TorrentFile
from brasilrd.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)


def _serialize_entry(entry: SeasonEntry) -> str:
    return json.dumps(
        {
            "torrent_id": entry.torrent_id,
            "magnet_hash": entry.magnet_hash,
            "inserted_at": entry.inserted_at,
            "files": [
                {"id": f.id, "path": f.path, "bytes": f.bytes, "selected": f.selected}
                for f in entry.files
            ],
        }
    )


def _deserialize_entry(data: str) -> SeasonEntry:
    d = json.loads(data)
    return SeasonEntry(
        torrent_id=d["torrent_id"],
        magnet_hash=d["magnet_hash"],
        inserted_at=d.get("inserted_at", 0.0),
        files=tuple(
            TorrentFile(
                id=f["id"],
                path=f["path"],
                bytes=f.get("bytes", 0),
                selected=f.get("selected", True),
            )
            for f in d.get("files", [])
        ),
    )


class SeasonCacheRepository:
    """Stores SeasonEntries under ``season:<content_id>:<season>[:<account>]``.

    An entry carries a debrid torrent id, which is only valid for the
    account that resolved it.
    """

    def __init__(self, cache: CachePort, ttl_seconds: int = 3600) -> None:
        self.cache = cache
        self.ttl = ttl_seconds

    @staticmethod
    def key(content_id: str, season: int, account: str = "") -> str:
        if account:
            return f"season:{content_id}:{season}:{account}"
        return f"season:{content_id}:{season}"

    async def get(
        self, content_id: str, season: int, *, account: str = ""
    ) -> SeasonEntry | None:
        key = self.key(content_id, season, account)
        data = await self.cache.get(key)
        if data is None:
            return None
        try:
            return _deserialize_entry(data)
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            log.error("season_cache_deserialize_error", key=key, error=str(e))
            return None

    async def save(
        self, content_id: str, season: int, entry: SeasonEntry, *, account: str = ""
    ) -> None:
        await self.cache.set(
            self.key(content_id, season, account), _serialize_entry(entry), ttl=self.ttl
        )
        log.debug(
            "season_cached",
            content_id=content_id,
            season=season,
            files=len(entry.files),
            ttl=self.ttl,
        )

    async def delete_for_content(self, content_id: str) -> int:
        return await self.cache.delete_prefix(f"season:{content_id}:")
