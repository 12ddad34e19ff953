"""Whole-season torrent resolution and per-episode stream lookup.

A season torrent is resolved once (search -> debrid -> file list) and reused
for every episode of that season until its cache entry expires.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Protocol

import structlog

from brasilrd.domain.entities import (
    Candidate,
    ContentType,
    EpisodeRef,
    SeasonEntry,
    StreamQuery,
    StreamResult,
    TorrentStatus,
)
from brasilrd.domain.exceptions import BrasilRDError, DebridError
from brasilrd.domain.ports.debrid import DebridPort
from brasilrd.infrastructure.matching.episode_parser import (
    find_episode_file,
    sanitize_filename,
    sort_by_episode,
    video_files,
)
from brasilrd.infrastructure.matching.release_parser import (
    detect_quality,
    format_size,
)
from brasilrd.infrastructure.persistence.season_cache import SeasonCacheRepository
from brasilrd.infrastructure.persistence.torrent_cache import TorrentCacheRepository

log = structlog.get_logger(__name__)


class _Search(Protocol):
    async def execute(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]: ...


class SeasonResolver:
    """Resolves ``(content_id, season)`` to a downloaded season torrent.

    Concurrent callers for the same season share one in-flight resolution.
    Only fully downloaded torrents are cached.
    """

    def __init__(
        self,
        *,
        search: _Search,
        season_cache: SeasonCacheRepository,
        torrent_cache: TorrentCacheRepository | None = None,
        addon_name: str = "Brasil RD",
        max_attempts: int = 3,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._search = search
        self._season_cache = season_cache
        self._torrent_cache = torrent_cache
        self._addon_name = addon_name
        self._max_attempts = max_attempts
        self._clock = clock
        self._inflight: dict[tuple[str, int, str], asyncio.Task[SeasonEntry | None]] = {}

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def resolve_season(
        self,
        content_id: str,
        season: int,
        title: str,
        debrid: DebridPort,
        *,
        account: str = "",
    ) -> SeasonEntry | None:
        """Season entry for *account*, resolving it through *debrid* on a miss.

        Callers share an in-flight resolution only when they use the same
        account. A failed shared resolution yields None for every caller.
        """
        cached = await self._season_cache.get(content_id, season, account=account)
        if cached is not None:
            log.debug("season_cache_hit", content_id=content_id, season=season)
            return cached

        key = (content_id, season, account)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(
                self._resolve(content_id, season, title, debrid, account)
            )
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            log.debug("season_resolution_joined", content_id=content_id, season=season)
        try:
            return await asyncio.shield(task)
        except (BrasilRDError, RuntimeError) as exc:
            log.warning(
                "season_resolution_failed",
                content_id=content_id,
                season=season,
                error=repr(exc),
            )
            return None

    async def _resolve(
        self,
        content_id: str,
        season: int,
        title: str,
        debrid: DebridPort,
        account: str,
    ) -> SeasonEntry | None:
        candidates = await self._search.execute(
            f"{title} Temporada {season}", "series", season
        )
        if not candidates:
            log.info("season_no_candidates", content_id=content_id, season=season)
            return None

        for candidate in candidates[: self._max_attempts]:
            processed = await debrid.process_torrent(candidate.magnet_uri)
            if not processed.added or processed.external_id is None:
                continue
            if not processed.ready:
                log.info(
                    "season_torrent_not_ready",
                    content_id=content_id,
                    season=season,
                    torrent_id=processed.external_id,
                    status=processed.status.value,
                    progress=processed.progress,
                )
                return None
            return await self._store(
                content_id, season, candidate, processed.external_id, debrid, account
            )

        log.info("season_unresolved", content_id=content_id, season=season)
        return None

    async def _store(
        self,
        content_id: str,
        season: int,
        candidate: Candidate,
        torrent_id: str,
        debrid: DebridPort,
        account: str,
    ) -> SeasonEntry | None:
        try:
            info = await debrid.get_torrent_info(torrent_id)
        except DebridError as exc:
            log.warning("season_torrent_info_failed", torrent_id=torrent_id, error=str(exc))
            return None
        if not info.is_ready:
            return None

        files = sort_by_episode(video_files(info.selected_files))
        entry = SeasonEntry(
            torrent_id=torrent_id,
            magnet_hash=candidate.info_hash,
            files=tuple(files),
            inserted_at=self._clock(),
        )
        await self._season_cache.save(content_id, season, entry, account=account)
        if self._torrent_cache is not None:
            await self._torrent_cache.save(
                info, account=account, content_id=content_id
            )
        log.info(
            "season_resolved",
            content_id=content_id,
            season=season,
            torrent_id=torrent_id,
            files=len(files),
            source=candidate.provider,
        )
        return entry

    async def resolve_episode(
        self,
        query: StreamQuery,
        title: str,
        debrid: DebridPort,
    ) -> StreamResult | None:
        """Direct stream for one episode out of the resolved season torrent."""
        if query.season is None or query.episode is None:
            return None
        entry = await self.resolve_season(
            query.base_id, query.season, title, debrid, account=query.account
        )
        if entry is None:
            return None

        file = find_episode_file(entry.files, query.season, query.episode)
        if file is None:
            log.info(
                "episode_not_in_season",
                content_id=query.base_id,
                season=query.season,
                episode=query.episode,
                files=len(entry.files),
            )
            return None

        url = await debrid.get_stream_link_for_file(entry.torrent_id, file.id)
        if not url:
            return None

        filename = PurePosixPath(file.path).name
        quality = detect_quality(filename)
        ref = EpisodeRef(query.season, query.episode)
        return StreamResult(
            title=f"{title} {ref.label()}",
            play_url=url,
            quality=quality,
            name=f"{self._addon_name} ({quality.value})",
            grouping_key=f"br-season-{query.base_id}-{query.season}",
            status=TorrentStatus.DOWNLOADED,
            filename=sanitize_filename(filename),
            description=f"{ref.label()} | {format_size(file.bytes)}",
            size_bytes=file.bytes,
            provider="season",
        )
