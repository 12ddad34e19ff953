"""Stream resolution use case.

content id -> cache -> curated magnets, else multi-source search
-> debrid resolution (bounded batches) -> sort/cap -> cache.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from pathlib import PurePosixPath
from typing import Any, Protocol, TypeVar

import structlog

from brasilrd.domain.entities import (
    Candidate,
    ContentType,
    CuratedMagnet,
    QualityTier,
    ResolvedTorrent,
    StreamQuery,
    StreamResult,
    TorrentFile,
    TorrentStatus,
    extract_info_hash,
)
from brasilrd.domain.exceptions import DebridError
from brasilrd.domain.ports.cache import CachePort
from brasilrd.domain.ports.catalog import CatalogPort, TitleLookupPort
from brasilrd.domain.ports.debrid import DebridPort
from brasilrd.infrastructure.matching.episode_parser import (
    find_episode_file,
    largest_main_file,
    sanitize_filename,
    video_files,
)
from brasilrd.infrastructure.matching.release_parser import (
    clean_release_title,
    detect_language,
    detect_quality,
    format_language,
    format_size,
    parse_quality_label,
)
from brasilrd.infrastructure.matching.stream_sorter import StreamSorter
from brasilrd.infrastructure.matching.title_matcher import is_similar_title
from brasilrd.infrastructure.persistence.season_cache import SeasonCacheRepository
from brasilrd.infrastructure.persistence.stream_cache import StreamCacheRepository
from brasilrd.infrastructure.persistence.torrent_cache import TorrentCacheRepository

from .season_resolver import SeasonResolver

log = structlog.get_logger(__name__)

T = TypeVar("T")

DebridFactory = Callable[[str], DebridPort]


class _Search(Protocol):
    async def execute(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]: ...


class _StreamsConfig(Protocol):
    max_concurrent_torrents: int
    batch_delay_seconds: float
    addon_name: str


class ResolveStreamsUseCase:
    """Resolves a StreamQuery into a sorted, capped list of StreamResults.

    Steps:
        1. Return [] without an API key.
        2. Serve a cached list if every entry is downloaded, else evict it.
        3. Resolve the best curated magnet of each quality; when any of them
           yields a stream, return those streams without scraping.
        4. Look up the title, search all sources, rank candidates and keep
           the ones whose title resembles the looked-up title.
        5. Episodes go through the SeasonResolver first; when it yields a
           stream, per-candidate resolution is skipped.
        6. Resolve candidates through the debrid service in batches.
        7. Filter, sort, cap and cache with a status-dependent TTL.

    ``execute`` never raises.
    """

    def __init__(
        self,
        *,
        search: _Search,
        season_resolver: SeasonResolver,
        stream_cache: StreamCacheRepository,
        season_cache: SeasonCacheRepository,
        torrent_cache: TorrentCacheRepository,
        debrid_factory: DebridFactory,
        sorter: StreamSorter,
        config: _StreamsConfig,
        title_lookup: TitleLookupPort | None = None,
        catalog: CatalogPort | None = None,
        cache: CachePort | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._search = search
        self._season_resolver = season_resolver
        self._stream_cache = stream_cache
        self._season_cache = season_cache
        self._torrent_cache = torrent_cache
        self._debrid_factory = debrid_factory
        self._sorter = sorter
        self._title_lookup = title_lookup
        self._catalog = catalog
        self._cache = cache
        self._sleep = sleep
        self._batch_size = max(1, config.max_concurrent_torrents)
        self._batch_delay = config.batch_delay_seconds
        self._addon_name = config.addon_name
        self._background: set[asyncio.Task[int]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, query: StreamQuery) -> list[StreamResult]:
        if not query.api_key:
            log.warning("stream_request_without_api_key", content_id=query.content_id)
            return []
        try:
            return await self._execute(query)
        except Exception:  # noqa: BLE001
            log.error(
                "stream_resolution_failed",
                content_id=query.content_id,
                content_type=query.content_type,
                exc_info=True,
            )
            return []

    async def invalidate(self, content_id: str) -> int:
        """Drop every cached stream list, season and torrent of *content_id*."""
        base_id = StreamQuery(content_type="movie", content_id=content_id).base_id
        deleted = await self._stream_cache.delete_for_content(base_id)
        deleted += await self._season_cache.delete_for_content(base_id)
        deleted += await self._torrent_cache.delete_for_content(base_id)
        log.info("stream_cache_invalidated", content_id=base_id, deleted=deleted)
        return deleted

    def on_catalog_change(self, content_id: str) -> None:
        """Catalog listener: schedule invalidation on the running loop.

        Requests started after the change wait for the scheduled invalidation
        before reading the stream cache.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.warning("stream_invalidation_skipped", content_id=content_id)
            return
        task = loop.create_task(self.invalidate(content_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(_log_task_failure)

    async def stats(self) -> dict[str, Any]:
        return {
            "cache_entries": await self._cache.size() if self._cache else None,
            "season_resolutions_inflight": self._season_resolver.inflight,
        }

    async def clear_cache(self) -> None:
        if self._cache is not None:
            await self._cache.clear()
            log.warning("stream_caches_cleared")

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _execute(self, query: StreamQuery) -> list[StreamResult]:
        if self._background:
            # Catalog invalidations scheduled before this request land first.
            await asyncio.gather(*list(self._background), return_exceptions=True)
        cached = await self._stream_cache.get(query.content_type, query.cache_id)
        if cached is not None:
            if all(s.is_downloaded for s in cached):
                log.info(
                    "stream_cache_hit",
                    content_id=query.cache_id,
                    streams=len(cached),
                )
                return cached
            await self._stream_cache.delete(query.content_type, query.cache_id)
            log.info("stream_cache_evicted", content_id=query.cache_id)

        debrid = self._debrid_factory(query.api_key)
        try:
            streams = await self._collect(query, debrid)
        finally:
            await debrid.aclose()

        final = self._sorter.finalize(streams)
        ttl = await self._stream_cache.save(query.content_type, query.cache_id, final)
        log.info(
            "streams_resolved",
            content_id=query.cache_id,
            content_type=query.content_type,
            resolved=len(streams),
            returned=len(final),
            ttl=ttl,
        )
        return final

    async def _collect(
        self, query: StreamQuery, debrid: DebridPort
    ) -> list[StreamResult]:
        curated = self._catalog.find_magnets(query) if self._catalog else []
        if curated:
            picked = _best_per_quality(curated)
            streams = await self._in_batches(
                picked, lambda m: self._resolve_curated(m, query, debrid)
            )
            if streams:
                log.info(
                    "curated_streams_resolved",
                    content_id=query.cache_id,
                    curated=len(curated),
                    resolved=len(streams),
                )
                return streams
            log.info("curated_streams_unavailable", content_id=query.cache_id)

        title = await self._lookup_title(query)

        if query.wants_episode:
            episode_stream = await self._season_resolver.resolve_episode(
                query, title, debrid
            )
            if episode_stream is not None:
                return [episode_stream]

        search_query = (
            f"{title} Temporada {query.season}"
            if query.content_type == "series" and query.season is not None
            else title
        )
        candidates = await self._search.execute(
            search_query, query.content_type, query.season
        )
        if title != query.base_id:
            candidates = _similar_to(candidates, title)
        return await self._in_batches(
            candidates, lambda c: self._resolve_candidate(c, query, title, debrid)
        )

    async def _lookup_title(self, query: StreamQuery) -> str:
        if self._title_lookup is not None:
            try:
                title = await self._title_lookup.get_title(query.base_id)
            except Exception:  # noqa: BLE001
                log.warning("title_lookup_failed", content_id=query.base_id, exc_info=True)
                title = None
            if title:
                return title
        return query.title_hint or query.base_id

    async def _in_batches(
        self,
        items: Sequence[T],
        resolve: Callable[[T], Awaitable[StreamResult | None]],
    ) -> list[StreamResult]:
        """Resolve *items* ``batch_size`` at a time, pausing between batches."""
        streams: list[StreamResult] = []
        for start in range(0, len(items), self._batch_size):
            if start:
                await self._sleep(self._batch_delay)
            batch = items[start : start + self._batch_size]
            results = await asyncio.gather(
                *(resolve(item) for item in batch), return_exceptions=True
            )
            for item, result in zip(batch, results):
                if isinstance(result, BaseException):
                    log.warning(
                        "torrent_resolution_failed",
                        item=getattr(item, "title", None),
                        error=repr(result),
                    )
                elif result is not None:
                    streams.append(result)
        return streams

    # ------------------------------------------------------------------
    # Single torrent resolution
    # ------------------------------------------------------------------

    async def _snapshot(
        self, magnet_uri: str, info_hash: str, query: StreamQuery, debrid: DebridPort
    ) -> ResolvedTorrent | None:
        """Ready torrent snapshot of this account, or a fresh debrid lookup.

        Returns a non-ready snapshot for torrents still in progress and None
        when the debrid service rejected the magnet.
        """
        if info_hash:
            cached = await self._torrent_cache.get(info_hash, account=query.account)
            if cached is not None:
                return cached

        processed = await debrid.process_torrent(magnet_uri)
        if not processed.added or processed.external_id is None:
            return None
        if not processed.ready:
            return ResolvedTorrent(
                external_id=processed.external_id,
                info_hash=info_hash,
                status=processed.status,
                progress=processed.progress,
            )
        try:
            info = await debrid.get_torrent_info(processed.external_id)
        except DebridError as exc:
            log.warning(
                "torrent_info_failed", torrent_id=processed.external_id, error=str(exc)
            )
            return None
        await self._torrent_cache.save(
            info, account=query.account, content_id=query.base_id
        )
        return info

    def _pick_file(
        self, info: ResolvedTorrent, query: StreamQuery
    ) -> TorrentFile | None:
        selected = info.selected_files
        if query.season is not None and query.episode is not None:
            return find_episode_file(video_files(selected), query.season, query.episode)
        return largest_main_file(selected)

    async def _stream_for(
        self,
        *,
        magnet_uri: str,
        info_hash: str,
        title: str,
        quality: QualityTier,
        language: str,
        seeders: int,
        provider: str,
        query: StreamQuery,
        debrid: DebridPort,
    ) -> StreamResult | None:
        info = await self._snapshot(magnet_uri, info_hash, query, debrid)
        if info is None:
            return None

        name = f"{self._addon_name} ({quality.value})"
        grouping_key = f"br-{info_hash or info.external_id}"
        if not info.is_ready:
            return StreamResult(
                title=title,
                play_url="",
                quality=quality,
                name=name,
                grouping_key=grouping_key,
                status=info.status,
                description=f"Baixando no Real-Debrid: {info.progress:.0f}%",
                seeders=seeders,
                provider=provider,
            )

        file = self._pick_file(info, query)
        if file is None:
            log.debug("torrent_without_playable_file", title=title, torrent_id=info.external_id)
            return None

        url = await debrid.get_stream_link_for_file(info.external_id, file.id)
        if not url:
            return None

        filename = PurePosixPath(file.path).name
        return StreamResult(
            title=title,
            play_url=url,
            quality=quality,
            name=name,
            grouping_key=grouping_key,
            status=TorrentStatus.DOWNLOADED,
            filename=sanitize_filename(filename),
            description=(
                f"{clean_release_title(title)}\n"
                f"Seeds: {seeders} | {format_size(file.bytes)} | "
                f"{format_language(language)}"
            ),
            size_bytes=file.bytes,
            seeders=seeders,
            provider=provider,
        )

    async def _resolve_candidate(
        self,
        candidate: Candidate,
        query: StreamQuery,
        title: str,
        debrid: DebridPort,
    ) -> StreamResult | None:
        return await self._stream_for(
            magnet_uri=candidate.magnet_uri,
            info_hash=candidate.info_hash,
            title=candidate.title or title,
            quality=candidate.quality,
            language=candidate.language,
            seeders=candidate.seeders,
            provider=candidate.provider,
            query=query,
            debrid=debrid,
        )

    async def _resolve_curated(
        self,
        magnet: CuratedMagnet,
        query: StreamQuery,
        debrid: DebridPort,
    ) -> StreamResult | None:
        return await self._stream_for(
            magnet_uri=magnet.magnet,
            info_hash=extract_info_hash(magnet.magnet) or "",
            title=magnet.title,
            quality=parse_quality_label(magnet.quality) or detect_quality(magnet.title),
            language=magnet.language or detect_language(magnet.title),
            seeders=magnet.seeds,
            provider="curated",
            query=query,
            debrid=debrid,
        )


def _log_task_failure(task: asyncio.Task[Any]) -> None:
    if not task.cancelled() and task.exception() is not None:
        log.warning("background_task_failed", error=repr(task.exception()))


def _best_per_quality(magnets: Sequence[CuratedMagnet]) -> list[CuratedMagnet]:
    """Most-seeded curated magnet of each quality label."""
    best: dict[str, CuratedMagnet] = {}
    for magnet in sorted(magnets, key=lambda m: m.seeds, reverse=True):
        best.setdefault(magnet.quality, magnet)
    return list(best.values())


def _similar_to(candidates: list[Candidate], title: str) -> list[Candidate]:
    kept = [c for c in candidates if is_similar_title(c.title, title)]
    if len(kept) < len(candidates):
        log.debug(
            "candidates_not_similar",
            title=title,
            dropped=len(candidates) - len(kept),
        )
    return kept
