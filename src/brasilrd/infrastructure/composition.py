"""Composition root: wires every component from an AppConfig."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import partial

import structlog

from brasilrd.application.use_cases.resolve_streams import (
    DebridFactory,
    ResolveStreamsUseCase,
)
from brasilrd.application.use_cases.season_resolver import SeasonResolver
from brasilrd.application.use_cases.torrent_search import TorrentSearchUseCase
from brasilrd.domain.ports.cache import CachePort
from brasilrd.domain.ports.catalog import TitleLookupPort
from brasilrd.infrastructure.cache.cache_factory import create_cache_from_config
from brasilrd.infrastructure.catalog.memory_catalog import CuratedCatalog
from brasilrd.infrastructure.config.schema import AppConfig
from brasilrd.infrastructure.debrid.real_debrid import RealDebridClient
from brasilrd.infrastructure.matching.ranker import CandidateRanker
from brasilrd.infrastructure.matching.stream_sorter import StreamSorter
from brasilrd.infrastructure.persistence.season_cache import SeasonCacheRepository
from brasilrd.infrastructure.persistence.stream_cache import StreamCacheRepository
from brasilrd.infrastructure.persistence.torrent_cache import TorrentCacheRepository
from brasilrd.infrastructure.sources.base import SourceAdapterBase
from brasilrd.infrastructure.sources.factory import build_sources
from brasilrd.infrastructure.sources.indexer import MirrorState

log = structlog.get_logger(__name__)


@dataclass
class Services:
    """Everything a front end needs to serve stream requests."""

    config: AppConfig
    cache: CachePort
    catalog: CuratedCatalog
    sources: list[SourceAdapterBase]
    mirror_state: MirrorState | None
    search: TorrentSearchUseCase
    season_resolver: SeasonResolver
    resolve_streams: ResolveStreamsUseCase


@asynccontextmanager
async def build_services(
    config: AppConfig,
    *,
    title_lookup: TitleLookupPort | None = None,
    catalog: CuratedCatalog | None = None,
    cache: CachePort | None = None,
    debrid_factory: DebridFactory | None = None,
) -> AsyncIterator[Services]:
    """Create, start and finally close all resources.

    Order matters:
        1. Cache (repositories depend on it)
        2. Source adapters + shared mirror state
        3. Search, season resolver, orchestrator
        4. Catalog change listener
    """
    # ========== 1) Cache ==========
    cache = cache or create_cache_from_config(config.cache)
    await cache.__aenter__()
    log.info("cache_initialized", backend=config.cache.backend)

    streams_cfg = config.streams
    stream_cache = StreamCacheRepository(cache, streams_cfg)
    season_cache = SeasonCacheRepository(cache, streams_cfg.season_ttl_seconds)
    torrent_cache = TorrentCacheRepository(cache, streams_cfg.torrent_ttl_seconds)

    # ========== 2) Sources ==========
    mirror_state = (
        MirrorState(config.sources.indexer.mirrors)
        if config.sources.indexer.enabled and config.sources.indexer.mirrors
        else None
    )
    sources = build_sources(
        config.sources,
        api_user_agent=config.http_user_agent,
        mirror_state=mirror_state,
    )

    # ========== 3) Use cases ==========
    search = TorrentSearchUseCase(
        sources=sources,
        ranker=CandidateRanker(config.matching),
        config=config.sources,
    )
    season_resolver = SeasonResolver(
        search=search,
        season_cache=season_cache,
        torrent_cache=torrent_cache,
        addon_name=streams_cfg.addon_name,
    )

    if catalog is None:
        catalog = CuratedCatalog()
        if config.catalog.seed_path is not None:
            catalog.load_json(config.catalog.seed_path)

    resolve_streams = ResolveStreamsUseCase(
        search=search,
        season_resolver=season_resolver,
        stream_cache=stream_cache,
        season_cache=season_cache,
        torrent_cache=torrent_cache,
        debrid_factory=debrid_factory
        or partial(RealDebridClient, config=config.debrid),
        sorter=StreamSorter(streams_cfg),
        config=streams_cfg,
        title_lookup=title_lookup,
        catalog=catalog,
        cache=cache,
    )

    # ========== 4) Catalog -> cache invalidation ==========
    catalog.on_change(resolve_streams.on_catalog_change)

    log.info("services_ready", sources=[s.name for s in sources], curated=len(catalog))

    try:
        yield Services(
            config=config,
            cache=cache,
            catalog=catalog,
            sources=sources,
            mirror_state=mirror_state,
            search=search,
            season_resolver=season_resolver,
            resolve_streams=resolve_streams,
        )
    finally:
        # ========== Cleanup (reverse order) ==========
        for source in sources:
            await source.cleanup()
        await cache.aclose()
        log.info("services_closed")
