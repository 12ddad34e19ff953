"""Integration tests for build_services(): real wiring, mocked HTTP and debrid."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import respx

from brasilrd.domain.entities import (
    CuratedMagnet,
    ProcessedTorrent,
    ResolvedTorrent,
    StreamQuery,
    TorrentFile,
    TorrentStatus,
    extract_info_hash,
)
from brasilrd.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from brasilrd.infrastructure.catalog import CuratedCatalog
from brasilrd.infrastructure.composition import build_services
from brasilrd.infrastructure.config.load import load_config
from brasilrd.infrastructure.config.schema import AppConfig
from brasilrd.infrastructure.sources import WordPressPostsAdapter

pytestmark = pytest.mark.integration

WP_BASE = "https://wp.example"
WP_POSTS = f"{WP_BASE}/wp-json/wp/v2/posts"
HASH_WP = "1" * 40
HASH_CURATED = "2" * 40


def _config(**overrides: object) -> AppConfig:
    base: dict = {
        "sources": {
            "sites": [
                {
                    "name": "wp-teste",
                    "kind": "wordpress",
                    "base_url": WP_BASE,
                    "priority": 4,
                }
            ],
            "indexer": {"enabled": False},
        },
        "streams": {"batch_delay_seconds": 0.0},
    }
    base.update(overrides)
    return load_config(overrides=base)


def _fake_debrid() -> AsyncMock:
    async def _process(magnet: str) -> ProcessedTorrent:
        return ProcessedTorrent(
            added=True,
            ready=True,
            status=TorrentStatus.DOWNLOADED,
            external_id=f"RD-{extract_info_hash(magnet)}",
        )

    async def _info(torrent_id: str) -> ResolvedTorrent:
        return ResolvedTorrent(
            external_id=torrent_id,
            info_hash=torrent_id.removeprefix("RD-"),
            status=TorrentStatus.DOWNLOADED,
            files=(
                TorrentFile(id=1, path="/Filme.Exemplo.2023.1080p.mkv", bytes=2 * 1024**3, selected=True),
            ),
        )

    debrid = AsyncMock()
    debrid.process_torrent = AsyncMock(side_effect=_process)
    debrid.get_torrent_info = AsyncMock(side_effect=_info)
    debrid.get_stream_link_for_file = AsyncMock(
        side_effect=lambda tid, fid: f"https://dl.example/{tid}/{fid}"
    )
    debrid.aclose = AsyncMock()
    return debrid


def _post(title: str, info_hash: str) -> dict:
    magnet = f"magnet:?xt=urn:btih:{info_hash}&amp;dn=filme"
    return {
        "id": 1,
        "title": {"rendered": title},
        "content": {"rendered": f'<p>Tamanho: 2 GB</p><a href="{magnet}">Baixar</a>'},
    }


class TestBuildServices:
    @pytest.mark.asyncio()
    async def test_wiring(self) -> None:
        async with build_services(_config(), cache=MemoryCacheAdapter()) as services:
            assert [s.name for s in services.sources] == ["wp-teste"]
            assert isinstance(services.sources[0], WordPressPostsAdapter)
            assert services.mirror_state is None
            assert services.search.sources == services.sources
            assert len(services.catalog) == 0
            assert await services.resolve_streams.stats() == {
                "cache_entries": 0,
                "season_resolutions_inflight": 0,
            }

    @pytest.mark.asyncio()
    async def test_indexer_gets_shared_mirror_state(self) -> None:
        config = load_config(overrides={"sources": {"sites": []}})
        async with build_services(config, cache=MemoryCacheAdapter()) as services:
            assert services.mirror_state is not None
            assert [s.name for s in services.sources] == ["indexer"]

    @pytest.mark.asyncio()
    async def test_catalog_seed_loaded(self, tmp_path) -> None:
        seed = tmp_path / "magnets.json"
        seed.write_text(
            '{"magnets": [{"imdbId": "tt1234567", "title": "Filme Exemplo", '
            f'"magnet": "magnet:?xt=urn:btih:{HASH_CURATED}", "quality": "1080p"}}]}}',
            encoding="utf-8",
        )
        config = _config(catalog={"seed_path": str(seed)})
        async with build_services(config, cache=MemoryCacheAdapter()) as services:
            assert len(services.catalog) == 1

    @pytest.mark.asyncio()
    async def test_cleanup_closes_cache(self) -> None:
        cache = MemoryCacheAdapter()
        cache.aclose = AsyncMock(wraps=cache.aclose)  # type: ignore[method-assign]
        async with build_services(_config(), cache=cache):
            pass
        cache.aclose.assert_awaited_once()


class TestEndToEnd:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_search_resolve_and_cache(self, movie_query: StreamQuery) -> None:
        route = respx.get(WP_POSTS).respond(
            200, json=[_post("Filme Exemplo 2023 1080p WEB-DL DUAL", HASH_WP)]
        )
        debrid = _fake_debrid()
        factory = MagicMock(return_value=debrid)

        async with build_services(
            _config(), cache=MemoryCacheAdapter(), debrid_factory=factory
        ) as services:
            streams = await services.resolve_streams.execute(movie_query)
            again = await services.resolve_streams.execute(movie_query)

        assert len(streams) == 1
        assert streams[0].play_url == f"https://dl.example/RD-{HASH_WP}/1"
        assert streams[0].provider == "wp-teste"
        assert again == streams
        assert route.call_count == 1
        factory.assert_called_once_with("rd-token")

    @pytest.mark.asyncio()
    @respx.mock
    async def test_catalog_change_invalidates_cached_streams(
        self, movie_query: StreamQuery
    ) -> None:
        respx.get(WP_POSTS).respond(200, json=[])
        debrid = _fake_debrid()
        factory = MagicMock(return_value=debrid)
        catalog = CuratedCatalog()

        async with build_services(
            _config(),
            cache=MemoryCacheAdapter(),
            catalog=catalog,
            debrid_factory=factory,
        ) as services:
            assert await services.resolve_streams.execute(movie_query) == []

            catalog.add(
                CuratedMagnet(
                    imdb_id="tt1234567",
                    title="Filme Exemplo",
                    magnet=f"magnet:?xt=urn:btih:{HASH_CURATED}&dn=curated",
                    quality="1080p",
                    seeds=3,
                )
            )
            await asyncio.gather(*list(services.resolve_streams._background))

            streams = await services.resolve_streams.execute(movie_query)

        assert [s.provider for s in streams] == ["curated"]
        assert factory.call_count == 2

    @pytest.mark.asyncio()
    @respx.mock
    async def test_source_outage_yields_empty_list(self, movie_query: StreamQuery) -> None:
        respx.get(WP_POSTS).respond(503)
        factory = MagicMock(return_value=_fake_debrid())

        async with build_services(
            _config(), cache=MemoryCacheAdapter(), debrid_factory=factory
        ) as services:
            assert await services.resolve_streams.execute(movie_query) == []
