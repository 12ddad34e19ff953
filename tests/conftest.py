"""Shared fixtures for the brasilrd test suite."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from brasilrd.domain.entities import (
    Candidate,
    QualityTier,
    ResolvedTorrent,
    StreamQuery,
    TorrentFile,
    TorrentStatus,
)

HASH_A = "a" * 40
HASH_B = "b" * 40


def make_magnet(info_hash: str = HASH_A, name: str = "Filme.2023.1080p") -> str:
    return f"magnet:?xt=urn:btih:{info_hash}&dn={name}&tr=udp://tracker.example:80"


# ---- Domain entity fixtures ----


@pytest.fixture()
def sample_magnet() -> str:
    return make_magnet()


@pytest.fixture()
def candidate() -> Candidate:
    return Candidate(
        title="Filme Exemplo 2023 1080p WEB-DL DUAL",
        magnet_uri=make_magnet(),
        provider="bludv",
        quality=QualityTier.FHD_1080P,
        seeders=120,
        size_bytes=2 * 1024**3,
        language="pt-BR,en",
    )


@pytest.fixture()
def movie_query() -> StreamQuery:
    return StreamQuery(
        content_type="movie",
        content_id="tt1234567",
        api_key="rd-token",
        title_hint="Filme Exemplo",
    )


@pytest.fixture()
def episode_query() -> StreamQuery:
    return StreamQuery.from_stremio_id(
        "series", "tt0903747:1:2", api_key="rd-token", title_hint="Breaking Bad"
    )


@pytest.fixture()
def ready_torrent() -> ResolvedTorrent:
    return ResolvedTorrent(
        external_id="RD123",
        info_hash=HASH_A,
        status=TorrentStatus.DOWNLOADED,
        progress=100.0,
        filename="Filme.Exemplo.2023.1080p",
        files=(
            TorrentFile(id=1, path="/Filme.Exemplo.2023.1080p.mkv", bytes=2_000_000_000, selected=True),
            TorrentFile(id=2, path="/sample.mkv", bytes=50_000_000, selected=True),
            TorrentFile(id=3, path="/leia-me.txt", bytes=1_000, selected=False),
        ),
        links=("https://real-debrid.com/d/AAA", "https://real-debrid.com/d/BBB"),
    )


# ---- Infrastructure mocks ----


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """AsyncMock satisfying CachePort."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.delete = AsyncMock(return_value=True)
    cache.delete_prefix = AsyncMock(return_value=0)
    cache.exists = AsyncMock(return_value=False)
    cache.size = AsyncMock(return_value=0)
    cache.clear = AsyncMock()
    cache.aclose = AsyncMock()
    return cache
