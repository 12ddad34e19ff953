"""Tests for IndexerAdapter and the sticky MirrorState."""

from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from brasilrd.domain.entities import QualityTier
from brasilrd.infrastructure.config.schema import IndexerConfig
from brasilrd.infrastructure.sources.indexer import IndexerAdapter, MirrorState

M1 = "https://m1.example"
M2 = "https://m2.example"
M3 = "https://m3.example"


def _magnet(n: int) -> str:
    return f"magnet:?xt=urn:btih:{n:040x}&dn=release{n}&tr=udp://tracker.example:80"


def _result(title: str, n: int, seeds: int = 10, size: str = "2.5 GB") -> dict:
    return {
        "title": title,
        "magnet_link": _magnet(n),
        "seed_count": seeds,
        "leech_count": 2,
        "size": size,
        "date": "2024-01-01T00:00:00Z",
    }


def _payload(*results: dict) -> dict:
    return {"results": list(results), "count": len(results)}


def _make_adapter(
    mirrors: list[str] | None = None, **overrides: object
) -> IndexerAdapter:
    config = IndexerConfig(
        mirrors=mirrors or [M1, M2],
        failover_delay_seconds=0.0,
        **overrides,
    )
    return IndexerAdapter(config)


# ---------------------------------------------------------------------------
# MirrorState
# ---------------------------------------------------------------------------


class TestMirrorState:
    def test_requires_mirrors(self) -> None:
        with pytest.raises(ValueError):
            MirrorState([])

    def test_strips_trailing_slash(self) -> None:
        assert MirrorState([f"{M1}/"]).current == M1

    @pytest.mark.asyncio()
    async def test_advance_moves_forward(self) -> None:
        state = MirrorState([M1, M2, M3])
        assert await state.advance(0) == 1
        assert state.current == M2

    @pytest.mark.asyncio()
    async def test_concurrent_failures_advance_once(self) -> None:
        state = MirrorState([M1, M2, M3])
        results = await asyncio.gather(state.advance(0), state.advance(0))
        assert results == [1, 1]
        assert state.index == 1

    @pytest.mark.asyncio()
    async def test_exhausted(self) -> None:
        state = MirrorState([M1])
        assert await state.advance(0) is None
        assert state.index == 0

    @pytest.mark.asyncio()
    async def test_select(self) -> None:
        state = MirrorState([M1, M2])
        await state.select(1)
        assert state.current == M2


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class TestIndexerSearch:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_series_search_params_and_filtering(self) -> None:
        route = respx.get(f"{M1}/search").respond(
            200,
            json=_payload(
                _result("Breaking Bad S01 720p", 1, seeds=5),
                _result("Breaking Bad S01 1080p Dublado", 2, seeds=50, size="4.2 GB"),
                _result("Breaking Bad S02 1080p", 3),
                _result("Outra Serie S01 1080p", 4),
                _result("Breaking Bad S01 sem magnet", 5) | {"magnet_link": None},
            ),
        )
        adapter = _make_adapter()

        results = await adapter.search("Breaking Bad", "series", 1)
        await adapter.cleanup()

        params = route.calls.last.request.url.params
        assert params["q"] == "breaking bad"
        assert params["category"] == "tv"
        assert params["season"] == "1"
        assert params["filter_results"] == "true"

        assert [c.title for c in results] == [
            "Breaking Bad S01 1080p Dublado",
            "Breaking Bad S01 720p",
        ]
        best = results[0]
        assert best.quality is QualityTier.FHD_1080P
        assert best.seeders == 50
        assert best.leechers == 2
        assert best.size_bytes == int(4.2 * 1024**3)
        assert best.season == 1
        assert best.provider == "indexer"

    @pytest.mark.asyncio()
    @respx.mock
    async def test_movie_search_has_no_season(self) -> None:
        route = respx.get(f"{M1}/search").respond(200, json=_payload())
        adapter = _make_adapter()

        assert await adapter.search("Cidade de Deus") == []
        await adapter.cleanup()

        params = route.calls.last.request.url.params
        assert params["category"] == "movies"
        assert "season" not in params

    @pytest.mark.asyncio()
    @respx.mock
    async def test_named_indexer_endpoint(self) -> None:
        route = respx.get(f"{M1}/indexers/bludv").respond(200, json=_payload())
        adapter = _make_adapter(indexer="bludv")
        await adapter.search("Filme")
        await adapter.cleanup()
        assert route.called

    @pytest.mark.asyncio()
    @respx.mock
    async def test_limit(self) -> None:
        respx.get(f"{M1}/search").respond(
            200,
            json=_payload(*(_result(f"Filme Teste {i} 1080p", i) for i in range(1, 10))),
        )
        adapter = _make_adapter(limit=3)
        results = await adapter.search("Filme Teste")
        await adapter.cleanup()
        assert len(results) == 3

    @pytest.mark.asyncio()
    @respx.mock
    async def test_non_numeric_counts_keep_siblings(self) -> None:
        respx.get(f"{M1}/search").respond(
            200,
            json=_payload(
                _result("Filme Exemplo 1080p", 1, seeds=40),
                _result("Filme Exemplo 720p", 2) | {"seed_count": "N/A", "leech_count": "?"},
            ),
        )
        adapter = _make_adapter()

        results = await adapter.search("Filme Exemplo")
        await adapter.cleanup()

        assert [c.title for c in results] == ["Filme Exemplo 1080p", "Filme Exemplo 720p"]
        assert results[0].seeders == 40
        assert results[1].seeders > 0
        assert results[1].leechers == 0
        assert adapter.mirror_state.index == 0

    @pytest.mark.asyncio()
    @respx.mock
    async def test_malformed_row_is_dropped(self) -> None:
        respx.get(f"{M1}/search").respond(
            200,
            json=_payload(
                _result("Filme Exemplo 1080p", 1),
                _result("Filme Exemplo 720p", 2) | {"magnet_link": 12345},
            ),
        )
        adapter = _make_adapter()

        results = await adapter.search("Filme Exemplo")
        await adapter.cleanup()

        assert [c.title for c in results] == ["Filme Exemplo 1080p"]

    @pytest.mark.asyncio()
    @respx.mock
    async def test_unknown_indexer_falls_back_to_search(self) -> None:
        route = respx.get(f"{M1}/search").respond(200, json=_payload())
        adapter = _make_adapter(indexer="nao-existe")
        await adapter.search("Filme")
        await adapter.cleanup()
        assert route.called

    def test_available_indexers(self) -> None:
        names = IndexerAdapter.available_indexers()
        assert "search" in names
        assert "bludv" in names


class TestMirrorFailover:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_failover_is_sticky(self) -> None:
        first = respx.get(f"{M1}/search").respond(503)
        second = respx.get(f"{M2}/search").respond(
            200, json=_payload(_result("Filme Exemplo 1080p", 1))
        )
        adapter = _make_adapter()

        results = await adapter.search("Filme Exemplo")
        assert len(results) == 1
        assert adapter.mirror_state.current == M2

        await adapter.search("Filme Exemplo")
        await adapter.cleanup()

        assert first.call_count == 1
        assert second.call_count == 2

    @pytest.mark.asyncio()
    @respx.mock
    async def test_invalid_payload_triggers_failover(self) -> None:
        respx.get(f"{M1}/search").respond(200, json={"error": "maintenance"})
        respx.get(f"{M2}/search").respond(
            200, json=_payload(_result("Filme Exemplo 1080p", 1))
        )
        adapter = _make_adapter()
        assert len(await adapter.search("Filme Exemplo")) == 1
        await adapter.cleanup()

    @pytest.mark.asyncio()
    @respx.mock
    async def test_all_mirrors_failing_returns_empty(self) -> None:
        respx.get(f"{M1}/search").mock(side_effect=httpx.ConnectError("down"))
        respx.get(f"{M2}/search").respond(500)
        adapter = _make_adapter()

        assert await adapter.search("Filme Exemplo") == []
        await adapter.cleanup()

    @pytest.mark.asyncio()
    @respx.mock
    async def test_shared_mirror_state(self) -> None:
        respx.get(f"{M2}/search").respond(200, json=_payload())
        state = MirrorState([M1, M2])
        await state.select(1)
        adapter = IndexerAdapter(
            IndexerConfig(mirrors=[M1, M2], failover_delay_seconds=0.0),
            mirror_state=state,
        )
        await adapter.search("Filme")
        await adapter.cleanup()
        assert adapter.mirror_state is state


class TestProbeMirrors:
    @pytest.mark.asyncio()
    @respx.mock
    async def test_selects_working_mirror(self) -> None:
        respx.get(f"{M1}/search").respond(500)
        respx.get(f"{M2}/search").respond(200, json=_payload())
        adapter = _make_adapter()

        probes = await adapter.probe_mirrors()
        await adapter.cleanup()

        assert [p.ok for p in probes] == [False, True]
        assert probes[1].elapsed_ms >= 0
        assert probes[0].error
        assert adapter.mirror_state.current == M2

    @pytest.mark.asyncio()
    @respx.mock
    async def test_nothing_reachable_keeps_pointer(self) -> None:
        respx.get(f"{M1}/search").respond(500)
        respx.get(f"{M2}/search").mock(side_effect=httpx.ConnectError("down"))
        adapter = _make_adapter()

        probes = await adapter.probe_mirrors()
        await adapter.cleanup()

        assert not any(p.ok for p in probes)
        assert adapter.mirror_state.index == 0
