"""Multi-source torrent search.

query -> season variants x adapters (parallel, bounded) -> dedupe/filter/rank.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from typing import Protocol

import structlog

from brasilrd.domain.entities import Candidate, ContentType
from brasilrd.domain.ports.sources import SourceAdapterPort
from brasilrd.infrastructure.matching.title_matcher import (
    season_query_variants,
    strip_season_suffix,
)

log = structlog.get_logger(__name__)


class _Ranker(Protocol):
    def rank(
        self,
        candidates: Iterable[Candidate],
        title: str,
        *,
        target_season: int | None = None,
    ) -> list[Candidate]: ...


class _SearchConfig(Protocol):
    max_concurrent_sources: int
    search_timeout_seconds: float


class TorrentSearchUseCase:
    """Fans a query out over every source adapter and ranks the union.

    A failing or slow adapter contributes nothing; the search itself never
    raises for adapter failures.
    """

    def __init__(
        self,
        *,
        sources: Sequence[SourceAdapterPort],
        ranker: _Ranker,
        config: _SearchConfig,
    ) -> None:
        self._sources = list(sources)
        self._ranker = ranker
        self._max_concurrent = config.max_concurrent_sources
        self._timeout = config.search_timeout_seconds

    @property
    def sources(self) -> list[SourceAdapterPort]:
        return list(self._sources)

    async def execute(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]:
        """Search all sources for *query* and return ranked candidates.

        With a target season, every season query variant is searched and
        titles are matched against the query without its season suffix.
        """
        queries = (
            season_query_variants(query, target_season)
            if target_season is not None
            else [query]
        )
        raw = await self._search_all(queries, content_type, target_season)
        ranked = self._ranker.rank(
            raw, strip_season_suffix(query), target_season=target_season
        )
        log.info(
            "torrent_search_complete",
            query=query,
            content_type=content_type,
            season=target_season,
            variants=len(queries),
            raw=len(raw),
            ranked=len(ranked),
        )
        return ranked

    async def _search_all(
        self,
        queries: list[str],
        content_type: ContentType,
        target_season: int | None,
    ) -> list[Candidate]:
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _search_one(source: SourceAdapterPort, q: str) -> list[Candidate]:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        source.search(q, content_type, target_season),
                        timeout=self._timeout,
                    )
                except TimeoutError:
                    log.warning(
                        "source_timeout",
                        source=source.name,
                        query=q,
                        timeout=self._timeout,
                    )
                except Exception:  # noqa: BLE001
                    log.warning(
                        "source_search_error", source=source.name, query=q, exc_info=True
                    )
                return []

        tasks = [_search_one(source, q) for q in queries for source in self._sources]
        results_per_task = await asyncio.gather(*tasks)

        all_results: list[Candidate] = []
        for results in results_per_task:
            all_results.extend(results)
        return all_results
