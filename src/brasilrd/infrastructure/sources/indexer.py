"""Aggregating torrent-indexer API source with sticky mirror failover."""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Sequence
from typing import Any

import httpx

from brasilrd.domain.entities import Candidate, ContentType, MirrorProbe
from brasilrd.infrastructure.config.schema import IndexerConfig

from .base import SourceAdapterBase

AVAILABLE_INDEXERS: tuple[str, ...] = (
    "search",
    "bludv",
    "comando_torrents",
    "torrent-dos-filmes",
    "starck-filmes",
    "rede_torrent",
    "filme_torrent",
    "vaca_torrent",
)

_QUALITY_SCORES: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"4k|2160p", re.IGNORECASE), 100),
    (re.compile(r"1080p", re.IGNORECASE), 80),
    (re.compile(r"720p", re.IGNORECASE), 60),
    (re.compile(r"480p", re.IGNORECASE), 40),
    (re.compile(r"bluray|web-?dl", re.IGNORECASE), 30),
    (re.compile(r"dvdrip", re.IGNORECASE), 20),
)


def _count(value: Any) -> int:
    """Seed/leech count of a result row; anything non-numeric counts as 0."""
    try:
        return max(0, int(float(value or 0)))
    except (TypeError, ValueError, OverflowError):
        return 0


def _quality_score(title: str) -> int:
    for pattern, score in _QUALITY_SCORES:
        if pattern.search(title):
            return score
    return 10


def _season_marker(season: int) -> re.Pattern[str]:
    return re.compile(rf"\b(?:s|temporada|season)\s*0*{season}(?!\d)", re.IGNORECASE)


class MirrorState:
    """Shared, sticky "current mirror" pointer.

    Once a mirror fails the pointer moves on for every later search; it only
    moves back through ``select()`` (e.g. after ``probe_mirrors``).
    """

    def __init__(self, mirrors: Sequence[str]) -> None:
        if not mirrors:
            raise ValueError("MirrorState needs at least one mirror")
        self.mirrors: tuple[str, ...] = tuple(m.rstrip("/") for m in mirrors)
        self._index = 0
        self._lock = asyncio.Lock()

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> str:
        return self.mirrors[self._index]

    async def advance(self, failed_index: int) -> int | None:
        """Move past *failed_index*. Returns the next index, or None if exhausted.

        Concurrent failures of the same mirror advance the pointer only once.
        """
        async with self._lock:
            if self._index == failed_index:
                if failed_index >= len(self.mirrors) - 1:
                    return None
                self._index = failed_index + 1
            elif self._index < failed_index:
                return None
            return self._index

    async def select(self, index: int) -> None:
        async with self._lock:
            self._index = index


class IndexerAdapter(SourceAdapterBase):
    """Queries ``<mirror>/search`` (or ``/indexers/<name>``) and maps results.

    Response schema: ``{"results": [{title, magnet_link, seed_count,
    leech_count, size, date}], "count": N}``.
    """

    def __init__(
        self,
        config: IndexerConfig,
        *,
        user_agent: str = "Brasil-RD-Addon/1.0",
        mirror_state: MirrorState | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            name="indexer",
            timeout=config.timeout_seconds,
            user_agent=user_agent,
            priority=config.priority,
            http_client=http_client,
        )
        self._config = config
        self.mirror_state = mirror_state or MirrorState(config.mirrors)
        self._indexer = config.indexer
        if self._indexer not in self.available_indexers():
            self._log.warning(
                "indexer_unknown", indexer=config.indexer, fallback="search"
            )
            self._indexer = "search"

    def _default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._user_agent,
            "Accept": "application/json",
            "Accept-Language": "pt-BR,pt;q=0.9,en;q=0.8",
        }

    def _endpoint(self, base: str) -> str:
        indexer = self._indexer
        if indexer == "search":
            return f"{base}/search"
        return f"{base}/indexers/{indexer}"

    @staticmethod
    def available_indexers() -> list[str]:
        return list(AVAILABLE_INDEXERS)

    async def _fetch_results(
        self, base: str, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """One request against one mirror. Raises on any failure."""
        client = await self._ensure_client()
        resp = await client.get(self._endpoint(base), params=params)
        resp.raise_for_status()
        data = resp.json()
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ValueError("indexer response without results list")
        return [r for r in results if isinstance(r, dict)]

    def _filter_relevant(
        self,
        results: list[dict[str, Any]],
        query: str,
        target_season: int | None,
    ) -> list[dict[str, Any]]:
        words = [w for w in query.lower().split() if len(w) > 2]
        marker = _season_marker(target_season) if target_season is not None else None

        relevant = []
        for r in results:
            title = str(r.get("title") or "").lower()
            if words and not any(w in title for w in words):
                continue
            if marker is not None and not marker.search(title):
                continue
            relevant.append(r)

        relevant.sort(
            key=lambda r: _quality_score(str(r.get("title") or ""))
            + _count(r.get("seed_count")) / 100,
            reverse=True,
        )
        return relevant[: self._config.limit]

    def _map(self, raw: dict[str, Any], target_season: int | None) -> Candidate | None:
        return self._to_candidate(
            str(raw.get("title") or ""),
            raw.get("magnet_link"),
            seeders=_count(raw.get("seed_count")),
            leechers=_count(raw.get("leech_count")),
            size_text=str(raw.get("size") or ""),
            season=target_season,
        )

    def _map_all(
        self, rows: list[dict[str, Any]], target_season: int | None
    ) -> list[Candidate]:
        candidates: list[Candidate] = []
        for raw in rows:
            try:
                candidate = self._map(raw, target_season)
            except (AttributeError, TypeError, ValueError) as exc:
                self._log.debug(
                    "indexer_row_dropped",
                    title=raw.get("title"),
                    error=str(exc),
                )
                continue
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    async def search(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]:
        params: dict[str, Any] = {
            "q": query.lower(),
            "filter_results": "true",
            "category": "tv" if content_type == "series" else "movies",
        }
        if content_type == "series" and target_season is not None:
            params["season"] = target_season

        index: int | None = self.mirror_state.index
        while index is not None:
            base = self.mirror_state.mirrors[index]
            try:
                results = await self._fetch_results(base, params)
            except Exception as exc:  # noqa: BLE001
                self._log.warning(
                    "indexer_mirror_failed",
                    mirror=base,
                    query=query,
                    error=str(exc) or type(exc).__name__,
                )
                index = await self.mirror_state.advance(index)
                if index is None:
                    self._log.error("indexer_mirrors_exhausted", query=query)
                    return []
                await asyncio.sleep(self._config.failover_delay_seconds)
                continue

            relevant = self._filter_relevant(results, query, target_season)
            candidates = self._map_all(relevant, target_season)
            self._log.info(
                "source_search_complete",
                source=self.name,
                mirror=base,
                query=query,
                results=len(results),
                candidates=len(candidates),
            )
            return candidates
        return []

    async def probe_mirrors(self) -> list[MirrorProbe]:
        """Time a request against every mirror and select the fastest working one."""
        client = await self._ensure_client()
        probes: list[MirrorProbe] = []
        for base in self.mirror_state.mirrors:
            start = time.perf_counter()
            try:
                resp = await client.get(
                    self._endpoint(base), params={"q": "test", "filter_results": "true"}
                )
                resp.raise_for_status()
                probes.append(
                    MirrorProbe(
                        url=base,
                        ok=True,
                        elapsed_ms=(time.perf_counter() - start) * 1000,
                    )
                )
            except httpx.HTTPError as exc:
                probes.append(MirrorProbe(url=base, ok=False, error=str(exc)))

        working = [p for p in probes if p.ok]
        if working:
            fastest = min(working, key=lambda p: p.elapsed_ms)
            await self.mirror_state.select(self.mirror_state.mirrors.index(fastest.url))
            self._log.info(
                "indexer_mirror_selected", mirror=fastest.url, elapsed_ms=fastest.elapsed_ms
            )
        else:
            self._log.error("indexer_no_mirror_reachable")
        return probes
