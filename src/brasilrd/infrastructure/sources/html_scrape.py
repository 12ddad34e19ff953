"""HTML search-page scraper with per-site CSS selectors."""

from __future__ import annotations

import asyncio
from urllib.parse import quote_plus, urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from brasilrd.domain.entities import Candidate, ContentType
from brasilrd.infrastructure.common.magnet import extract_magnet, is_valid_magnet
from brasilrd.infrastructure.config.schema import SiteConfig

from .base import DEFAULT_USER_AGENT, SourceAdapterBase

_MIN_TITLE_LENGTH = 5


def _magnet_from_soup(soup: BeautifulSoup | Tag) -> str | None:
    """First valid ``a[href^=magnet:]`` link, then any magnet in the markup."""
    for anchor in soup.select('a[href^="magnet:"]'):
        href = str(anchor.get("href", ""))
        if is_valid_magnet(href):
            return href
    return extract_magnet(str(soup))


class HtmlScrapeAdapter(SourceAdapterBase):
    """Scrapes a WordPress-style search page and follows item detail pages.

    Flow: GET ``<base><search_path><query>`` -> select items -> for each
    item, take a magnet from the item markup or fetch its detail page.
    """

    def __init__(
        self,
        site: SiteConfig,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        max_concurrent: int = 4,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            name=site.name,
            timeout=site.timeout_seconds,
            user_agent=user_agent,
            max_concurrent=max_concurrent,
            priority=site.priority,
            http_client=http_client,
        )
        self._site = site
        self.base_url = site.base_url.rstrip("/")

    def _search_url(self, query: str) -> str:
        return f"{self.base_url}{self._site.search_path}{quote_plus(query)}"

    def _parse_items(self, soup: BeautifulSoup) -> list[tuple[str, str | None, Tag]]:
        """(title, detail href, item tag) for every usable search item."""
        items: list[tuple[str, str | None, Tag]] = []
        for item in soup.select(self._site.item_selector):
            title_el = item.select_one(self._site.title_selector)
            if title_el is None:
                continue
            title = title_el.get_text(" ", strip=True)
            if len(title) < _MIN_TITLE_LENGTH:
                continue
            href = title_el.get("href")
            if not href:
                link_el = item.select_one(self._site.link_selector)
                href = link_el.get("href") if link_el is not None else None
            detail = urljoin(self.base_url + "/", str(href)) if href else None
            items.append((title, detail, item))
        return items

    async def _resolve_item(
        self,
        title: str,
        href: str | None,
        item: Tag,
        sem: asyncio.Semaphore,
        target_season: int | None,
    ) -> Candidate | None:
        magnet = _magnet_from_soup(item)
        if magnet is None and href:
            async with sem:
                resp = await self._safe_fetch(href, context="detail")
            if resp is None:
                return None
            magnet = _magnet_from_soup(BeautifulSoup(resp.text, "html.parser"))
        return self._to_candidate(
            title,
            magnet,
            size_text=item.get_text(" ", strip=True),
            season=target_season,
        )

    async def search(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]:
        try:
            resp = await self._safe_fetch(self._search_url(query), context="search")
            if resp is None:
                return []
            soup = BeautifulSoup(resp.text, "html.parser")
            items = self._parse_items(soup)
            sem = self._new_semaphore()
            resolved = await asyncio.gather(
                *(
                    self._resolve_item(title, href, item, sem, target_season)
                    for title, href, item in items
                )
            )
        except Exception:  # noqa: BLE001
            self._log.warning(
                "source_search_failed", source=self.name, query=query, exc_info=True
            )
            return []

        candidates = [c for c in resolved if c is not None]
        self._log.info(
            "source_search_complete",
            source=self.name,
            query=query,
            items=len(items),
            candidates=len(candidates),
        )
        return candidates
