"""WordPress REST posts API source (``/wp-json/wp/v2/posts``)."""

from __future__ import annotations

from typing import Any

import httpx
from bs4 import BeautifulSoup

from brasilrd.domain.entities import Candidate, ContentType
from brasilrd.infrastructure.common.magnet import extract_magnet, is_valid_magnet
from brasilrd.infrastructure.config.schema import SiteConfig

from .base import DEFAULT_USER_AGENT, SourceAdapterBase

_PER_PAGE = 50


def _rendered(post: dict[str, Any], field: str) -> str:
    value = post.get(field)
    if isinstance(value, dict):
        return str(value.get("rendered") or "")
    return str(value or "")


def _magnet_from_content(html: str) -> str | None:
    """Longest named magnet among anchors and raw markup of a post body."""
    soup = BeautifulSoup(html, "html.parser")
    hrefs = [str(a.get("href", "")) for a in soup.select('a[href^="magnet:"]')]
    magnet = extract_magnet(" ".join(hrefs) + " " + html)
    if magnet and is_valid_magnet(magnet):
        return magnet
    return None


class WordPressPostsAdapter(SourceAdapterBase):
    """Queries the posts API and pulls magnets out of ``content.rendered``."""

    def __init__(
        self,
        site: SiteConfig,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            name=site.name,
            timeout=site.timeout_seconds,
            user_agent=user_agent,
            priority=site.priority,
            http_client=http_client,
        )
        self.base_url = site.base_url.rstrip("/")

    def _post_to_candidate(
        self, post: dict[str, Any], target_season: int | None
    ) -> Candidate | None:
        title = BeautifulSoup(_rendered(post, "title"), "html.parser").get_text(
            " ", strip=True
        )
        if not title:
            return None
        content = _rendered(post, "content")
        size_text = BeautifulSoup(content, "html.parser").get_text(" ", strip=True)
        return self._to_candidate(
            title,
            _magnet_from_content(content),
            size_text=size_text,
            season=target_season,
        )

    async def search(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]:
        url = f"{self.base_url}/wp-json/wp/v2/posts"
        params = {"search": query, "per_page": _PER_PAGE}
        try:
            resp = await self._safe_fetch(url, params=params, context="posts")
            if resp is None:
                return []
            data = self._safe_parse_json(resp, context="posts")
            if not isinstance(data, list):
                return []

            candidates: list[Candidate] = []
            for post in data:
                if not isinstance(post, dict):
                    continue
                candidate = self._post_to_candidate(post, target_season)
                if candidate is not None:
                    candidates.append(candidate)
        except Exception:  # noqa: BLE001
            self._log.warning(
                "source_search_failed", source=self.name, query=query, exc_info=True
            )
            return []

        self._log.info(
            "source_search_complete",
            source=self.name,
            query=query,
            posts=len(data),
            candidates=len(candidates),
        )
        return candidates
