"""Shared base class for httpx-based source adapters.

Bundles client lifecycle, safe fetch/parse and the mapping from a raw
search hit to a ``Candidate``.  Subclasses only implement ``search()``.
"""

from __future__ import annotations

import asyncio
import json
import re

import httpx
import structlog

from brasilrd.domain.entities import Candidate, ContentType
from brasilrd.infrastructure.common.magnet import is_valid_magnet
from brasilrd.infrastructure.matching.release_parser import (
    detect_language,
    detect_quality,
    estimate_seeders,
    parse_size,
)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_CONCURRENT = 4

_BRACKETS_RE = re.compile(r"\[[^\]]*\]")


def clean_title(title: str) -> str:
    """Collapse whitespace and drop ``[tags]`` from a scraped title."""
    return " ".join(_BRACKETS_RE.sub(" ", title).split())


class SourceAdapterBase:
    """Shared base for httpx-based source adapters.

    Subclasses **must** override ``search()`` and must never let an
    exception escape it.
    """

    def __init__(
        self,
        *,
        name: str,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        priority: int = 1,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.name = name
        self.priority = priority
        self._timeout = timeout
        self._user_agent = user_agent
        self._max_concurrent = max_concurrent
        self._client = http_client
        self._owns_client = http_client is None
        self._log = structlog.get_logger(f"brasilrd.sources.{name}")

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    def _default_headers(self) -> dict[str, str]:
        return {"User-Agent": self._user_agent}

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Create httpx client if not already running."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                headers=self._default_headers(),
            )
            self._owns_client = True
        return self._client

    async def cleanup(self) -> None:
        """Close the httpx client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------

    async def _safe_fetch(
        self,
        url: str,
        *,
        context: str = "",
        **kwargs: object,
    ) -> httpx.Response | None:
        """GET *url* with structured error logging.

        Returns ``None`` on failure instead of raising.
        """
        client = await self._ensure_client()
        try:
            resp = await client.get(url, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.TimeoutException:
            self._log.warning("source_timeout", source=self.name, url=url, context=context)
        except httpx.HTTPStatusError as exc:
            self._log.warning(
                "source_http_error",
                source=self.name,
                url=url,
                status=exc.response.status_code,
                context=context,
            )
        except httpx.HTTPError as exc:
            self._log.warning(
                "source_fetch_error",
                source=self.name,
                url=url,
                error=str(exc),
                context=context,
            )
        return None

    def _safe_parse_json(
        self,
        response: httpx.Response,
        context: str = "",
    ) -> dict | list | None:
        """Parse JSON response with structured error logging."""
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            self._log.warning(
                "source_invalid_json",
                source=self.name,
                url=str(response.url),
                context=context,
            )
            return None

    def _new_semaphore(self) -> asyncio.Semaphore:
        """Create a bounded semaphore for concurrent detail scraping."""
        return asyncio.Semaphore(self._max_concurrent)

    def _to_candidate(
        self,
        title: str,
        magnet: str | None,
        *,
        seeders: int | None = None,
        leechers: int = 0,
        size_text: str | None = None,
        season: int | None = None,
    ) -> Candidate | None:
        """Map a raw hit to a Candidate; None when the magnet is unusable."""
        if not magnet or not is_valid_magnet(magnet):
            self._log.debug("source_hit_without_magnet", source=self.name, title=title)
            return None
        title = clean_title(title)
        quality = detect_quality(title)
        return Candidate(
            title=title,
            magnet_uri=magnet,
            provider=self.name,
            quality=quality,
            seeders=seeders if seeders else estimate_seeders(self.name, quality),
            leechers=leechers,
            size_bytes=parse_size(size_text),
            language=detect_language(title),
            season=season,
        )

    # ------------------------------------------------------------------
    # Abstract search (subclass must implement)
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]:
        """Search the source and return candidates.

        Subclasses **must** override this method.
        """
        raise NotImplementedError(f"{type(self).__name__}.search() not implemented")
