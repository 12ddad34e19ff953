"""Builds the configured source adapters."""

from __future__ import annotations

import httpx
import structlog

from brasilrd.infrastructure.config.schema import SourcesConfig

from .base import SourceAdapterBase
from .html_scrape import HtmlScrapeAdapter
from .indexer import IndexerAdapter, MirrorState
from .wordpress import WordPressPostsAdapter

log = structlog.get_logger(__name__)


def build_sources(
    config: SourcesConfig,
    *,
    api_user_agent: str = "Brasil-RD-Addon/1.0",
    mirror_state: MirrorState | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> list[SourceAdapterBase]:
    """Instantiate one adapter per enabled site plus the indexer.

    Adapters are returned in descending priority order.
    """
    adapters: list[SourceAdapterBase] = []
    for site in config.sites:
        if not site.enabled:
            continue
        if site.kind == "wordpress":
            adapters.append(
                WordPressPostsAdapter(
                    site, user_agent=config.user_agent, http_client=http_client
                )
            )
        else:
            adapters.append(
                HtmlScrapeAdapter(
                    site,
                    user_agent=config.user_agent,
                    max_concurrent=config.max_detail_pages,
                    http_client=http_client,
                )
            )

    if config.indexer.enabled and config.indexer.mirrors:
        adapters.append(
            IndexerAdapter(
                config.indexer,
                user_agent=api_user_agent,
                mirror_state=mirror_state,
                http_client=http_client,
            )
        )

    adapters.sort(key=lambda a: a.priority, reverse=True)
    log.info("sources_built", sources=[a.name for a in adapters])
    return adapters
