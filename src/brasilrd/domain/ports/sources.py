"""Port for torrent search sources."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from brasilrd.domain.entities import Candidate, ContentType


@runtime_checkable
class SourceAdapterPort(Protocol):
    """A single external search origin (scraped site or indexer API).

    ``search`` must never raise: failures contribute zero candidates.
    """

    name: str

    async def search(
        self,
        query: str,
        content_type: ContentType = "movie",
        target_season: int | None = None,
    ) -> list[Candidate]:
        ...

    async def cleanup(self) -> None:
        ...
