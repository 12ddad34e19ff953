"""Ports for the external collaborators of the resolver."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from brasilrd.domain.entities import CuratedMagnet, StreamQuery


@runtime_checkable
class TitleLookupPort(Protocol):
    """Maps a content id (e.g. ``tt0903747``) to a human-readable title."""

    async def get_title(self, content_id: str) -> str | None:
        ...


@runtime_checkable
class CatalogPort(Protocol):
    """Curated magnet catalog."""

    def find_magnets(self, query: StreamQuery) -> list[CuratedMagnet]:
        """Return curated magnets registered for the query's content id."""
        ...
