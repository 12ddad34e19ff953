"""Port for the debrid (torrent unrestriction) service."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol, runtime_checkable

from brasilrd.domain.entities import ProcessedTorrent, ResolvedTorrent


@runtime_checkable
class DebridPort(Protocol):
    """Async interface to a debrid account.

    Every method may raise a ``DebridError`` subclass except the
    ``get_stream_link_*`` helpers, which return None on any failure.
    """

    async def add_magnet(self, magnet_uri: str) -> str:
        """Submit a magnet. Returns the debrid torrent id."""
        ...

    async def get_torrent_info(self, torrent_id: str) -> ResolvedTorrent:
        ...

    async def select_files(
        self, torrent_id: str, file_ids: Sequence[int] | Literal["all"] = "all"
    ) -> None:
        ...

    async def unrestrict_link(self, link: str) -> str:
        """Convert an internal hoster link into a direct download URL."""
        ...

    async def find_existing_torrent(self, info_hash: str) -> ResolvedTorrent | None:
        ...

    async def get_stream_link_for_file(
        self, torrent_id: str, file_id: int
    ) -> str | None:
        ...

    async def process_torrent(self, magnet_uri: str) -> ProcessedTorrent:
        ...

    async def aclose(self) -> None:
        ...
