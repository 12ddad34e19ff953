"""Domain entities for stream requests and results."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Literal

from .torrents import QualityTier, TorrentStatus

ContentType = Literal["movie", "series"]

_IMDB_ID_RE = re.compile(r"^(tt\d+)")
_EPISODE_ID_RE = re.compile(r"^(tt\d+):(\d+):(\d+)$")


@dataclass(frozen=True)
class StreamQuery:
    """A single stream request. Immutable for the lifetime of the request."""

    content_type: ContentType
    content_id: str
    api_key: str = ""
    season: int | None = None
    episode: int | None = None
    title_hint: str | None = None

    @classmethod
    def from_stremio_id(
        cls,
        content_type: ContentType,
        raw_id: str,
        api_key: str = "",
        title_hint: str | None = None,
    ) -> StreamQuery:
        """Build a query from an add-on style id (``tt123`` or ``tt123:1:2``)."""
        match = _EPISODE_ID_RE.match(raw_id)
        if match is not None:
            return cls(
                content_type=content_type,
                content_id=match.group(1),
                api_key=api_key,
                season=int(match.group(2)),
                episode=int(match.group(3)),
                title_hint=title_hint,
            )
        return cls(
            content_type=content_type,
            content_id=raw_id,
            api_key=api_key,
            title_hint=title_hint,
        )

    @property
    def base_id(self) -> str:
        """IMDb id without any season/episode suffix."""
        match = _IMDB_ID_RE.match(self.content_id)
        return match.group(1) if match else self.content_id.split(":", 1)[0]

    @property
    def wants_episode(self) -> bool:
        return (
            self.content_type == "series"
            and self.season is not None
            and self.episode is not None
        )

    @property
    def cache_id(self) -> str:
        """Identifier used in result cache keys."""
        if self.wants_episode:
            return f"{self.base_id}:{self.season}:{self.episode}"
        return self.base_id

    @property
    def account(self) -> str:
        """Short fingerprint of the API key, used to scope per-account caches."""
        if not self.api_key:
            return ""
        return hashlib.sha256(self.api_key.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class StreamResult:
    """Final, directly playable stream returned to the caller."""

    title: str
    play_url: str
    quality: QualityTier
    name: str
    grouping_key: str
    status: TorrentStatus = TorrentStatus.DOWNLOADED
    filename: str = ""
    description: str = ""
    size_bytes: int = 0
    seeders: int = 0
    provider: str = ""

    @property
    def is_downloaded(self) -> bool:
        return self.status is TorrentStatus.DOWNLOADED


@dataclass(frozen=True)
class CuratedMagnet:
    """Hand-picked magnet registered for a content id."""

    imdb_id: str
    title: str
    magnet: str
    quality: str
    seeds: int = 0
    added_at: str = ""
    category: str = "movie"
    language: str = "pt-BR"
