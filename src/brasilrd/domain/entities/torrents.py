"""Domain entities for torrent discovery and debrid resolution.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_BTIH_RE = re.compile(r"btih:([a-zA-Z0-9]+)", re.IGNORECASE)


class QualityTier(str, Enum):
    """Closed set of quality tiers a candidate can be classified into.

    ``HD`` and ``SD`` are fallback tiers used when no explicit resolution
    marker is present in the release name.
    """

    UHD_2160P = "2160p"
    FHD_1080P = "1080p"
    HD_720P = "720p"
    SD_480P = "480p"
    HD = "HD"
    SD = "SD"

    @property
    def priority(self) -> int:
        """Sort priority for final stream lists (higher = better)."""
        return _TIER_PRIORITY[self]

    @property
    def ranking_weight(self) -> int:
        """Base weight used by the relevance score."""
        return _TIER_WEIGHT[self]


_TIER_PRIORITY: dict[QualityTier, int] = {
    QualityTier.UHD_2160P: 6,
    QualityTier.FHD_1080P: 5,
    QualityTier.HD_720P: 4,
    QualityTier.HD: 3,
    QualityTier.SD_480P: 2,
    QualityTier.SD: 1,
}

_TIER_WEIGHT: dict[QualityTier, int] = {
    QualityTier.UHD_2160P: 400,
    QualityTier.FHD_1080P: 300,
    QualityTier.HD_720P: 200,
    QualityTier.HD: 150,
    QualityTier.SD_480P: 120,
    QualityTier.SD: 100,
}

# Concatenation order of per-tier groups in the ranked output.
TIER_ORDER: tuple[QualityTier, ...] = (
    QualityTier.UHD_2160P,
    QualityTier.FHD_1080P,
    QualityTier.HD_720P,
    QualityTier.HD,
    QualityTier.SD_480P,
    QualityTier.SD,
)


class TorrentStatus(str, Enum):
    """Lifecycle of a torrent submitted to the debrid service.

    ``queued -> downloading -> downloaded``, or ``-> error`` from any state.
    """

    QUEUED = "queued"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    ERROR = "error"

    @classmethod
    def from_api(cls, raw: str | None) -> TorrentStatus:
        """Map a raw debrid status string onto the closed status set."""
        value = (raw or "").strip().lower()
        if value in ("waiting_files_selection", "magnet_conversion", "queued"):
            return cls.QUEUED
        if value in ("downloading", "compressing", "uploading"):
            return cls.DOWNLOADING
        if value == "downloaded":
            return cls.DOWNLOADED
        # magnet_error, virus, dead, error and anything unknown
        return cls.ERROR


def extract_info_hash(magnet_uri: str) -> str | None:
    """Return the lower-cased btih hash of *magnet_uri*, or None."""
    match = _BTIH_RE.search(magnet_uri or "")
    if match is None:
        return None
    return match.group(1).lower()


@dataclass(frozen=True)
class Candidate:
    """A search hit from a source adapter, optionally ranked."""

    title: str
    magnet_uri: str
    provider: str
    quality: QualityTier = QualityTier.HD
    seeders: int = 0
    leechers: int = 0
    size_bytes: int = 0
    language: str = "pt-BR"
    season: int | None = None
    relevance_score: int = 0
    confidence: float = 0.0

    @property
    def info_hash(self) -> str:
        """Natural identity of the torrent (empty when not parseable)."""
        return extract_info_hash(self.magnet_uri) or ""


@dataclass(frozen=True)
class TorrentFile:
    """A file inside a torrent as reported by the debrid service."""

    id: int
    path: str
    bytes: int = 0
    selected: bool = False


@dataclass(frozen=True)
class ResolvedTorrent:
    """Snapshot of a torrent known to the debrid account."""

    external_id: str
    info_hash: str
    status: TorrentStatus
    progress: float = 0.0
    filename: str = ""
    files: tuple[TorrentFile, ...] = ()
    links: tuple[str, ...] = ()

    @property
    def is_ready(self) -> bool:
        return self.status is TorrentStatus.DOWNLOADED

    @property
    def selected_files(self) -> tuple[TorrentFile, ...]:
        return tuple(f for f in self.files if f.selected)


@dataclass(frozen=True)
class ProcessedTorrent:
    """Outcome of submitting a magnet to the debrid service."""

    added: bool
    ready: bool
    status: TorrentStatus
    external_id: str | None = None
    progress: float = 0.0


@dataclass(frozen=True)
class SeasonEntry:
    """Resolved whole-season torrent reused across episode requests."""

    torrent_id: str
    magnet_hash: str
    files: tuple[TorrentFile, ...] = ()
    inserted_at: float = 0.0


@dataclass(frozen=True)
class TitleMatch:
    """Result of matching a release title against a search query."""

    matches: bool
    confidence: float = 0.0
    match_type: str = "none"  # "exact", "partial", "keyword", "none"


@dataclass(frozen=True)
class EpisodeRef:
    """Season/episode pair parsed from a filename."""

    season: int
    episode: int

    def label(self) -> str:
        return f"S{self.season:02d}E{self.episode:02d}"


@dataclass(frozen=True)
class MirrorProbe:
    """Timing of a single indexer mirror health probe."""

    url: str
    ok: bool
    elapsed_ms: float = 0.0
    error: str = ""

