from .streams import ContentType, CuratedMagnet, StreamQuery, StreamResult
from .torrents import (
    TIER_ORDER,
    Candidate,
    EpisodeRef,
    MirrorProbe,
    ProcessedTorrent,
    QualityTier,
    ResolvedTorrent,
    SeasonEntry,
    TitleMatch,
    TorrentFile,
    TorrentStatus,
    extract_info_hash,
)

__all__ = [
    "TIER_ORDER",
    "Candidate",
    "ContentType",
    "CuratedMagnet",
    "EpisodeRef",
    "MirrorProbe",
    "ProcessedTorrent",
    "QualityTier",
    "ResolvedTorrent",
    "SeasonEntry",
    "StreamQuery",
    "StreamResult",
    "TitleMatch",
    "TorrentFile",
    "TorrentStatus",
    "extract_info_hash",
]
