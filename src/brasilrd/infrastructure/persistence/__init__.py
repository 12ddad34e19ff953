from .season_cache import SeasonCacheRepository
from .stream_cache import StreamCacheRepository, stream_cache_key
from .torrent_cache import TorrentCacheRepository

__all__ = [
    "SeasonCacheRepository",
    "StreamCacheRepository",
    "TorrentCacheRepository",
    "stream_cache_key",
]
