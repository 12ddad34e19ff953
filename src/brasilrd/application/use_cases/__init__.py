from .resolve_streams import ResolveStreamsUseCase
from .season_resolver import SeasonResolver
from .torrent_search import TorrentSearchUseCase

__all__ = ["ResolveStreamsUseCase", "SeasonResolver", "TorrentSearchUseCase"]
