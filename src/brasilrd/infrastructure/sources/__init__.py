from .base import SourceAdapterBase, clean_title
from .factory import build_sources
from .html_scrape import HtmlScrapeAdapter
from .indexer import IndexerAdapter, MirrorState
from .wordpress import WordPressPostsAdapter

__all__ = [
    "HtmlScrapeAdapter",
    "IndexerAdapter",
    "MirrorState",
    "SourceAdapterBase",
    "WordPressPostsAdapter",
    "build_sources",
    "clean_title",
]
