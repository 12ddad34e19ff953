from .cache import CachePort
from .catalog import CatalogPort, TitleLookupPort
from .debrid import DebridPort
from .sources import SourceAdapterPort

__all__ = [
    "CachePort",
    "CatalogPort",
    "DebridPort",
    "SourceAdapterPort",
    "TitleLookupPort",
]
