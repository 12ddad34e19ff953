"""Cache backends behind ``CachePort``."""

from .cache_factory import CacheBackend, create_cache, create_cache_from_config
from .diskcache_adapter import DiskcacheAdapter
from .memory_adapter import CacheEntry, MemoryCacheAdapter
from .redis_adapter import RedisAdapter

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "DiskcacheAdapter",
    "MemoryCacheAdapter",
    "RedisAdapter",
    "create_cache",
    "create_cache_from_config",
]
