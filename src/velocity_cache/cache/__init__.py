from velocity_cache.cache.disabled_store import DisabledCacheStore
from velocity_cache.cache.factory import create_cache_store
from velocity_cache.cache.file_store import FileCacheStore
from velocity_cache.cache.protocol import CacheStore
from velocity_cache.cache.remember import cached, remember, remember_forever
from velocity_cache.cache.scoped import ScopedCache, client_ip
from velocity_cache.cache.sqlite_store import SqliteCacheStore

__all__ = [
    "CacheStore",
    "DisabledCacheStore",
    "FileCacheStore",
    "ScopedCache",
    "SqliteCacheStore",
    "cached",
    "client_ip",
    "create_cache_store",
    "remember",
    "remember_forever",
]
