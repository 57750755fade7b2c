"""Report cache: key/value stores and the expiring cache built on them."""

from github_org_analyser.cache.store import FileStore, KeyValueStore, MemoryStore
from github_org_analyser.cache.expiring import CacheEntry, ExpiringCache, escape_key_part

__all__ = [
    "CacheEntry",
    "ExpiringCache",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "escape_key_part",
]
