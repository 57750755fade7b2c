"""
Expiring report cache.

Entries are stored as JSON text ``{"data": ..., "timestamp": ..., "expiresAt": ...}``
(epoch milliseconds) under the key ``<namespace>-<org>-<reportType>``.
Caching is an optimization only: storage failures are logged and never
raised to the caller.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from github_org_analyser.cache.store import KeyValueStore, MemoryStore
from github_org_analyser.core.constants import CACHE_NAMESPACE, MS_PER_HOUR
from github_org_analyser.core.exceptions import CacheError, StorageQuotaExceeded


def escape_key_part(value: str) -> str:
    """Percent-escape ``%`` and ``-`` so the joined key splits unambiguously."""
    return value.replace("%", "%25").replace("-", "%2D")


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with its creation and expiry times (epoch ms).

    Attributes:
        data: Opaque JSON-compatible payload
        timestamp: Creation time
        expires_at: Expiry time; the entry is dead once now > expires_at
    """

    data: Any
    timestamp: int
    expires_at: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.expires_at

    def to_json(self) -> str:
        return json.dumps({"data": self.data, "timestamp": self.timestamp, "expiresAt": self.expires_at})

    @classmethod
    def from_json(cls, text: str) -> CacheEntry:
        """Parse stored text.

        Raises:
            ValueError: If the text is not a well-formed entry
        """
        raw = json.loads(text)
        if not isinstance(raw, dict) or "data" not in raw:
            raise ValueError("cache entry is not an object with 'data'")
        timestamp, expires_at = raw.get("timestamp"), raw.get("expiresAt")
        for name, value in (("timestamp", timestamp), ("expiresAt", expires_at)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"cache entry has invalid '{name}'")
        return cls(data=raw["data"], timestamp=int(timestamp), expires_at=int(expires_at))


class ExpiringCache:
    """TTL cache of report payloads keyed by ``(org, report_type)``.

    Args:
        store: Backing key/value store (default: a fresh ``MemoryStore``)
        namespace: Key prefix shared by every entry this cache owns
        clock: Returns the current time in seconds since the epoch
        logger: Logger instance
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        namespace: str = CACHE_NAMESPACE,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self.store = store if store is not None else MemoryStore()
        self.namespace = namespace
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self._hits = 0
        self._misses = 0

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def cache_key(self, org: str, report_type: str) -> str:
        return f"{self.namespace}-{escape_key_part(org)}-{escape_key_part(report_type)}"

    def _org_prefix(self, org: str) -> str:
        return f"{self.namespace}-{escape_key_part(org)}-"

    def _namespace_keys(self) -> list[str]:
        prefix = f"{self.namespace}-"
        try:
            return [key for key in self.store.keys() if key.startswith(prefix)]
        except CacheError as e:
            self.logger.error(f"Failed to list cache entries: {e}")
            return []

    def _remove(self, key: str) -> bool:
        try:
            self.store.remove_item(key)
        except CacheError as e:
            self.logger.error(f"Failed to remove cache entry {key}: {e}")
            return False
        return True

    def put(self, org: str, report_type: str, payload: Any, ttl_hours: float) -> bool:
        """Store ``payload`` for ``ttl_hours``. Never raises on storage failure.

        Returns:
            True if the entry was written
        """
        if ttl_hours <= 0:
            raise ValueError(f"ttl_hours must be positive, got {ttl_hours!r}")

        key = self.cache_key(org, report_type)
        now = self._now_ms()
        entry = CacheEntry(data=payload, timestamp=now, expires_at=now + int(ttl_hours * MS_PER_HOUR))
        try:
            text = entry.to_json()
        except (TypeError, ValueError) as e:
            self.logger.error(f"Cannot cache {key}: payload is not JSON-serializable ({e})")
            return False

        try:
            self.store.set_item(key, text)
        except StorageQuotaExceeded as e:
            self.logger.warning(f"Cache storage full while writing {key} ({e}); clearing expired entries")
            removed = self.sweep_expired()
            self.logger.warning(f"Dropped cache write for {key} after clearing {removed} expired entries")
            return False
        except CacheError as e:
            self.logger.error(f"Failed to write cache entry {key}: {e}")
            return False

        self.logger.debug(f"Cached {key} until {entry.expires_at}")
        return True

    def get_entry(self, org: str, report_type: str) -> CacheEntry | None:
        """Live entry for ``(org, report_type)``; expired or corrupt entries are deleted."""
        key = self.cache_key(org, report_type)
        try:
            text = self.store.get_item(key)
        except CacheError as e:
            self.logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            self._remove(key)
            text = None
        if text is None:
            self._misses += 1
            return None

        try:
            entry = CacheEntry.from_json(text)
        except ValueError as e:
            self.logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            self._remove(key)
            self._misses += 1
            return None

        if entry.is_expired(self._now_ms()):
            self.logger.debug(f"Cache entry {key} expired; removing")
            self._remove(key)
            self._misses += 1
            return None

        self._hits += 1
        return entry

    def get(self, org: str, report_type: str) -> Any | None:
        entry = self.get_entry(org, report_type)
        return entry.data if entry is not None else None

    def invalidate(self, org: str, report_type: str) -> None:
        self._remove(self.cache_key(org, report_type))

    def sweep_expired(self) -> int:
        """Delete every expired or unparseable entry in this namespace.

        Returns:
            Number of entries removed
        """
        now = self._now_ms()
        removed = 0
        for key in self._namespace_keys():
            try:
                text = self.store.get_item(key)
                expired = text is not None and CacheEntry.from_json(text).is_expired(now)
            except (CacheError, ValueError):
                expired = True
            if expired and self._remove(key):
                removed += 1
        if removed:
            self.logger.info(f"Removed {removed} expired cache entries")
        return removed

    def invalidate_all(self, org: str) -> int:
        """Delete every entry for ``org`` regardless of report type."""
        prefix = self._org_prefix(org)
        removed = sum(1 for key in self._namespace_keys() if key.startswith(prefix) and self._remove(key))
        self.logger.debug(f"Invalidated {removed} cache entries for {org}")
        return removed

    def get_stats(self) -> dict[str, Any]:
        return {
            "entries": len(self._namespace_keys()),
            "hits": self._hits,
            "misses": self._misses,
            "namespace": self.namespace,
        }
