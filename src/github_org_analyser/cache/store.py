"""
Key/value storage backends for the report cache.

Both backends store text values under string keys and can enforce an
optional byte quota, raising ``StorageQuotaExceeded`` when a write would
exceed it.
"""

from __future__ import annotations

import contextlib
import errno
import hashlib
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Protocol, runtime_checkable

from github_org_analyser.core.exceptions import CacheError, StorageQuotaExceeded

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal text key/value interface used by ``ExpiringCache``."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryStore:
    """In-process store, mainly for tests and short-lived sessions.

    Args:
        max_bytes: Optional quota on the UTF-8 size of all keys and values
    """

    def __init__(self, max_bytes: int | None = None):
        self.max_bytes = max_bytes
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.max_bytes is not None:
            used = self.used_bytes(excluding=key)
            if used + _entry_size(key, value) > self.max_bytes:
                raise StorageQuotaExceeded(key, used_bytes=used, limit_bytes=self.max_bytes)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)

    def used_bytes(self, excluding: str | None = None) -> int:
        return sum(_entry_size(k, v) for k, v in self._items.items() if k != excluding)

    def __len__(self) -> int:
        return len(self._items)


class FileStore:
    """Directory-backed store: one JSON file per key.

    Each file holds ``{"key": ..., "value": ...}``; the file name is a hash of
    the key so arbitrary keys are filesystem-safe. Writes are atomic
    (write-then-rename).

    Args:
        directory: Cache directory. Defaults to ~/.github_org_analyser/cache/
        max_bytes: Optional quota on the total size of all entry files
        logger: Optional logger for unreadable-file warnings
    """

    def __init__(
        self,
        directory: Path | None = None,
        max_bytes: int | None = None,
        logger: logging.Logger | None = None,
    ):
        if directory is None:
            directory = Path.home() / ".github_org_analyser" / "cache"
        self.directory = Path(directory)
        self.max_bytes = max_bytes
        self.logger = logger or logging.getLogger(__name__)

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:40]
        return self.directory / f"{digest}.json"

    def _read_envelope(self, path: Path) -> dict[str, str]:
        with open(path, encoding="utf-8") as f:
            envelope = json.load(f)
        if not isinstance(envelope, dict) or not isinstance(envelope.get("key"), str):
            raise ValueError("missing key")
        return envelope

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            envelope = self._read_envelope(path)
        except (OSError, ValueError) as e:
            raise CacheError("Unreadable cache file", key=key, details=f"{path}: {e}") from e
        if envelope["key"] != key:
            return None
        value = envelope.get("value")
        return value if isinstance(value, str) else None

    def used_bytes(self, excluding: str | None = None) -> int:
        if not self.directory.exists():
            return 0
        skip = self._path_for(excluding) if excluding is not None else None
        total = 0
        for path in self.directory.glob("*.json"):
            if path == skip:
                continue
            with contextlib.suppress(OSError):
                total += path.stat().st_size
        return total

    def set_item(self, key: str, value: str) -> None:
        payload = json.dumps({"key": key, "value": value})
        if self.max_bytes is not None:
            used = self.used_bytes(excluding=key)
            if used + len(payload.encode("utf-8")) > self.max_bytes:
                raise StorageQuotaExceeded(key, used_bytes=used, limit_bytes=self.max_bytes)

        path = self._path_for(key)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceeded(key) from e
            raise CacheError("Failed to write cache file", key=key, details=str(e)) from e

    def remove_item(self, key: str) -> None:
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheError("Failed to remove cache file", key=key, details=str(e)) from e

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        found = []
        for path in sorted(self.directory.glob("*.json")):
            try:
                found.append(self._read_envelope(path)["key"])
            except (OSError, ValueError) as e:
                self.logger.warning(f"Skipping unreadable cache file {path}: {e}")
        return found
