"""Release cache storage and the guarded transaction around it.

Two pieces live here:
- ReleaseStore: the narrow get/set/delete interface of the backing
  key/value store, with InMemoryReleaseStore as the default (per-key TTL,
  no persistence)
- ReleaseCache: the single place that reads and writes the release
  collection. All read-modify-write sequences go through
  ReleaseCache.transaction(), which holds one process-wide lock from the
  read to the write so the fetch path and the webhook path cannot
  overwrite each other with stale copies.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Protocol

from release_notes.logging_config import get_logger
from release_notes.schemas import Release

logger = get_logger(__name__)

RELEASES_KEY = "releases"


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class ReleaseStore(Protocol):
    """Key/value store holding opaque values with its own expiry policy."""

    def get(self, key: str) -> object | None:
        """Return the value stored under key, or None if absent or expired."""
        ...

    def set(self, key: str, value: object) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


# ---------------------------------------------------------------------------
# In-memory Implementation
# ---------------------------------------------------------------------------


@dataclass
class _Entry:
    value: object
    expires_at: float | None


class InMemoryReleaseStore:
    """Thread-safe in-process store with a default time-to-live.

    Usage:
        store = InMemoryReleaseStore(default_ttl=3600)
        store.set("releases", releases)

    A default_ttl of None (or 0) keeps entries until they are overwritten
    or deleted. Expired entries are dropped lazily on read.
    """

    def __init__(
        self,
        default_ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl or None
        self._clock = clock
        self._items: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return None
            if entry.expires_at is not None and self._clock() >= entry.expires_at:
                del self._items[key]
                return None
            return entry.value

    def set(self, key: str, value: object, ttl: float | None = None) -> None:
        ttl = ttl or self._default_ttl
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._items[key] = _Entry(value=value, expires_at=expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


# ---------------------------------------------------------------------------
# Guarded Release Cache
# ---------------------------------------------------------------------------


@dataclass
class CacheTransaction:
    """Working copy of the cached collection inside a transaction.

    Assign a new list to `releases` to have it committed when the
    transaction block exits without an exception.
    """

    releases: list[Release] = field(default_factory=list)
    dirty: bool = False

    def replace(self, releases: list[Release]) -> None:
        self.releases = releases
        self.dirty = True


class ReleaseCache:
    """Typed, lock-guarded view of the release collection in a ReleaseStore."""

    def __init__(self, store: ReleaseStore, key: str = RELEASES_KEY) -> None:
        self._store = store
        self._key = key
        self._lock = threading.Lock()

    def read(self) -> list[Release]:
        """Return a shallow copy of the cached collection.

        A missing entry reads as empty. So does an entry of the wrong type,
        which is logged rather than raised.
        """
        cached = self._store.get(self._key)
        if cached is None:
            return []
        if not isinstance(cached, list) or not all(
            isinstance(item, Release) for item in cached
        ):
            logger.error(
                "release_cache_type_mismatch",
                key=self._key,
                cached_type=type(cached).__name__,
            )
            return []
        return list(cached)

    @contextmanager
    def transaction(self) -> Iterator[CacheTransaction]:
        """Hold the cache lock across read, compute and write.

        Usage:
            with cache.transaction() as txn:
                txn.replace([new_release, *txn.releases])

        The new collection is written only if the block calls replace()
        and exits normally.
        """
        with self._lock:
            txn = CacheTransaction(releases=self.read())
            yield txn
            if txn.dirty:
                self._store.set(self._key, txn.releases)
                logger.debug(
                    "release_cache_written", key=self._key, count=len(txn.releases)
                )

    def invalidate(self) -> None:
        """Drop the cached collection so the next query refetches it."""
        with self._lock:
            self._store.delete(self._key)
        logger.info("release_cache_invalidated", key=self._key)
