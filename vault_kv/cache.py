import logging
import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from cachetools import LRUCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class TTLCache:
    """
    Key/value cache with a time-to-live on every entry.

    Thread-safe cache used for directory listings and secret values.
    Expired entries are dropped lazily on access, or in bulk by
    purge_expired(). Entries are never mutated, only replaced.

    When max_entries is given the backing map is a cachetools.LRUCache,
    so the least recently used entry is evicted once the bound is hit.
    """

    def __init__(
        self,
        default_ttl: float,
        max_entries: int | None = None,
        timer: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self.name = name
        self._timer = timer
        self._cache: dict[str, CacheEntry] | LRUCache
        if max_entries:
            self._cache = LRUCache(maxsize=max_entries)
        else:
            self._cache = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """
        Retrieve a value if cached and not expired.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value if present and live, else None.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                logger.debug("%s miss: %s", self.name, key)
                return None
            if entry.is_expired(self._timer()):
                # Entry expired, remove it
                del self._cache[key]
                logger.debug("%s expired: %s", self.name, key)
                return None
            logger.debug("%s hit: %s", self.name, key)
            return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Cache a value, replacing any existing entry.

        Args:
            key: The cache key.
            value: The value to cache.
            ttl: Seconds the entry stays live (defaults to default_ttl).
        """
        if ttl is None:
            ttl = self.default_ttl
        with self._lock:
            self._cache[key] = CacheEntry(value=value, stored_at=self._timer(), ttl=ttl)
        logger.debug("%s set: %s (ttl=%ss)", self.name, key, ttl)

    def has(self, key: str) -> bool:
        """Check for a live entry without returning it."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._timer()):
                del self._cache[key]
                return False
            return True

    def invalidate(self, key: str) -> None:
        """
        Remove a single entry.

        Args:
            key: The cache key to invalidate.
        """
        with self._lock:
            removed = self._cache.pop(key, None)
        if removed is not None:
            logger.debug("%s invalidated: %s", self.name, key)

    def invalidate_pattern(self, pattern: str | re.Pattern) -> int:
        """
        Remove every entry whose key matches.

        Args:
            pattern: A compiled regex (matched with search) or a plain
                string, which is treated as a literal key prefix.

        Returns:
            Number of entries removed.
        """
        if isinstance(pattern, str):
            prefix = pattern

            def matches(key: str) -> bool:
                return key.startswith(prefix)

        else:

            def matches(key: str) -> bool:
                return pattern.search(key) is not None

        with self._lock:
            to_remove = [k for k in self._cache if matches(k)]
            for k in to_remove:
                del self._cache[k]

        if to_remove:
            logger.debug(
                "%s invalidated %d entries matching %r", self.name, len(to_remove), pattern
            )
        return len(to_remove)

    def clear(self) -> None:
        """Clear the entire cache."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
        logger.debug("%s cleared (%d entries removed)", self.name, count)

    def purge_expired(self) -> int:
        """
        Remove all entries whose TTL has elapsed.

        get() and has() only evict the entry they touch; this sweeps the
        rest.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._timer()
            expired = [k for k, entry in self._cache.items() if entry.is_expired(now)]
            for k in expired:
                del self._cache[k]

        if expired:
            logger.debug("%s purged %d expired entries", self.name, len(expired))
        return len(expired)

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet evicted."""
        with self._lock:
            return len(self._cache)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._cache.keys())
