"""Read-through TTL cache over the reference read model."""

from __future__ import annotations

import threading
import time
from typing import Callable

from .interfaces import ReferenceNotFound, ReferenceReadModelPort


class ReadThroughReferenceCache(ReferenceReadModelPort):
    """Thread-safe TTL cache wrapping a reference read model.

    Not-found results are cached like values so repeated misses for unknown
    codes do not hit the reference store. Failures are never cached.
    """

    def __init__(
        self,
        read_model: ReferenceReadModelPort,
        ttl_seconds: float = 300.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize the cache.

        Args:
            read_model: Underlying reference read model.
            ttl_seconds: Entry time-to-live.
            max_entries: Upper bound on cached entries; oldest entries are evicted first.
            clock: Optional monotonic clock override.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when configuration values are invalid.
        """

        if read_model is None:
            raise ValueError("read_model must not be None")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")

        self._read_model = read_model
        self._ttl_seconds = float(ttl_seconds)
        self._max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: dict[tuple[str, str], tuple[str | ReferenceNotFound, float]] = {}
        self._lock = threading.Lock()
        self.cache_hits = 0
        self.cache_misses = 0

    def reference_lookup(self, entity_type: str, key: str) -> str | ReferenceNotFound:
        """Return a cached value or fetch it synchronously on miss.

        Args:
            entity_type: Reference entity kind.
            key: Reference code.

        Returns:
            str | ReferenceNotFound: Resolved value or not-found marker.

        Raises:
            ConnectionError: Propagated from the read model on miss.
        """

        cache_key = (entity_type, key)
        now = self._clock()
        with self._lock:
            cached_entry = self._entries.get(cache_key)
            if cached_entry is not None and cached_entry[1] > now:
                self.cache_hits += 1
                return cached_entry[0]
            self.cache_misses += 1

        value = self._read_model.reference_lookup(entity_type, key)

        with self._lock:
            self._entries.pop(cache_key, None)
            if len(self._entries) >= self._max_entries:
                self._cache_evict_locked(now)
            self._entries[cache_key] = (value, self._clock() + self._ttl_seconds)
        return value

    def cache_size(self) -> int:
        """Return the number of cached entries, expired ones included."""

        with self._lock:
            return len(self._entries)

    def _cache_evict_locked(self, now: float) -> None:
        expired_keys = [cache_key for cache_key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for cache_key in expired_keys:
            del self._entries[cache_key]
        while len(self._entries) >= self._max_entries:
            del self._entries[next(iter(self._entries))]
