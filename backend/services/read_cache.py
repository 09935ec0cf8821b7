"""Side read-through cache for list and report reads.

Keys are plain strings grouped by prefix (``"units:"``,
``"stock_elements:"``). Ledger writes invalidate their prefix after
commit. The cache is an optimization only: nothing in the ledger reads
from it when validating a write.
"""

import logging
import threading
import time
from typing import Any, Callable

from config import settings

logger = logging.getLogger(__name__)


class ReadCache:
    """Thread-safe TTL cache."""

    def __init__(self, ttl_seconds: int | None = None):
        self._ttl_override = ttl_seconds
        self._lock = threading.Lock()
        self._store: dict[str, tuple[float, Any]] = {}
        # bumped by invalidate; a load that spans a bump is not stored
        self._generations: dict[str, int] = {}

    @property
    def ttl(self) -> int:
        if self._ttl_override is not None:
            return self._ttl_override
        return settings.READ_CACHE_TTL_SECONDS

    def get(self, key: str) -> Any | None:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at < time.monotonic():
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl <= 0:
            return
        with self._lock:
            self._store[key] = (time.monotonic() + self.ttl, value)

    def get_or_set(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key`` or load, store and return it.

        If ``key`` is invalidated while ``loader`` runs, the loaded value is
        returned but not stored, since it may predate the write that caused
        the invalidation.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        with self._lock:
            generation = self._generation(key)
        value = loader()
        if self.ttl <= 0:
            return value
        with self._lock:
            if self._generation(key) == generation:
                self._store[key] = (time.monotonic() + self.ttl, value)
                return value
        logger.debug("Discarded read of %r invalidated during load", key)
        return value

    def invalidate(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``. Returns the count removed."""
        with self._lock:
            self._generations[prefix] = self._generations.get(prefix, 0) + 1
            stale = [k for k in self._store if k.startswith(prefix)]
            for k in stale:
                del self._store[k]
        if stale:
            logger.debug("Invalidated %d cached reads under %r", len(stale), prefix)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def _generation(self, key: str) -> int:
        """Sum of invalidation counts for every prefix of ``key``. Caller holds the lock."""
        return sum(
            count for prefix, count in self._generations.items() if key.startswith(prefix)
        )


read_cache = ReadCache()
