"""Per-entity mutual exclusion for ledger writes.

A registry of locks keyed by entity identity. Two writers on the same
unit or stock element serialize; writers on different entities never
share a lock. Entries are reference-counted and dropped once nobody
holds or waits on them, so the registry does not grow with the number of
entities ever touched.

This works for a single process with many worker threads. Cross-process
deployments additionally rely on the row lock taken with
``SELECT ... FOR UPDATE`` by the ledger services.
"""

import threading
from collections.abc import Hashable
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class EntityLockRegistry:
    """Keyed lock map with bounded acquisition."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[Hashable, _Entry] = {}

    def acquire(self, key: Hashable, timeout: float) -> bool:
        """Try to acquire the lock for ``key`` within ``timeout`` seconds.

        Returns True when acquired; the caller must then call ``release``.
        """
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1

        acquired = entry.lock.acquire(timeout=timeout)
        if not acquired:
            self._forget(key, entry)
        return acquired

    def release(self, key: Hashable) -> None:
        """Release a lock previously obtained with ``acquire``."""
        with self._guard:
            entry = self._entries.get(key)
        if entry is None:
            raise RuntimeError(f"Lock for {key!r} is not held")
        entry.lock.release()
        self._forget(key, entry)

    def is_locked(self, key: Hashable) -> bool:
        with self._guard:
            entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, key: Hashable, timeout: float):
        """Context manager yielding whether the lock was acquired."""
        acquired = self.acquire(key, timeout)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)

    def _forget(self, key: Hashable, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]


# Process-wide registry shared by both ledger flavors.
entity_locks = EntityLockRegistry()
