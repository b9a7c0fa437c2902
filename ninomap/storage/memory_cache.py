"""In-process LRU cache with per-entry TTL."""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from threading import Lock

from ninomap.storage.kv import MappingCache


class MemoryTTLCache(MappingCache):
    """Thread-safe TTL cache for single-instance deployments.

    Entries expire lazily on read and are evicted least-recently-used once
    ``max_entries`` is exceeded. ``clock`` returns seconds and can be swapped
    for a manual clock in tests.
    """

    def __init__(self, max_entries: int = 10000, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, str]] = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        now = self._clock()
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= now:
                self._entries.pop(key, None)
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        expires_at = self._clock() + max(1, int(ttl_seconds))
        with self._lock:
            self._entries[key] = (expires_at, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
