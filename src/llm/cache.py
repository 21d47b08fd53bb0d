"""In-process TTL cache for language-model results.

Identical requests (same operation, prompt and model) within the TTL are
answered from here, so they neither reach the provider nor count against the
session's quota.
"""

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def cache_key(*parts: str) -> str:
    """SHA-256 over the parts, NUL-separated so ('ab', 'c') != ('a', 'bc')."""
    return hashlib.sha256("\x00".join(parts).encode("utf-8")).hexdigest()


class ResponseCache:
    """Bounded mapping of key → value with per-entry expiry.

    When full, the oldest entry is evicted. A TTL of 0 disables caching.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, key: str) -> Any | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] <= self._clock():
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry[1]

    def set(self, key: str, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache full, evicted %s", evicted[:12])
            self._entries[key] = (self._clock() + self._ttl, value)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (expiry, _) in self._entries.items() if expiry <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
