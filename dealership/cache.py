"""
In-process view cache with path-based invalidation.
"""
import logging
import threading
from collections import OrderedDict
from time import monotonic
from typing import Any, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

ADMIN_CARS_PATH = "/admin/cars"


class ViewCache:
    """TTL cache of rendered views, keyed by (view path, key), holding at most ``max_entries``."""

    def __init__(self, ttl: int = 300, max_entries: int = 256):
        self.ttl = ttl
        self.max_entries = max_entries
        # insertion order == expiry order, since every entry gets the same ttl
        self._entries: "OrderedDict[Tuple[str, Hashable], Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: str, key: Hashable = None) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get((path, key))
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= monotonic():
                del self._entries[(path, key)]
                return None
            return value

    def set(self, path: str, key: Hashable, value: Any) -> None:
        if self.ttl <= 0 or self.max_entries <= 0:
            return
        with self._lock:
            now = monotonic()
            self._entries.pop((path, key), None)
            self._sweep(now)
            while len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[(path, key)] = (now + self.ttl, value)

    def _sweep(self, now: float) -> None:
        """Drop expired entries from the front of the queue."""
        while self._entries:
            k, (expires_at, _) = next(iter(self._entries.items()))
            if expires_at > now:
                break
            del self._entries[k]

    def invalidate(self, path: str) -> None:
        """Drop every cached entry of a view so the next read is fresh."""
        with self._lock:
            stale = [k for k in self._entries if k[0] == path]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug(f"Invalidated {len(stale)} cached entries for {path}")
