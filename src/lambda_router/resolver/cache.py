"""
Route lookup cache.

Resolved (method, concrete path) lookups are memoized in a bounded LRU cache
for the lifetime of the process. Entries are never invalidated: the route
table they point into is immutable once built.
"""

import threading
from typing import Optional

from cachetools import LRUCache

from lambda_router.models.config import CacheMode
from lambda_router.resolver.route import RouteMatch


class RouteCache:
    """Thread-safe memo of route matches keyed by ``METHOD::/path``."""

    def __init__(self, mode: CacheMode, maxsize: int = 128) -> None:
        """
        Initialize the cache.

        Args:
            mode: Which kinds of route (static, dynamic) are memoized
            maxsize: Maximum number of memoized lookups
        """
        self.mode = CacheMode(mode)
        self._entries: LRUCache = LRUCache(maxsize=maxsize)
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(method: str, path: str) -> str:
        return f"{method.upper()}::{path}"

    def get(self, method: str, path: str) -> Optional[RouteMatch]:
        if self.mode == CacheMode.NONE:
            return None
        with self._lock:
            match = self._entries.get(self.key(method, path))
            if match is None:
                self.misses += 1
            else:
                self.hits += 1
            return match

    def put(self, method: str, path: str, match: RouteMatch) -> RouteMatch:
        """
        Memoize a match if the cache mode covers its route.

        Returns the cached entry, which is the first match stored for the key
        when two invocations race to populate it.
        """
        if not self.mode.caches(match.route.is_dynamic):
            return match
        key = self.key(method, path)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            self._entries[key] = match
            return match

    def __len__(self) -> int:
        return len(self._entries)
