"""
Route resolution.

``RouteResolver`` builds the route table for the configured discovery mode
exactly once and answers (method, path) lookups against it, memoizing
matches according to the cache mode.
"""

import threading
from typing import List, Optional

from lambda_router.models.config import RouterConfig
from lambda_router.resolver.cache import RouteCache
from lambda_router.resolver.discovery import discover_routes
from lambda_router.resolver.route import Route, RouteMatch, normalize_path, parse_path
from lambda_router.resolver.table import RouteTable
from lambda_router.utils.errors import NotFoundError
from lambda_router.utils.observability import logger, tracer


class RouteResolver:
    """Owns the route table and the lookup cache of one router."""

    def __init__(self, config: RouterConfig) -> None:
        """
        Initialize the resolver and build its table.

        Args:
            config: Router configuration

        Raises:
            RouteConfigurationError: If discovery fails or routes conflict
        """
        self._config = config
        self._table: Optional[RouteTable] = None
        self._build_lock = threading.Lock()
        self.cache = RouteCache(config.cache_mode, maxsize=config.cache_size)
        self._ensure_table()

    def _ensure_table(self) -> RouteTable:
        table = self._table
        if table is not None:
            return table
        with self._build_lock:
            # Only the first caller builds; later callers see its table
            if self._table is None:
                table = RouteTable()
                for route in discover_routes(self._config):
                    table.add(route)
                table.freeze()
                self._table = table
        return self._table

    @property
    def table(self) -> RouteTable:
        return self._ensure_table()

    @property
    def routes(self) -> List[Route]:
        return self.table.routes

    def strip_base_path(self, path: str) -> Optional[str]:
        """Remove the configured base path, or return None when the path lies outside it."""
        base = self._config.base_path
        trimmed = path.strip('/')
        if not base:
            return '/' + trimmed
        if trimmed == base:
            return '/'
        if trimmed.startswith(base + '/'):
            return '/' + trimmed[len(base) + 1:]
        return None

    @tracer.capture_method
    def resolve(self, method: str, path: str) -> RouteMatch:
        """
        Resolve a request to its route.

        Raises:
            NotFoundError: If no route matches the path
            MethodNotAllowedError: If the path matches but the method doesn't
        """
        relative = self.strip_base_path(path)
        if relative is None:
            raise NotFoundError(method, path)

        match = self.cache.get(method, relative)
        if match is not None:
            return match

        match = self.table.match(method, relative)
        logger.debug("Route resolved", extra={
            "method": method,
            "path": path,
            "route": match.route.pattern,
            "path_params": match.path_params,
        })
        return self.cache.put(method, relative, match)


__all__ = [
    "RouteResolver",
    "RouteCache",
    "RouteTable",
    "Route",
    "RouteMatch",
    "normalize_path",
    "parse_path",
]
