"""Route table with trie-based path matching.

Routes are added while the table is built and frozen before the first
request. Matching prefers static segments over parameters and parameters
over greedy catch-alls at every position, backtracking to the next candidate
when a more specific branch cannot serve the request.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from lambda_router.resolver.route import ANY_METHOD, Route, RouteMatch, parse_path
from lambda_router.utils.errors import MethodNotAllowedError, NotFoundError, RouteConfigurationError


class _TrieNode:
    """A node in the route trie. Mutable during construction only."""

    __slots__ = ('children', 'param_child', 'greedy_child', 'routes_by_method')

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: Dict[str, _TrieNode] = {}
        # Single parameter edge per level: (param name, node)
        self.param_child: Optional[Tuple[str, _TrieNode]] = None
        # Greedy edge consuming the remaining path: (param name, node)
        self.greedy_child: Optional[Tuple[str, _TrieNode]] = None
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: Dict[str, Route] = {}


class RouteTable:
    """
    Compiled lookup from (method, path) to a route.

    Usage::

        table = RouteTable()
        table.add(Route('GET', '/users/{id}', handler))
        table.freeze()
        match = table.match('GET', '/users/42')
    """

    __slots__ = ('_frozen', '_root', '_routes')

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._routes: List[Route] = []
        self._frozen = False

    def add(self, route: Route) -> None:
        """
        Add a route. Must be called before ``freeze()``.

        Raises:
            RouteConfigurationError: On a duplicate route or when two routes
                name the parameter at the same position differently
        """
        if self._frozen:
            raise RouteConfigurationError('cannot add routes after the table is frozen')

        node = self._root
        for segment in parse_path(route.pattern):
            if segment.greedy:
                node = self._param_edge(node, 'greedy_child', segment.param_name, route)
            elif segment.is_param:
                node = self._param_edge(node, 'param_child', segment.param_name, route)
            else:
                node = node.children.setdefault(segment.value, _TrieNode())

        existing = node.routes_by_method.get(route.method)
        if existing is not None:
            raise RouteConfigurationError(
                f"duplicate route {route.key} declared by {existing.source} and {route.source}"
            )
        node.routes_by_method[route.method] = route
        self._routes.append(route)

    @staticmethod
    def _param_edge(node: _TrieNode, attribute: str, name: str, route: Route) -> _TrieNode:
        edge = getattr(node, attribute)
        if edge is None:
            edge = (name, _TrieNode())
            setattr(node, attribute, edge)
        elif edge[0] != name:
            raise RouteConfigurationError(
                f"ambiguous route {route.key} from {route.source}: parameter '{name}' "
                f"conflicts with '{edge[0]}' at the same position"
            )
        return edge[1]

    def freeze(self) -> None:
        """Freeze the table. No more routes can be added."""
        self._frozen = True

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def match(self, method: str, path: str) -> RouteMatch:
        """
        Match a request method and path.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFoundError`` if no route matches the path.
        Raises ``MethodNotAllowedError`` if the path matches but the method doesn't.
        """
        method = method.upper()
        parts = [part for part in path.strip('/').split('/') if part]

        first_allowed: Optional[List[str]] = None
        for node, params in self._candidates(self._root, parts, 0, {}):
            route = node.routes_by_method.get(method) or node.routes_by_method.get(ANY_METHOD)
            if route is not None:
                return RouteMatch(route=route, path_params=params)
            if first_allowed is None:
                first_allowed = list(node.routes_by_method)

        if first_allowed is None:
            raise NotFoundError(method, path)
        raise MethodNotAllowedError(method, path, first_allowed)

    def _candidates(
        self,
        node: _TrieNode,
        parts: List[str],
        index: int,
        params: Dict[str, str],
    ) -> Iterator[Tuple[_TrieNode, Dict[str, str]]]:
        """Yield every terminal node matching the path, most specific first."""
        if index == len(parts):
            if node.routes_by_method:
                yield node, params
            return

        part = parts[index]

        # 1. Static child (exact match)
        child = node.children.get(part)
        if child is not None:
            yield from self._candidates(child, parts, index + 1, params)

        # 2. Parameter child
        if node.param_child is not None:
            name, param_node = node.param_child
            yield from self._candidates(param_node, parts, index + 1, {**params, name: part})

        # 3. Greedy child consumes the remainder
        if node.greedy_child is not None:
            name, greedy_node = node.greedy_child
            if greedy_node.routes_by_method:
                yield greedy_node, {**params, name: '/'.join(parts[index:])}
