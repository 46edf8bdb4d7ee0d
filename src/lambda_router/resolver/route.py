"""Route, path segment and route match records."""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from lambda_router.models.requirements import EMPTY_REQUIREMENTS, Requirements
from lambda_router.utils.errors import RouteConfigurationError

HTTP_METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'HEAD', 'OPTIONS')

# Catch-all method, as in API Gateway "ANY"
ANY_METHOD = 'ANY'

_PARAM_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass(frozen=True)
class PathSegment:
    """
    A parsed segment of a route path.

    Static:  ``users``    (is_param=False)
    Param:   ``{id}``     (is_param=True, param_name="id")
    Greedy:  ``{proxy+}`` (is_param=True, param_name="proxy", greedy=True)
    """

    value: str
    is_param: bool = False
    param_name: Optional[str] = None
    greedy: bool = False

    def __str__(self) -> str:
        if not self.is_param:
            return self.value
        return '{' + (self.param_name or '') + ('+' if self.greedy else '') + '}'


def _parse_segment(part: str) -> PathSegment:
    inner = None
    if part.startswith('{') and part.endswith('}'):
        inner = part[1:-1]
    elif part.startswith('[') and part.endswith(']'):
        inner = part[1:-1]
    elif part.startswith(':'):
        inner = part[1:]

    if inner is None:
        if '{' in part or '}' in part:
            raise RouteConfigurationError(f"malformed path segment '{part}'")
        return PathSegment(value=part)

    greedy = inner.endswith('+')
    name = inner[:-1] if greedy else inner
    if not _PARAM_NAME.match(name):
        raise RouteConfigurationError(f"invalid path parameter name '{name}' in segment '{part}'")
    return PathSegment(value=part, is_param=True, param_name=name, greedy=greedy)


def parse_path(path: str) -> List[PathSegment]:
    """
    Parse a route path string into segments.

    ``{id}``, ``[id]`` and ``:id`` all declare the path parameter ``id``;
    ``{proxy+}`` consumes the rest of the path and must come last.

    Examples::

        "/users"            -> [PathSegment("users")]
        "/users/:id"        -> [PathSegment("users"), PathSegment(":id", is_param=True, param_name="id")]
        "/files/{path+}"    -> [PathSegment("files"), PathSegment("{path+}", ..., greedy=True)]

    Raises:
        RouteConfigurationError: If a segment is malformed
    """
    segments = [_parse_segment(part) for part in path.strip('/').split('/') if part]
    for index, segment in enumerate(segments):
        if segment.greedy and index != len(segments) - 1:
            raise RouteConfigurationError(f"greedy parameter must be the last segment in '{path}'")
    names = [segment.param_name for segment in segments if segment.is_param]
    if len(names) != len(set(names)):
        raise RouteConfigurationError(f"duplicate path parameter name in '{path}'")
    return segments


def normalize_path(path: str) -> str:
    """Canonical form of a route pattern, e.g. ``/users/:id`` -> ``/users/{id}``."""
    return '/' + '/'.join(str(segment) for segment in parse_path(path))


@dataclass(frozen=True)
class Route:
    """
    A frozen route definition.

    Created while the route table is built; never modified afterwards.
    """

    method: str
    pattern: str
    handler: Callable[..., Any]
    requirements: Requirements = EMPTY_REQUIREMENTS
    source: str = '<inline>'

    @property
    def key(self) -> str:
        return f"{self.method}::{self.pattern}"

    @property
    def is_dynamic(self) -> bool:
        return '{' in self.pattern


@dataclass(frozen=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: Dict[str, str] = field(default_factory=dict)
