"""
Route discovery for the four configuration modes.

- directory: file layout under a root directory is the route layout
- pattern: a glob selects the route files, the glob's static prefix is the root
- list: an explicit "METHOD::/path" map to files or callables
- decorator: ``@route`` bindings on controller class methods

Every builder returns plain ``Route`` records; the table they end up in does
not know which mode produced them.
"""

import inspect
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple, Union

from lambda_router.decorators import collect_requirements, get_route_bindings
from lambda_router.models.config import RouterConfig, RoutingMode
from lambda_router.resolver.loader import (
    handler_requirements,
    load_module,
    module_routes,
    resolve_handler,
)
from lambda_router.resolver.route import ANY_METHOD, HTTP_METHODS, Route, normalize_path
from lambda_router.utils.errors import RouteConfigurationError
from lambda_router.utils.observability import logger, tracer

INDEX_NAMES = ('index', '__init__')
_GLOB_CHARS = ('*', '?', '[')


def _segment(name: str) -> str:
    """Map a file or folder name to a path segment; ``[id]`` and ``{id}`` become ``{id}``."""
    if (name.startswith('[') and name.endswith(']')) or (name.startswith('{') and name.endswith('}')):
        return '{' + name[1:-1] + '}'
    return name


def _pattern_from_parts(directories: Sequence[str], name: str) -> str:
    parts = [_segment(directory) for directory in directories]
    if name and name not in INDEX_NAMES:
        parts.append(_segment(name))
    return normalize_path('/' + '/'.join(parts))


def _skipped(relative: Path) -> bool:
    if any(part.startswith(('_', '.')) for part in relative.parent.parts):
        return True
    return relative.stem.startswith('_') and relative.stem != '__init__'


@tracer.capture_method
def directory_routes(root: str) -> List[Route]:
    """
    Build routes from a handler directory.

    ``users/{id}.py`` serves ``/users/{id}``; ``users/index.py`` and
    ``users/__init__.py`` serve ``/users``.

    Raises:
        RouteConfigurationError: If the root is not a directory
    """
    base = Path(root)
    if not base.is_dir():
        raise RouteConfigurationError(f"handler directory not found: {root}")

    routes: List[Route] = []
    for file_path in sorted(base.rglob('*.py')):
        relative = file_path.relative_to(base)
        if _skipped(relative):
            continue
        pattern = _pattern_from_parts(relative.parent.parts, relative.stem)
        routes.extend(module_routes(load_module(str(file_path)), pattern, source=str(relative)))
    return routes


def _split_glob(expression: str) -> Tuple[Path, str]:
    parts = Path(expression).parts
    for index, part in enumerate(parts):
        if any(char in part for char in _GLOB_CHARS):
            root = Path(*parts[:index]) if index else Path('.')
            return root, str(Path(*parts[index:]))
    raise RouteConfigurationError(f"handler pattern has no wildcard: {expression}")


@tracer.capture_method
def pattern_routes(expression: str) -> List[Route]:
    """
    Build routes from the files a glob expression selects.

    With ``api/**/*.controller.py`` the file
    ``api/users/{id}.controller.py`` serves ``/users/{id}``.

    Raises:
        RouteConfigurationError: If the glob is malformed or matches no file
    """
    root, relative_glob = _split_glob(expression)
    last = Path(expression).name
    suffix = last[last.rfind('*') + 1:] if '*' in last else '.py'

    try:
        matches = sorted(path for path in root.glob(relative_glob) if path.is_file())
    except ValueError as exc:
        raise RouteConfigurationError(f"invalid handler pattern {expression}: {exc}") from exc
    if not matches:
        raise RouteConfigurationError(f"handler pattern matched no files: {expression}")

    routes: List[Route] = []
    for file_path in matches:
        relative = file_path.relative_to(root)
        if _skipped(relative):
            continue
        name = relative.name[:-len(suffix)] if suffix and relative.name.endswith(suffix) else relative.stem
        pattern = _pattern_from_parts(relative.parent.parts, name)
        routes.extend(module_routes(load_module(str(file_path)), pattern, source=str(relative)))
    return routes


def _parse_route_key(key: str) -> Tuple[str, str]:
    method, _, path = key.partition('::')
    method = method.strip().upper()
    if method not in HTTP_METHODS and method != ANY_METHOD:
        raise RouteConfigurationError(f"unknown HTTP method in route key '{key}'")
    return method, normalize_path(path.strip())


@tracer.capture_method
def list_routes(routes: Dict[str, Union[str, Callable[..., Any]]]) -> List[Route]:
    """
    Build routes from an explicit map.

    Values are callables or handler file references (``file.py`` or
    ``file.py:function``).
    """
    result: List[Route] = []
    for key, reference in routes.items():
        method, pattern = _parse_route_key(key)
        if callable(reference):
            handler, module, source = reference, None, getattr(reference, '__qualname__', repr(reference))
        elif isinstance(reference, str):
            handler = resolve_handler(reference, method)
            module, source = inspect.getmodule(handler), reference
        else:
            raise RouteConfigurationError(f"route '{key}' must map to a callable or a handler file")
        result.append(Route(
            method=method,
            pattern=pattern,
            handler=handler,
            requirements=handler_requirements(handler, module, method),
            source=source,
        ))
    return result


def _controller_members(controller: Any) -> Iterable[Tuple[str, Any, Any]]:
    """Yield (name, raw attribute, owner) in definition order."""
    if inspect.ismodule(controller):
        for name, attribute in vars(controller).items():
            yield name, attribute, controller
        return

    instance = controller
    if inspect.isclass(controller):
        try:
            instance = controller()
        except TypeError as exc:
            raise RouteConfigurationError(
                f"controller {controller.__name__} needs constructor arguments; pass an instance instead"
            ) from exc

    seen = set()
    for klass in type(instance).__mro__:
        for name, attribute in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            yield name, attribute, instance


@tracer.capture_method
def controller_routes(controllers: Iterable[Any]) -> List[Route]:
    """Build routes from ``@route`` bindings on controller classes, instances or modules."""
    result: List[Route] = []
    for controller in controllers:
        owner_name = getattr(controller, '__name__', type(controller).__name__)
        for name, attribute, owner in _controller_members(controller):
            bindings = get_route_bindings(attribute)
            if not bindings:
                continue
            handler = getattr(owner, name)
            requirements = collect_requirements(handler)
            for method, path in bindings:
                if method not in HTTP_METHODS and method != ANY_METHOD:
                    raise RouteConfigurationError(f"unknown HTTP method '{method}' on {owner_name}.{name}")
                result.append(Route(
                    method=method,
                    pattern=normalize_path(path),
                    handler=handler,
                    requirements=requirements,
                    source=f"{owner_name}.{name}",
                ))
    return result


def discover_routes(config: RouterConfig) -> List[Route]:
    """
    Build the routes for the configured discovery mode.

    Args:
        config: Router configuration

    Returns:
        Every route the mode declares

    Raises:
        RouteConfigurationError: If the mode's source is malformed
    """
    mode = RoutingMode(config.mode)
    if mode == RoutingMode.DIRECTORY:
        routes = directory_routes(config.handlers or '')
    elif mode == RoutingMode.PATTERN:
        routes = pattern_routes(config.handlers or '')
    elif mode == RoutingMode.LIST:
        routes = list_routes(config.routes or {})
    else:
        routes = controller_routes(config.controllers)

    logger.info("Routes discovered", extra={
        "mode": mode.value,
        "route_count": len(routes),
        "routes": [route.key for route in routes],
    })
    return routes
