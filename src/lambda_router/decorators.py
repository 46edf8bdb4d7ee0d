"""
Declarative route configuration with decorators.

The decorators in this module do not wrap the handler. Each one records a
directive on the function and returns it unchanged; the resolver later folds
the directives into one ``Requirements`` record with ``collect_requirements``.
The pipeline always executes that record in the same stage order, so the
order in which decorators are stacked in source never changes behaviour.

That stage order is before_all, auth, ``@before`` hooks, validation,
handler, ``@after`` hooks, after_all. Route ``@before`` hooks therefore only
see requests the authenticator has already accepted.

Example::

    class UserController:

        @route('PUT', '/users/:id')
        @timeout(5)
        @validate(body='UpdateUser', headers=['x-api-key'])
        @auth()
        @before(log_request)
        @after(add_custom_header)
        def update_user(self, request, response):
            response.body = {'id': request.path_params['id']}

A directive-free ``requirements(**fields)`` form covers the same ground for
module-level handlers::

    @requirements(required_headers=['x-api-key'], auth_required=True, timeout=5)
    def put(request, response):
        ...
"""

from typing import Any, Callable, Iterable, List, Optional, Tuple

from lambda_router.models.requirements import Hook, Requirements, SchemaRef
from lambda_router.utils.errors import RouteConfigurationError

DIRECTIVES_ATTRIBUTE = '__route_directives__'


def _directives(func: Callable[..., Any]) -> List[Tuple[str, Any]]:
    target = getattr(func, '__func__', func)
    directives = target.__dict__.get(DIRECTIVES_ATTRIBUTE)
    if directives is None:
        directives = []
        setattr(target, DIRECTIVES_ATTRIBUTE, directives)
    return directives


def _directive(kind: str, value: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        # Decorators apply bottom-up; prepend to keep top-to-bottom source order
        _directives(func).insert(0, (kind, value))
        return func
    return decorator


def route(method: str, path: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Bind a controller method to an HTTP method and path pattern."""
    return _directive('route', (method.upper(), path))


def requirements(**fields: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Attach a full set of requirement fields (see ``Requirements``).

    Raises:
        RouteConfigurationError: If a field name is unknown or a value is invalid
    """
    try:
        declared = Requirements.from_dict(fields)
    except ValueError as exc:
        raise RouteConfigurationError(f"invalid route requirements: {exc}") from exc
    return _directive('requirements', declared)


def validate(
    headers: Iterable[str] = (),
    query: Iterable[str] = (),
    path: Iterable[str] = (),
    body: Optional[SchemaRef] = None,
    response: Optional[SchemaRef] = None,
    available_headers: Optional[Iterable[str]] = None,
    available_query: Optional[Iterable[str]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Declare request and response checks."""
    return _directive('requirements', Requirements(
        required_headers=tuple(headers),
        required_query=tuple(query),
        required_path=tuple(path),
        required_body=body,
        response_body=response,
        available_headers=tuple(available_headers) if available_headers is not None else None,
        available_query=tuple(available_query) if available_query is not None else None,
    ))


def auth(authenticator: Optional[Hook] = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Require authentication.

    Without an argument the router's global ``with_auth`` hook decides;
    with one, that function decides for this route only.
    """
    return _directive('requirements', Requirements(auth_required=True, authenticator=authenticator))


def before(*hooks: Hook) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Run hooks after authentication and before validation."""
    return _directive('requirements', Requirements(before=hooks))


def after(*hooks: Hook) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Run hooks after a successful handler invocation."""
    return _directive('requirements', Requirements(after=hooks))


def timeout(seconds: float) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Override the global handler timeout."""
    return _directive('requirements', Requirements(timeout=seconds))


def get_route_bindings(func: Callable[..., Any]) -> List[Tuple[str, str]]:
    """Return every (method, path) bound with ``@route``."""
    target = getattr(func, '__func__', func)
    return [value for kind, value in getattr(target, DIRECTIVES_ATTRIBUTE, []) if kind == 'route']


def collect_requirements(func: Callable[..., Any], base: Optional[Requirements] = None) -> Requirements:
    """
    Fold every directive on ``func`` into one ``Requirements`` record.

    Hook lists keep their top-to-bottom source order. When two directives set
    the same scalar (timeout, body schema), the one written closest to the
    function wins.

    Args:
        func: Handler function or bound method
        base: Requirements declared elsewhere, e.g. a module-level dict

    Returns:
        Reconciled Requirements instance
    """
    target = getattr(func, '__func__', func)
    result = base or Requirements()
    for kind, value in getattr(target, DIRECTIVES_ATTRIBUTE, []):
        if kind == 'requirements':
            result = result.merge(value)
    return result
