"""
Handler module loading and introspection.

Route files are imported by file path, never by package name, so handler
trees can use file names such as ``{id}.py`` that are not valid module names.
Every file is imported at most once per process.
"""

import hashlib
import importlib.util
import inspect
import re
import sys
import threading
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional

from lambda_router.decorators import collect_requirements
from lambda_router.models.requirements import Requirements
from lambda_router.resolver.route import HTTP_METHODS, Route
from lambda_router.utils.errors import RouteConfigurationError
from lambda_router.utils.observability import logger

_modules: Dict[str, ModuleType] = {}
_modules_lock = threading.Lock()


def _module_name(file_path: Path) -> str:
    digest = hashlib.sha1(str(file_path).encode('utf-8')).hexdigest()[:10]
    stem = re.sub(r'\W', '_', file_path.stem)
    return f"lambda_router_routes.{stem}_{digest}"


def load_module(file_path: str) -> ModuleType:
    """
    Import a handler module from a file path.

    Args:
        file_path: Path to a Python source file

    Returns:
        The imported module; the same object on every call for the same file

    Raises:
        RouteConfigurationError: If the file is missing or fails to import
    """
    path = Path(file_path).resolve()
    key = str(path)

    module = _modules.get(key)
    if module is not None:
        return module

    with _modules_lock:
        # Another thread may have imported it while we waited
        module = _modules.get(key)
        if module is not None:
            return module

        if not path.is_file():
            raise RouteConfigurationError(f"handler file not found: {file_path}")

        name = _module_name(path)
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise RouteConfigurationError(f"cannot import handler file: {file_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(name, None)
            raise RouteConfigurationError(f"failed to import handler file {file_path}: {exc}") from exc

        _modules[key] = module
        logger.debug("Handler module loaded", extra={"file_path": key, "module_name": name})
        return module


def module_requirements(module: ModuleType, method: str) -> Requirements:
    """
    Requirements declared through a module-level ``requirements`` dict.

    The dict is keyed by lower-case method name::

        requirements = {'post': {'required_body': 'CreateUser'}}
    """
    declared = getattr(module, 'requirements', None)
    if not isinstance(declared, dict):
        return Requirements()
    entry = declared.get(method.lower()) or declared.get(method.upper())
    try:
        return Requirements.from_dict(entry)
    except ValueError as exc:
        raise RouteConfigurationError(
            f"invalid requirements for {method} in {getattr(module, '__file__', module.__name__)}: {exc}"
        ) from exc


def handler_requirements(handler: Callable[..., Any], module: Optional[ModuleType], method: str) -> Requirements:
    """Reconcile module-level and decorator requirements for one handler."""
    base = module_requirements(module, method) if module is not None else Requirements()
    return collect_requirements(handler, base=base)


def module_routes(module: ModuleType, pattern: str, source: str) -> List[Route]:
    """
    Build a route for every HTTP method function a module exports.

    Args:
        module: Imported handler module
        pattern: Route pattern derived from the file location
        source: Description of where the routes came from, used in errors

    Returns:
        Routes in HTTP method order
    """
    routes: List[Route] = []
    for method in HTTP_METHODS:
        handler = getattr(module, method.lower(), None)
        if handler is None:
            continue
        if not callable(handler) or inspect.isclass(handler):
            raise RouteConfigurationError(f"'{method.lower()}' in {source} is not a function")
        routes.append(Route(
            method=method,
            pattern=pattern,
            handler=handler,
            requirements=handler_requirements(handler, module, method),
            source=source,
        ))
    return routes


def resolve_handler(reference: str, method: str) -> Callable[..., Any]:
    """
    Resolve a list mode handler reference.

    ``path/to/file.py`` selects the function named after the method;
    ``path/to/file.py:function`` selects an explicit function.
    """
    file_path, function_name = reference, None
    head, sep, tail = reference.rpartition(':')
    if sep and head.endswith('.py') and tail.isidentifier():
        file_path, function_name = head, tail
    module = load_module(file_path)
    name = function_name or method.lower()
    handler = getattr(module, name, None)
    if handler is None or not callable(handler):
        raise RouteConfigurationError(f"handler file {file_path} has no function '{name}'")
    return handler
