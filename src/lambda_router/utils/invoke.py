"""Invoke helpers: call sync or async hooks and handlers uniformly.

Handlers and hooks can be ``def`` or ``async def``. The Lambda entry point is
synchronous, so a returned awaitable is driven to completion on a fresh event
loop in the calling thread.

Usage::

    from lambda_router.utils.invoke import invoke

    result = invoke(handler, request, response)
"""

import asyncio
import inspect
from typing import Any


async def _await(awaitable: Any) -> Any:
    return await awaitable


def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call ``func`` and run the result to completion if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = asyncio.run(_await(result))
    return result
