"""
Router utilities: observability instances, the error taxonomy and the
sync/async invocation helper.
"""

from lambda_router.utils.observability import logger, tracer, metrics

__all__ = [
    "logger",
    "tracer",
    "metrics",
]
