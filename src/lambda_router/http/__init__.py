"""
Request/response adapters between API Gateway events and handlers.
"""

from lambda_router.http.request import Request
from lambda_router.http.response import Response

__all__ = [
    "Request",
    "Response",
]
