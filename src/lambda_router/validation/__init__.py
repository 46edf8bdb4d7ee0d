"""
Request/response validation against inline schemas and OpenAPI documents.
"""

from lambda_router.validation.schema import SchemaDocument
from lambda_router.validation.validator import RequestValidator

__all__ = [
    "SchemaDocument",
    "RequestValidator",
]
