"""
lambda-router: declarative routing for API Gateway + Lambda.

A single Lambda function serves a whole HTTP API. Routes come from one of
four discovery modes:

- directory: the file tree under a handlers directory mirrors the URL space
- pattern: files matching a glob become routes
- list: an explicit ``"METHOD::/path"`` mapping
- decorator: controller classes whose methods carry ``@route`` metadata

Every matched request runs through the middleware pipeline (global and
per-route hooks, authentication, request validation against inline or
OpenAPI schemas, a timeout guard and response validation) and every
failure ends as a structured JSON error response.
"""

__version__ = "1.0.0"

# Re-export the public API for convenience
from lambda_router.decorators import after, auth, before, requirements, route, timeout, validate
from lambda_router.events import DynamoDBRecord, Event, Record, S3Record
from lambda_router.http import Request, Response
from lambda_router.models import CacheMode, Requirements, RouterConfig, RoutingMode, ValidationIssue
from lambda_router.pipeline import Pipeline, PipelineResult, PipelineStage
from lambda_router.router import Router
from lambda_router.utils.errors import (
    AuthError,
    BaseRouterError,
    HandlerError,
    HandlerTimeoutError,
    HookRejectedError,
    MethodNotAllowedError,
    NotFoundError,
    RequestValidationError,
    ResponseValidationError,
    RouteConfigurationError,
)
from lambda_router.utils.observability import logger, metrics, tracer

__all__ = [
    "Router",
    "RouterConfig",
    "RoutingMode",
    "CacheMode",
    "Requirements",
    "ValidationIssue",
    "Request",
    "Response",
    "Pipeline",
    "PipelineResult",
    "PipelineStage",
    # Decorators
    "route",
    "requirements",
    "validate",
    "auth",
    "before",
    "after",
    "timeout",
    # Events
    "Event",
    "Record",
    "DynamoDBRecord",
    "S3Record",
    # Errors
    "BaseRouterError",
    "NotFoundError",
    "MethodNotAllowedError",
    "RequestValidationError",
    "AuthError",
    "HandlerTimeoutError",
    "HandlerError",
    "ResponseValidationError",
    "HookRejectedError",
    "RouteConfigurationError",
    # Observability
    "logger",
    "tracer",
    "metrics",
]
