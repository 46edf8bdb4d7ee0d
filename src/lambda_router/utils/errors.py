"""
Error taxonomy and error response utilities for the router.

Every failure the pipeline can meet while handling a request is one of the
``BaseRouterError`` subclasses below. They are raised where the failure is
detected and converted into a structured API Gateway response only at the
pipeline boundary, so no error kind ever escapes ``Router.route``.

``RouteConfigurationError`` is different: it is a startup failure raised to
whoever builds the router and never turned into a response.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from aws_lambda_powertools.metrics import MetricUnit
from pydantic import BaseModel, Field

from lambda_router.models.validation import ValidationIssue
from lambda_router.utils.observability import logger, metrics, tracer


class ErrorSeverity(str, Enum):
    """Error severity levels for classification."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    ROUTING = "ROUTING"
    VALIDATION = "VALIDATION"
    SECURITY = "SECURITY"
    TIMEOUT = "TIMEOUT"
    HANDLER = "HANDLER"


class ErrorContext(BaseModel):
    """Context information for errors."""

    request_id: str = Field(default="unknown", description="Unique request identifier")
    method: Optional[str] = Field(default=None, description="HTTP method of the request")
    path: Optional[str] = Field(default=None, description="Request path")
    route: Optional[str] = Field(default=None, description="Matched route pattern")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    additional_data: Dict[str, Any] = Field(default_factory=dict)


class RouteConfigurationError(Exception):
    """Raised at startup when the routing configuration is malformed."""


class BaseRouterError(Exception):
    """Base exception class for errors recovered into a response."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.HANDLER,
        context: Optional[ErrorContext] = None,
        user_message: Optional[str] = None,
        issues: Optional[Iterable[ValidationIssue]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.context = context
        self.user_message = user_message or "An error occurred while processing your request."
        self.issues: List[ValidationIssue] = list(issues or [])
        self.headers = dict(headers or {})
        self.error_id = str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "error_code": self.error_code,
            "status_code": self.status_code,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "issues": [issue.model_dump() for issue in self.issues],
            "context": self.context.model_dump(mode="json") if self.context else None,
        }


class NotFoundError(BaseRouterError):
    """Raised when no route matches the request path."""

    status_code = 404

    def __init__(self, method: str, path: str, context: Optional[ErrorContext] = None):
        super().__init__(
            message=f"No route matches {method} {path}",
            error_code="ROUTE_NOT_FOUND",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.ROUTING,
            context=context,
            user_message="The requested resource was not found.",
        )
        self.method = method
        self.path = path


class MethodNotAllowedError(BaseRouterError):
    """Raised when the path matches a route but the method does not."""

    status_code = 405

    def __init__(
        self,
        method: str,
        path: str,
        allowed_methods: Iterable[str],
        context: Optional[ErrorContext] = None,
    ):
        allowed = sorted(allowed_methods)
        super().__init__(
            message=f"Method {method} is not allowed on {path}; allowed: {', '.join(allowed)}",
            error_code="METHOD_NOT_ALLOWED",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.ROUTING,
            context=context,
            user_message=f"Method {method} is not allowed for this resource.",
            headers={"Allow": ", ".join(allowed)},
        )
        self.allowed_methods = allowed


class RequestValidationError(BaseRouterError):
    """Raised when one or more request checks fail."""

    status_code = 400

    def __init__(
        self,
        issues: Iterable[ValidationIssue],
        message: str = "Request validation failed",
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            context=context,
            user_message="Invalid input provided. Please check your request and try again.",
            issues=issues,
        )


class AuthError(BaseRouterError):
    """Raised when the authentication hook denies the request or fails."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", context: Optional[ErrorContext] = None):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED",
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.SECURITY,
            context=context,
            user_message="You are not authorized to access this resource.",
        )


class HandlerTimeoutError(BaseRouterError):
    """Raised when the handler does not finish within its effective timeout."""

    status_code = 408

    def __init__(self, timeout: float, context: Optional[ErrorContext] = None):
        super().__init__(
            message=f"Handler exceeded timeout of {timeout} seconds",
            error_code="REQUEST_TIMEOUT",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.TIMEOUT,
            context=context,
            user_message="The request took too long to process. Please try again later.",
        )
        self.timeout = timeout


class HandlerError(BaseRouterError):
    """Wraps an unhandled exception raised by a handler or hook."""

    status_code = 500

    def __init__(self, cause: BaseException, context: Optional[ErrorContext] = None):
        super().__init__(
            message=f"{type(cause).__name__}: {cause}",
            error_code="INTERNAL_SERVER_ERROR",
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.HANDLER,
            context=context,
            user_message="An unexpected error occurred.",
        )
        self.cause = cause


class ResponseValidationError(BaseRouterError):
    """Raised when the handler's response body fails its schema."""

    status_code = 500

    def __init__(self, issues: Iterable[ValidationIssue], context: Optional[ErrorContext] = None):
        super().__init__(
            message="Response validation failed",
            error_code="RESPONSE_VALIDATION_ERROR",
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.VALIDATION,
            context=context,
            user_message="The service produced an invalid response.",
            issues=issues,
        )


class HookRejectedError(BaseRouterError):
    """Raised when a hook recorded errors on the response with ``set_error``."""

    def __init__(
        self,
        errors: List[Dict[str, str]],
        status_code: int = 400,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message=f"Request rejected by hook: {'; '.join(e['message'] for e in errors)}",
            error_code="REQUEST_REJECTED",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            context=context,
            user_message="The request was rejected.",
        )
        self.status_code = status_code
        self.rejections = list(errors)


def create_error_context(
    request_id: str,
    method: Optional[str] = None,
    path: Optional[str] = None,
    route: Optional[str] = None,
    **additional_data: Any,
) -> ErrorContext:
    """Create an error context for consistent error handling."""
    return ErrorContext(
        request_id=request_id,
        method=method,
        path=path,
        route=route,
        additional_data=additional_data,
    )


@tracer.capture_method
def log_error_metrics(error: BaseRouterError) -> None:
    """Log error metrics for monitoring and alerting."""

    metrics.add_metric(name="ErrorCount", unit=MetricUnit.Count, value=1)
    metrics.add_metric(name=f"Error{error.category.value}Count", unit=MetricUnit.Count, value=1)

    tracer.put_annotation("error_code", error.error_code)
    tracer.put_annotation("error_category", error.category.value)

    # Client errors are expected traffic, server errors are not
    log = logger.warning if error.status_code < 500 else logger.error
    log(
        "Router error occurred",
        extra={
            "error_id": error.error_id,
            "error_code": error.error_code,
            "status_code": error.status_code,
            "error_severity": error.severity.value,
            "error_category": error.category.value,
            "error_message": error.message,
            "issue_count": len(error.issues),
            "context": error.context.model_dump(mode="json") if error.context else None,
        }
    )


def format_error_response(
    error: BaseRouterError,
    include_details: bool = False,
) -> Dict[str, Any]:
    """Format error for API response."""

    response: Dict[str, Any] = {
        "error": {
            "code": error.error_code,
            "message": error.user_message,
            "error_id": error.error_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }

    if error.issues:
        response["error"]["field_errors"] = [issue.model_dump() for issue in error.issues]

    if isinstance(error, HookRejectedError):
        response["error"]["field_errors"] = error.rejections

    if isinstance(error, MethodNotAllowedError):
        response["error"]["allowed_methods"] = error.allowed_methods

    if include_details:
        details: Dict[str, Any] = {
            "message": error.message,
            "category": error.category.value,
        }
        if isinstance(error, HandlerError):
            details["exception_type"] = type(error.cause).__name__
        if error.context:
            details["route"] = error.context.route
            details["request_id"] = error.context.request_id
        response["error"]["details"] = details

    return response
