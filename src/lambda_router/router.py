"""
Router entry point.

A ``Router`` is built once per Lambda execution environment, at module load,
and then serves every invocation::

    from lambda_router import Router

    router = Router(mode='directory', handlers='api/handlers', schema_path='openapi.yml')
    lambda_handler = router.lambda_handler

Construction discovers and validates every route up front; a malformed
configuration raises ``RouteConfigurationError`` here and never surfaces as
a per-request error.
"""

from typing import Any, Callable, Dict, List, Optional

from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit
from pydantic import ValidationError

from lambda_router.http.request import Request
from lambda_router.models.config import RouterConfig
from lambda_router.models.requirements import SchemaRef
from lambda_router.pipeline import Pipeline, PipelineResult
from lambda_router.resolver import RouteResolver
from lambda_router.resolver.route import Route
from lambda_router.utils.errors import MethodNotAllowedError, NotFoundError, RouteConfigurationError
from lambda_router.utils.observability import logger, metrics, tracer
from lambda_router.validation import RequestValidator, SchemaDocument


class Router:
    """Declarative request router for API Gateway proxy events."""

    def __init__(self, config: Optional[RouterConfig] = None, **options: Any) -> None:
        """
        Initialize the router.

        Args:
            config: Complete router configuration
            **options: RouterConfig fields; applied on top of ``config`` when both are given

        Raises:
            RouteConfigurationError: If routes cannot be discovered or reference missing schemas
        """
        try:
            if config is None:
                config = RouterConfig(**options)
            elif options:
                config = RouterConfig(**{**dict(config), **options})
        except ValidationError as exc:
            raise RouteConfigurationError(f"invalid router configuration: {exc}") from exc
        self.config = config
        self.log = config.logger or logger

        self.document = SchemaDocument.load(config.schema_path) if config.schema_path else None
        self.validator = RequestValidator(self.document, auto_validate=config.auto_validate)
        self.resolver = RouteResolver(config)
        self._check_routes(self.resolver.routes)
        self.pipeline = Pipeline(config, self.validator)
        self.lambda_handler = self._entry_point()

        self.log.info("Router initialized", extra={
            "mode": config.mode.value,
            "route_count": len(self.resolver.routes),
            "base_path": config.base_path,
            "cache_mode": config.cache_mode.value,
            "schema_path": config.schema_path,
        })

    @property
    def routes(self) -> List[Route]:
        return self.resolver.routes

    def _check_schema(self, route: Route, schema: Optional[SchemaRef]) -> None:
        if schema is None:
            return
        if isinstance(schema, str) and self.document is None:
            raise RouteConfigurationError(
                f"route {route.key} references schema '{schema}' but no schema_path is configured"
            )
        # Named components must exist and inline schemas must be valid; components were checked on load
        self.validator.document.validator(schema)

    def _check_routes(self, routes: List[Route]) -> None:
        for route in routes:
            requirements = route.requirements
            self._check_schema(route, requirements.required_body)
            self._check_schema(route, requirements.response_body)
            if requirements.auth_required and requirements.authenticator is None and self.config.with_auth is None:
                raise RouteConfigurationError(
                    f"route {route.key} requires authentication but no with_auth hook is configured"
                )

    @tracer.capture_method
    def route(self, event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
        """
        Route one API Gateway event to its handler.

        Args:
            event: API Gateway REST (v1) or HTTP API (v2) proxy event
            context: Lambda context object

        Returns:
            API Gateway proxy result: statusCode, headers, body, isBase64Encoded
        """
        request = Request(event, context)
        if self.config.verbose_logging:
            self.log.info("Request received", extra={"request": request.to_dict()})

        result = self._dispatch(request)
        payload = result.response.to_dict()

        if self.config.verbose_logging:
            self.log.info("Response sent", extra={
                "status_code": payload['statusCode'],
                "route": request.route,
                "stages": [stage.value for stage in result.stages],
                "response": payload,
            })
        return payload

    def _dispatch(self, request: Request) -> PipelineResult:
        try:
            match = self.resolver.resolve(request.method, request.path)
        except (NotFoundError, MethodNotAllowedError) as error:
            metrics.add_metric(name="RouteNotMatched", unit=MetricUnit.Count, value=1)
            return self.pipeline.fail(request, error)

        request.bind_route(match.route.pattern, match.path_params)
        metrics.add_metric(name="RouteMatched", unit=MetricUnit.Count, value=1)
        tracer.put_annotation("route", match.route.key)
        return self.pipeline.run(request, match.route)

    def _entry_point(self) -> Callable[[Dict[str, Any], Any], Dict[str, Any]]:
        router = self

        @logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
        @metrics.log_metrics(capture_cold_start_metric=True)
        @tracer.capture_lambda_handler
        def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            """Lambda entry point bound to this router."""
            return router.route(event, context)

        return lambda_handler
