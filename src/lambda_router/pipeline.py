"""
Middleware pipeline.

Every matched request walks the same state machine::

    BEFORE_ALL -> AUTH -> BEFORE -> VALIDATE -> HANDLER -> AFTER -> AFTER_ALL -> DONE

ERROR is reachable from every stage before AFTER_ALL. Whatever happens, the
pipeline ends with a finalized, sealed ``Response``: router errors raised
by a stage are converted into a structured error body here and nowhere
else, and unexpected exceptions are wrapped in ``HandlerError`` first.

Hooks share one signature, ``hook(request, response, requirements)``, and
may be plain functions or coroutines. Handlers are called as
``handler(request, response)``.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from lambda_router.http.request import Request
from lambda_router.http.response import Response
from lambda_router.models.config import RouterConfig
from lambda_router.models.requirements import EMPTY_REQUIREMENTS, Hook, Requirements
from lambda_router.resolver.route import Route
from lambda_router.utils.errors import (
    AuthError,
    BaseRouterError,
    HandlerError,
    HandlerTimeoutError,
    HookRejectedError,
    RequestValidationError,
    ResponseValidationError,
    create_error_context,
    format_error_response,
    log_error_metrics,
)
from lambda_router.utils.invoke import invoke
from lambda_router.utils.observability import logger, tracer
from lambda_router.validation.validator import RequestValidator


class PipelineStage(str, Enum):
    """Stages of the request pipeline, in execution order."""
    BEFORE_ALL = "before_all"
    AUTH = "auth"
    BEFORE = "before"
    VALIDATE = "validate"
    HANDLER = "handler"
    AFTER = "after"
    ERROR = "error"
    AFTER_ALL = "after_all"
    DONE = "done"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    request: Request
    response: Response
    requirements: Requirements
    route: Optional[Route] = None
    stages: List[PipelineStage] = field(default_factory=list)
    error: Optional[BaseRouterError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _discard_late_result(future: Future) -> None:
    # The caller stopped waiting; nothing the worker produces can reach the client
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.debug("Timed out handler finished with an exception", extra={
            "exception_type": type(exc).__name__,
        })
    else:
        logger.debug("Timed out handler finished, late result discarded")


class Pipeline:
    """Runs matched requests through the middleware stages."""

    def __init__(self, config: RouterConfig, validator: RequestValidator) -> None:
        """
        Initialize the pipeline.

        Args:
            config: Router configuration supplying the global hooks and timeout
            validator: Validator used by the VALIDATE stage and response validation
        """
        self.config = config
        self.validator = validator
        self.log = config.logger or logger

    def new_response(self) -> Response:
        return Response(headers=self.config.default_headers)

    @tracer.capture_method
    def run(self, request: Request, route: Route) -> PipelineResult:
        """
        Run a matched request through every stage.

        Args:
            request: Request with the route and path parameters already bound
            route: The matched route

        Returns:
            PipelineResult whose response is finalized and sealed
        """
        requirements = route.requirements
        result = PipelineResult(request=request, response=self.new_response(),
                                requirements=requirements, route=route)
        try:
            self._enter(result, PipelineStage.BEFORE_ALL)
            if self.config.before_all is not None:
                self._call_hook(result, self.config.before_all)

            if requirements.auth_required:
                self._enter(result, PipelineStage.AUTH)
                self._authenticate(result)

            self._enter(result, PipelineStage.BEFORE)
            for hook in requirements.before:
                self._call_hook(result, hook)

            self._enter(result, PipelineStage.VALIDATE)
            self._validate_request(result)

            self._enter(result, PipelineStage.HANDLER)
            self._call_handler(result)
            if self.config.validate_response:
                self._validate_response(result)

            self._enter(result, PipelineStage.AFTER)
            for hook in requirements.after:
                self._call_hook(result, hook)
        except BaseRouterError as error:
            self._fail(result, error)
        except Exception as exc:
            self._fail(result, HandlerError(exc))

        self._finish(result)
        return result

    def fail(self, request: Request, error: BaseRouterError,
             requirements: Requirements = EMPTY_REQUIREMENTS) -> PipelineResult:
        """
        Finalize a request that failed before reaching the pipeline, e.g. on a routing error.

        Only the ERROR and AFTER_ALL stages run.
        """
        result = PipelineResult(request=request, response=self.new_response(), requirements=requirements)
        self._fail(result, error)
        self._finish(result)
        return result

    def _enter(self, result: PipelineResult, stage: PipelineStage) -> None:
        result.stages.append(stage)
        self.log.debug("Pipeline stage", extra={"stage": stage.value, "request_id": result.request.request_id})

    def _check_rejections(self, result: PipelineResult) -> None:
        response = result.response
        if response.has_errors:
            raise HookRejectedError(response.errors, status_code=response.code)

    def _call_hook(self, result: PipelineResult, hook: Hook) -> None:
        invoke(hook, result.request, result.response, result.requirements)
        self._check_rejections(result)

    def _authenticate(self, result: PipelineResult) -> None:
        authenticator = result.requirements.authenticator or self.config.with_auth
        if authenticator is None:
            raise AuthError("No authenticator configured for this route")
        try:
            allowed = invoke(authenticator, result.request, result.response, result.requirements)
        except BaseRouterError:
            raise
        except Exception as exc:
            raise AuthError(f"Authenticator raised {type(exc).__name__}: {exc}") from exc
        self._check_rejections(result)
        if allowed is False:
            raise AuthError()

    def _validate_request(self, result: PipelineResult) -> None:
        requirements = result.requirements
        if not (requirements.has_request_checks or self.validator.auto_validate):
            return
        issues = self.validator.validate_request(result.request, requirements, result.route.pattern)
        if issues:
            raise RequestValidationError(issues)

    def _effective_timeout(self, requirements: Requirements) -> Optional[float]:
        if requirements.timeout is not None:
            return requirements.timeout
        return self.config.timeout

    def _call_handler(self, result: PipelineResult) -> None:
        handler = result.route.handler
        request, response = result.request, result.response
        timeout = self._effective_timeout(result.requirements)

        if timeout is None:
            value = invoke(handler, request, response)
        else:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='route-handler')
            future = executor.submit(invoke, handler, request, response)
            try:
                value = future.result(timeout=timeout)
            except FutureTimeoutError:
                # Late writes from the abandoned worker land on a sealed response
                response.seal()
                future.add_done_callback(_discard_late_result)
                raise HandlerTimeoutError(timeout)
            finally:
                executor.shutdown(wait=False)

        if value is not None and not response.body_set:
            response.body = value
        self._check_rejections(result)

    def _validate_response(self, result: PipelineResult) -> None:
        issues = self.validator.validate_response(result.response, result.requirements,
                                                  result.request.method, result.route.pattern)
        if issues:
            raise ResponseValidationError(issues)

    def _fail(self, result: PipelineResult, error: BaseRouterError) -> None:
        request = result.request
        result.stages.append(PipelineStage.ERROR)
        if error.context is None:
            error.context = create_error_context(
                request_id=request.request_id,
                method=request.method,
                path=request.path,
                route=result.route.pattern if result.route else None,
            )

        if isinstance(error, HandlerError):
            self.log.error("Unhandled exception in route", exc_info=error.cause, extra={
                "error_id": error.error_id,
                "route": error.context.route,
            })
        log_error_metrics(error)

        # Nothing the failed stage wrote to its response is carried over
        result.response.seal()
        response = self.new_response()
        response.code = error.status_code
        response.set_header('Content-Type', 'application/json')
        response.headers = error.headers
        response.body = format_error_response(error, include_details=self.config.output_error)
        result.response = response
        result.error = error

        if isinstance(error, HandlerTimeoutError):
            self._notify(self.config.on_timeout, result)
        elif isinstance(error, HandlerError):
            self._notify(self.config.on_error, result)

    def _notify(self, hook: Optional[Hook], result: PipelineResult) -> None:
        if hook is None:
            return
        try:
            invoke(hook, result.request, result.response, result.error)
        except Exception:
            self.log.exception("Error hook failed", extra={"error_id": result.error.error_id})

    def _finish(self, result: PipelineResult) -> None:
        result.stages.append(PipelineStage.AFTER_ALL)
        if self.config.after_all is not None:
            try:
                invoke(self.config.after_all, result.request, result.response, result.requirements)
            except Exception:
                self.log.exception("after_all hook failed", extra={"request_id": result.request.request_id})
        result.stages.append(PipelineStage.DONE)
        result.response.seal()
