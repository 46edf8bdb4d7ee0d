"""
Request and response validation.

Presence checks (required headers, query and path parameters) are done here;
full schema evaluation of bodies and OpenAPI parameters is delegated to
``jsonschema`` through ``SchemaDocument``. Every check runs and every failure
is collected, so a client learns about all of its mistakes in one response.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from lambda_router.http.request import Request
from lambda_router.http.response import Response
from lambda_router.models.requirements import Requirements, SchemaRef
from lambda_router.models.validation import IssueLocation, ValidationIssue
from lambda_router.utils.observability import tracer
from lambda_router.validation.schema import SchemaDocument

_PARAMETER_LOCATIONS = {
    'header': IssueLocation.HEADERS,
    'query': IssueLocation.QUERY,
    'path': IssueLocation.PATH,
}


def _issue(location: IssueLocation, field: str, message: str) -> ValidationIssue:
    return ValidationIssue(location=location, field=field, message=message)


def _coerce(value: Any, schema: Dict[str, Any]) -> Any:
    """Convert a string parameter to the scalar type its schema declares."""
    if not isinstance(value, str):
        return value
    declared = schema.get('type')
    try:
        if declared == 'integer':
            return int(value)
        if declared == 'number':
            return float(value)
        if declared == 'boolean' and value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        if declared == 'array':
            return [_coerce(item, schema.get('items') or {}) for item in value.split(',')]
    except ValueError:
        return value
    return value


class RequestValidator:
    """Checks requests and responses against route requirements and the OpenAPI document."""

    def __init__(self, document: Optional[SchemaDocument] = None, auto_validate: bool = False) -> None:
        """
        Initialize the validator.

        Args:
            document: Loaded OpenAPI document; inline schemas work without one
            auto_validate: Also check every request against its OpenAPI operation
        """
        self.document = document or SchemaDocument({})
        self.auto_validate = auto_validate and document is not None

    def schema_issues(self, schema: SchemaRef, instance: Any, location: IssueLocation,
                      prefix: str = '') -> List[ValidationIssue]:
        """Evaluate an instance against a schema and report every error."""
        validator = self.document.validator(schema)
        errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path])
        issues = []
        for error in errors:
            path = '.'.join(str(part) for part in error.absolute_path)
            field = '.'.join(part for part in (prefix, path) if part)
            issues.append(_issue(location, field, error.message))
        return issues

    @staticmethod
    def _presence(names: Iterable[str], present: Dict[str, Any], location: IssueLocation,
                  what: str) -> List[ValidationIssue]:
        # Headers and query parameters only need to be present; path parameters must be non-empty
        def missing(name: str) -> bool:
            if name not in present:
                return True
            return location == IssueLocation.PATH and not present[name]

        return [_issue(location, name, f"missing required {what}") for name in names if missing(name)]

    @staticmethod
    def _restriction(allowed: Optional[Iterable[str]], required: Iterable[str], present: Iterable[str],
                     location: IssueLocation, what: str) -> List[ValidationIssue]:
        if allowed is None:
            return []
        permitted = set(allowed) | set(required)
        return [_issue(location, name, f"unexpected {what}") for name in present if name not in permitted]

    def _body_issues(self, request: Request, schema: SchemaRef) -> List[ValidationIssue]:
        body = request.body
        if body is None:
            return [_issue(IssueLocation.BODY, '', 'request body is required')]
        if isinstance(body, bytes) or (isinstance(body, str) and 'json' in request.content_type):
            return [_issue(IssueLocation.BODY, '', 'request body is not valid JSON')]
        return self.schema_issues(schema, body, IssueLocation.BODY)

    @tracer.capture_method
    def validate_request(self, request: Request, requirements: Requirements,
                         route: Optional[str] = None) -> List[ValidationIssue]:
        """
        Run every applicable request check.

        Args:
            request: Normalized request with path parameters bound
            requirements: Route requirements
            route: Matched route pattern, used to find the OpenAPI operation

        Returns:
            Every failure found, empty when the request is valid
        """
        headers = request.headers
        query = request.query
        path_params = request.path_params

        issues: List[ValidationIssue] = []
        issues += self._presence(requirements.required_headers, headers, IssueLocation.HEADERS, 'header')
        issues += self._restriction(requirements.available_headers, requirements.required_headers,
                                    headers, IssueLocation.HEADERS, 'header')
        issues += self._presence(requirements.required_query, query, IssueLocation.QUERY, 'query parameter')
        issues += self._restriction(requirements.available_query, requirements.required_query,
                                    query, IssueLocation.QUERY, 'query parameter')
        issues += self._presence(requirements.required_path, path_params, IssueLocation.PATH, 'path parameter')

        if requirements.required_body is not None:
            issues += self._body_issues(request, requirements.required_body)

        if self.auto_validate and route:
            issues += self._operation_issues(request, route, body_checked=requirements.required_body is not None)

        return issues

    def _operation_issues(self, request: Request, route: str, body_checked: bool) -> List[ValidationIssue]:
        operation = self.document.operation(request.method, route)
        if operation is None:
            return []

        sources = {
            'header': request.headers,
            'query': request.query,
            'path': self.document.path_parameters(route, request.path_params),
        }
        issues: List[ValidationIssue] = []
        for parameter in operation['parameters']:
            location = _PARAMETER_LOCATIONS.get(parameter.get('in'))
            if location is None:
                continue
            name = parameter.get('name', '')
            lookup = name.lower() if location == IssueLocation.HEADERS else name
            values = sources[parameter['in']]
            if lookup not in values:
                if parameter.get('required') or location == IssueLocation.PATH:
                    issues.append(_issue(location, lookup, f"missing required {parameter['in']} parameter"))
                continue
            schema = parameter.get('schema')
            if schema:
                issues += self.schema_issues(schema, _coerce(values[lookup], self.document.resolve(schema)),
                                             location, prefix=lookup)

        if not body_checked:
            schema = self.document.request_body_schema(operation)
            if request.body is None:
                if self.document.request_body_required(operation):
                    issues.append(_issue(IssueLocation.BODY, '', 'request body is required'))
            elif schema is not None:
                issues += self._body_issues(request, schema)
        return issues

    @tracer.capture_method
    def validate_response(self, response: Response, requirements: Requirements,
                          method: str, route: Optional[str] = None) -> List[ValidationIssue]:
        """
        Check a response body against its declared schema.

        ``requirements.response_body`` wins; with auto validation the
        operation's response schema for the status code is used otherwise.
        A route's ``response_body`` describes its success body only.
        """
        schema: Optional[SchemaRef] = requirements.response_body if response.code < 400 else None
        if schema is None and self.auto_validate and route:
            operation = self.document.operation(method, route)
            if operation is not None:
                schema = self.document.response_schema(operation, response.code)
        if schema is None:
            return []

        body = response.body
        if isinstance(body, (str, bytes)):
            try:
                body = json.loads(body)
            except ValueError:
                return [_issue(IssueLocation.RESPONSE, '', 'response body is not valid JSON')]
        return self.schema_issues(schema, body, IssueLocation.RESPONSE)
