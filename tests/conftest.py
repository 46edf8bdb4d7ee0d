"""
Pytest configuration and shared fixtures for lambda-router.

This module provides API Gateway event factories, handler trees written to
``tmp_path`` and an OpenAPI document used across unit and integration tests.
"""

import base64
import json
import os
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from unittest.mock import Mock

import pytest

from lambda_router.utils.observability import metrics


# Test environment configuration
@pytest.fixture(scope="session", autouse=True)
def test_environment():
    """Set up test environment variables."""
    os.environ.update({
        "AWS_DEFAULT_REGION": "us-east-1",
        "AWS_ACCESS_KEY_ID": "test",
        "AWS_SECRET_ACCESS_KEY": "test",
        "ENVIRONMENT": "test",
        "POWERTOOLS_SERVICE_NAME": "test-lambda-router",
        "POWERTOOLS_METRICS_NAMESPACE": "TestLambdaRouter",
        "LOG_LEVEL": "DEBUG",
        "POWERTOOLS_TRACE_DISABLED": "true",  # Disable X-Ray in tests
    })


@pytest.fixture(autouse=True)
def reset_metrics():
    """Drop metrics buffered by the previous test."""
    metrics.clear_metrics()
    yield
    metrics.clear_metrics()


# Event fixtures
@pytest.fixture
def make_event() -> Callable[..., Dict[str, Any]]:
    """Factory for API Gateway REST (v1) and HTTP API (v2) proxy events."""

    def _make(
        method: str = "GET",
        path: str = "/",
        headers: Optional[Dict[str, str]] = None,
        query: Optional[Dict[str, str]] = None,
        body: Any = None,
        base64_body: bool = False,
        version: str = "1.0",
    ) -> Dict[str, Any]:
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
            headers = {"Content-Type": "application/json", **(headers or {})}
        if body is not None and base64_body:
            body = base64.b64encode(body.encode("utf-8")).decode("ascii")

        if version == "2.0":
            return {
                "version": "2.0",
                "routeKey": "$default",
                "rawPath": path,
                "rawQueryString": "&".join(f"{k}={v}" for k, v in (query or {}).items()),
                "headers": headers or {},
                "queryStringParameters": query,
                "requestContext": {
                    "requestId": "test-request-id-v2",
                    "http": {
                        "method": method,
                        "path": path,
                        "protocol": "HTTP/1.1",
                        "sourceIp": "127.0.0.1",
                        "userAgent": "test-agent/1.0",
                    },
                    "stage": "$default",
                },
                "body": body,
                "isBase64Encoded": base64_body,
            }

        return {
            "httpMethod": method,
            "path": path,
            "resource": "/{proxy+}",
            "headers": headers or {},
            "requestContext": {
                "requestId": "test-request-id-123",
                "accountId": "123456789012",
                "stage": "test",
                "httpMethod": method,
                "path": path,
                "identity": {
                    "sourceIp": "127.0.0.1",
                    "userAgent": "test-agent/1.0",
                },
            },
            "pathParameters": None,
            "queryStringParameters": query,
            "multiValueQueryStringParameters": None,
            "stageVariables": None,
            "body": body,
            "isBase64Encoded": base64_body,
        }

    return _make


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context for testing."""
    context = Mock()
    context.function_name = "test-lambda-function"
    context.function_version = "1"
    context.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-lambda-function"
    context.memory_limit_in_mb = 512
    context.get_remaining_time_in_millis = lambda: 30000
    context.aws_request_id = "test-request-id-123"
    context.log_group_name = "/aws/lambda/test-lambda-function"
    context.log_stream_name = "2024/01/01/[$LATEST]test123"
    return context


# Handler tree fixtures
@pytest.fixture
def write_handlers(tmp_path) -> Callable[[Dict[str, str]], Path]:
    """Write handler modules below ``tmp_path/handlers`` and return that directory."""

    def _write(files: Dict[str, str], root: str = "handlers") -> Path:
        base = tmp_path / root
        for relative, source in files.items():
            file_path = base / relative
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(textwrap.dedent(source), encoding="utf-8")
        base.mkdir(parents=True, exist_ok=True)
        return base

    return _write


@pytest.fixture
def users_tree(write_handlers) -> Path:
    """A small directory-mode API with static, dynamic and nested routes."""
    return write_handlers({
        "index.py": """
            def get(request, response):
                response.body = {"route": "root"}
        """,
        "users/__init__.py": """
            def get(request, response):
                response.body = {"route": "list-users"}

            def post(request, response):
                response.code = 201
                response.body = {"route": "create-user", "name": request.json["name"]}

            requirements = {
                "post": {"required_body": {"type": "object", "required": ["name"]}},
            }
        """,
        "users/me.py": """
            def get(request, response):
                response.body = {"route": "me"}
        """,
        "users/{id}.py": """
            def get(request, response):
                response.body = {"route": "get-user", "id": request.path_params["id"]}

            def delete(request, response):
                response.code = 204
        """,
        "users/{id}/posts/[post_id].py": """
            def get(request, response):
                response.body = {
                    "route": "get-post",
                    "id": request.path_params["id"],
                    "post_id": request.path_params["post_id"],
                }
        """,
        "_private.py": """
            def get(request, response):
                response.body = {"route": "private"}
        """,
    })


OPENAPI_DOCUMENT = """
openapi: 3.0.3
info:
  title: Products
  version: 1.0.0
paths:
  /products:
    post:
      requestBody:
        required: true
        content:
          application/json:
            schema:
              $ref: '#/components/schemas/Product'
      responses:
        '201':
          content:
            application/json:
              schema:
                $ref: '#/components/schemas/Product'
  /products/{productId}:
    parameters:
      - name: productId
        in: path
        required: true
        schema:
          type: integer
          minimum: 1
    get:
      parameters:
        - name: x-api-key
          in: header
          required: true
          schema:
            type: string
        - name: expand
          in: query
          schema:
            type: boolean
      responses:
        '200':
          content:
            application/json:
              schema:
                $ref: '#/components/schemas/Product'
components:
  schemas:
    Product:
      type: object
      required: [name, price]
      properties:
        name:
          type: string
          minLength: 1
        price:
          type: number
          minimum: 0
        tags:
          type: array
          items:
            $ref: '#/components/schemas/Tag'
    Tag:
      type: string
      maxLength: 10
"""


@pytest.fixture
def openapi_path(tmp_path) -> str:
    """Path of an OpenAPI 3.0 document describing a products API."""
    path = tmp_path / "openapi.yml"
    path.write_text(OPENAPI_DOCUMENT, encoding="utf-8")
    return str(path)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
