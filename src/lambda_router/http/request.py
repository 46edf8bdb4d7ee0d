"""
Normalized request built from an API Gateway proxy event.

Both REST API (payload v1) and HTTP API (payload v2) events are accepted. The
event is wrapped with the matching AWS Lambda Powertools data class and
exposed through one read-only interface; handlers never need to know which
payload version invoked them.
"""

import base64
import json
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs

from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent, APIGatewayProxyEventV2


class Request:
    """Read-only view of an inbound API Gateway event."""

    def __init__(self, event: Dict[str, Any], lambda_context: Any = None) -> None:
        """
        Initialize the request.

        Args:
            event: Raw API Gateway proxy event
            lambda_context: Lambda context object, if any
        """
        self._event = event or {}
        self._is_v2 = self._event.get('version') == '2.0'
        self._proxy = APIGatewayProxyEventV2(self._event) if self._is_v2 else APIGatewayProxyEvent(self._event)
        self._lambda_context = lambda_context
        self._headers = {name.lower(): value for name, value in (self._event.get('headers') or {}).items()}
        self._path_params: Dict[str, str] = dict(self._event.get('pathParameters') or {})
        self._route: Optional[str] = None
        self._body_cache: Any = _UNSET
        # Free-form storage that before hooks may populate for the handler
        self.context: Dict[str, Any] = {}

    @property
    def event(self) -> Dict[str, Any]:
        return self._event

    @property
    def proxy_event(self):
        """The Powertools data class wrapping the raw event."""
        return self._proxy

    @property
    def lambda_context(self) -> Any:
        return self._lambda_context

    @property
    def method(self) -> str:
        if self._is_v2:
            method = self._event.get('requestContext', {}).get('http', {}).get('method')
        else:
            method = self._event.get('httpMethod')
        return (method or 'GET').upper()

    @property
    def path(self) -> str:
        if self._is_v2:
            path = self._event.get('rawPath')
        else:
            path = self._event.get('path')
        return path or '/'

    @property
    def route(self) -> Optional[str]:
        """The matched route pattern, available once the router has resolved the request."""
        return self._route

    @property
    def request_id(self) -> str:
        return self._event.get('requestContext', {}).get('requestId') or 'unknown'

    @property
    def headers(self) -> Dict[str, str]:
        """Headers with lower-cased names."""
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._headers.get(name.lower(), default)

    @property
    def query(self) -> Dict[str, str]:
        return dict(self._event.get('queryStringParameters') or {})

    @property
    def multi_query(self) -> Dict[str, List[str]]:
        """Query parameters with every value, for repeated keys."""
        multi = self._event.get('multiValueQueryStringParameters')
        if multi:
            return {key: list(values) for key, values in multi.items()}
        # HTTP API joins repeated values with commas
        return {key: value.split(',') for key, value in self.query.items()}

    @property
    def path_params(self) -> Dict[str, str]:
        return dict(self._path_params)

    @property
    def authorizer(self) -> Dict[str, Any]:
        return self._event.get('requestContext', {}).get('authorizer') or {}

    @property
    def cookies(self) -> List[str]:
        if self._is_v2:
            return list(self._event.get('cookies') or [])
        raw = self.header('cookie')
        return [part.strip() for part in raw.split(';')] if raw else []

    @property
    def content_type(self) -> str:
        return (self.header('content-type') or '').split(';')[0].strip().lower()

    @property
    def raw_bytes(self) -> Optional[bytes]:
        """Body as bytes, base64 decoded when the event says so."""
        body = self._event.get('body')
        if body is None:
            return None
        if self._event.get('isBase64Encoded'):
            try:
                return base64.b64decode(body)
            except ValueError:
                # Malformed base64 is kept as sent
                pass
        return body.encode('utf-8')

    @property
    def raw_body(self) -> Union[str, bytes, None]:
        """Body as text; bytes when a base64 payload is not UTF-8 text."""
        body = self._event.get('body')
        if body is None or not self._event.get('isBase64Encoded'):
            return body
        data = self.raw_bytes
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError:
            return data

    @property
    def body(self) -> Any:
        """
        Parsed body.

        JSON payloads are decoded, form payloads become a dict of first
        values, binary payloads stay bytes and anything else is returned as
        text. A JSON content type with an undecodable payload is returned as
        text so validation can report it.
        """
        if self._body_cache is _UNSET:
            self._body_cache = self._parse_body()
        return self._body_cache

    @property
    def json(self) -> Any:
        body = self.body
        return body if isinstance(body, (dict, list)) else None

    def _parse_body(self) -> Any:
        raw = self.raw_body
        if raw is None or raw == '':
            return None
        if isinstance(raw, bytes):
            return raw
        if self.content_type == 'application/x-www-form-urlencoded':
            return {key: values[0] for key, values in parse_qs(raw, keep_blank_values=True).items()}
        try:
            return json.loads(raw)
        except ValueError:
            return raw

    def bind_route(self, route: str, path_params: Dict[str, str]) -> None:
        """Record the matched route pattern and its bound parameters."""
        self._route = route
        self._path_params = {**self._path_params, **path_params}

    def to_dict(self) -> Dict[str, Any]:
        """Summary used for verbose logging."""
        body = self.body
        if isinstance(body, bytes):
            body = f"<{len(body)} bytes>"
        return {
            'method': self.method,
            'path': self.path,
            'route': self.route,
            'headers': self.headers,
            'query': self.query,
            'path_params': self.path_params,
            'body': body,
        }

    def __repr__(self) -> str:
        return f"Request(method={self.method!r}, path={self.path!r})"


class _Unset:
    def __repr__(self) -> str:
        return '<unset>'


_UNSET = _Unset()
