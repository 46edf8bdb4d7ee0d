"""
Response accumulator serialized into an API Gateway proxy result.
"""

import base64
import json
from typing import Any, Dict, List, Optional

from lambda_router.utils.observability import logger


class Response:
    """Mutable response built up by hooks and the handler."""

    def __init__(self, headers: Optional[Dict[str, str]] = None) -> None:
        self._code = 200
        self._headers: Dict[str, str] = dict(headers or {})
        self._body: Any = None
        self._body_set = False
        self._errors: List[Dict[str, str]] = []
        self._sealed = False
        self.is_base64_encoded = False

    def _writable(self, attribute: str) -> bool:
        if self._sealed:
            logger.warning("Ignoring write to sealed response", extra={"attribute": attribute})
            return False
        return True

    @property
    def code(self) -> int:
        return self._code

    @code.setter
    def code(self, value: int) -> None:
        if self._writable('code'):
            self._code = int(value)

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @headers.setter
    def headers(self, value: Dict[str, str]) -> None:
        if self._writable('headers'):
            self._headers.update(value)

    def set_header(self, name: str, value: str) -> None:
        if self._writable('headers'):
            self._headers[name] = value

    @property
    def body(self) -> Any:
        return self._body

    @body.setter
    def body(self, value: Any) -> None:
        if self._writable('body'):
            self._body = value
            self._body_set = True

    @property
    def body_set(self) -> bool:
        return self._body_set

    @property
    def errors(self) -> List[Dict[str, str]]:
        return list(self._errors)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    def set_error(self, key_path: str, message: str) -> None:
        """
        Record an error that stops the pipeline after the current stage.

        The status code becomes 400 unless a hook already chose an error code.
        """
        if not self._writable('errors'):
            return
        self._errors.append({'key_path': key_path, 'message': message})
        if self._code < 400:
            self._code = 400

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Reject every further write, used once a response has been finalized elsewhere."""
        self._sealed = True

    @property
    def serialized_body(self) -> str:
        body = self._body
        if body is None:
            return ''
        if isinstance(body, bytes):
            self.is_base64_encoded = True
            return base64.b64encode(body).decode('ascii')
        if isinstance(body, str):
            return body
        return json.dumps(body, default=str)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize into the API Gateway proxy result shape."""
        body = self.serialized_body
        return {
            'statusCode': self._code,
            'headers': dict(self._headers),
            'body': body,
            'isBase64Encoded': self.is_base64_encoded,
        }

    def __repr__(self) -> str:
        return f"Response(code={self._code!r}, body_set={self._body_set!r})"
