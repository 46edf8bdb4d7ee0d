"""
Per-route requirements model.

A ``Requirements`` record carries every validation and middleware directive
for one (method, route) pair. It is built once while the route table is
constructed, from decorator metadata, a module-level ``requirements`` dict or
both, and never changes while requests are handled.
"""

from typing import Annotated, Any, Callable, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# before/after/auth hooks: hook(request, response, requirements)
Hook = Callable[..., Any]

# A named component ("Product" or "#/components/schemas/Product") or an inline schema
SchemaRef = Union[str, Dict[str, Any]]


class Requirements(BaseModel):
    """Validation and middleware directives for a single route method."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra='forbid')

    required_headers: Annotated[Tuple[str, ...], Field(
        description='Header names that must be present (case-insensitive)',
        examples=[('x-api-key',)]
    )] = ()

    available_headers: Annotated[Optional[Tuple[str, ...]], Field(
        description='Optional headers that may be present; when set, any other header is rejected'
    )] = None

    required_query: Annotated[Tuple[str, ...], Field(
        description='Query string parameters that must be present'
    )] = ()

    available_query: Annotated[Optional[Tuple[str, ...]], Field(
        description='Optional query parameters; when set, any other query parameter is rejected'
    )] = None

    required_path: Annotated[Tuple[str, ...], Field(
        description='Path parameters that must be bound and non-empty'
    )] = ()

    required_body: Annotated[Optional[SchemaRef], Field(
        description='Schema the request body must satisfy'
    )] = None

    response_body: Annotated[Optional[SchemaRef], Field(
        description='Schema the response body must satisfy when response validation is on'
    )] = None

    auth_required: Annotated[bool, Field(
        description='Whether the authentication hook must approve the request'
    )] = False

    authenticator: Annotated[Optional[Hook], Field(
        description='Route specific authentication hook; falls back to the global with_auth'
    )] = None

    before: Annotated[Tuple[Hook, ...], Field(
        description='Hooks run after authentication and before validation'
    )] = ()

    after: Annotated[Tuple[Hook, ...], Field(
        description='Hooks run after a successful handler invocation'
    )] = ()

    timeout: Annotated[Optional[float], Field(
        gt=0,
        description='Handler timeout in seconds, overrides the global timeout'
    )] = None

    summary: Annotated[Optional[str], Field(
        description='Free text description of the route'
    )] = None

    @field_validator('required_headers', 'available_headers', mode='before')
    @classmethod
    def normalize_header_names(cls, v: Any) -> Any:
        """Header names are matched case-insensitively."""
        if v is None:
            return v
        if isinstance(v, str):
            v = (v,)
        return tuple(name.lower() for name in v)

    @field_validator('required_query', 'available_query', 'required_path', mode='before')
    @classmethod
    def coerce_names(cls, v: Any) -> Any:
        """Accept a single name or any iterable of names."""
        if isinstance(v, str):
            return (v,)
        return tuple(v) if v is not None else v

    @field_validator('before', 'after', mode='before')
    @classmethod
    def coerce_hooks(cls, v: Any) -> Any:
        """Accept a single hook or an iterable of hooks."""
        if v is None:
            return ()
        if callable(v):
            return (v,)
        return tuple(v)

    @property
    def has_request_checks(self) -> bool:
        """Whether any request level check is declared."""
        return bool(
            self.required_headers
            or self.available_headers is not None
            or self.required_query
            or self.available_query is not None
            or self.required_path
            or self.required_body is not None
        )

    def merge(self, other: 'Requirements') -> 'Requirements':
        """
        Combine two requirement records.

        Hook lists and required-name lists are concatenated in order with
        duplicates removed; scalar values from ``other`` win when they are set.

        Args:
            other: Requirements applied on top of this record

        Returns:
            New merged Requirements instance
        """
        def _names(left, right):
            if left is None and right is None:
                return None
            return tuple(dict.fromkeys((left or ()) + (right or ())))

        return Requirements(
            required_headers=_names(self.required_headers, other.required_headers),
            available_headers=_names(self.available_headers, other.available_headers),
            required_query=_names(self.required_query, other.required_query),
            available_query=_names(self.available_query, other.available_query),
            required_path=_names(self.required_path, other.required_path),
            required_body=other.required_body if other.required_body is not None else self.required_body,
            response_body=other.response_body if other.response_body is not None else self.response_body,
            auth_required=self.auth_required or other.auth_required,
            authenticator=other.authenticator or self.authenticator,
            before=self.before + other.before,
            after=self.after + other.after,
            timeout=other.timeout if other.timeout is not None else self.timeout,
            summary=other.summary or self.summary,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Requirements':
        """
        Build requirements from a plain dict as declared in a handler module.

        Accepts ``auth`` as an alias of ``auth_required`` and ``with_auth``
        as an alias of ``authenticator``.

        Args:
            data: Requirement directives keyed by field name

        Returns:
            Validated Requirements instance
        """
        if not data:
            return cls()
        values = dict(data)
        if 'auth' in values:
            values['auth_required'] = values.pop('auth')
        if 'with_auth' in values:
            values['authenticator'] = values.pop('with_auth')
        return cls.model_validate(values)


EMPTY_REQUIREMENTS = Requirements()
