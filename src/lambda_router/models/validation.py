"""
Validation result models.

A ``ValidationIssue`` is one field-level failure. Validators return lists of
them so that every failing header, query parameter, path parameter and body
field is reported together.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class IssueLocation(str, Enum):
    """Part of the request or response an issue was found in."""

    HEADERS = "headers"
    QUERY = "query"
    PATH = "path"
    BODY = "body"
    RESPONSE = "response"


class ValidationIssue(BaseModel):
    """A single validation failure."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    location: Annotated[IssueLocation, Field(
        description='Where in the request or response the failure was found',
        examples=['headers', 'body']
    )]

    field: Annotated[str, Field(
        description='Name or dotted path of the offending field; empty for the whole location',
        examples=['x-api-key', 'items.0.price']
    )]

    message: Annotated[str, Field(
        description='Human readable description of the failure',
        examples=['missing required header']
    )]
