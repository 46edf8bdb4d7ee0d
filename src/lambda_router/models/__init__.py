"""
Router Models Package

This package contains the Pydantic models used throughout the router:
configuration, per-route requirements and validation results.
"""

from .config import CacheMode, RouterConfig, RoutingMode
from .env_vars import RouterEnvVars, get_router_env_vars
from .requirements import EMPTY_REQUIREMENTS, Hook, Requirements, SchemaRef
from .validation import IssueLocation, ValidationIssue

__all__ = [
    # Configuration
    "CacheMode",
    "RouterConfig",
    "RoutingMode",
    "RouterEnvVars",
    "get_router_env_vars",

    # Requirements
    "EMPTY_REQUIREMENTS",
    "Hook",
    "Requirements",
    "SchemaRef",

    # Validation
    "IssueLocation",
    "ValidationIssue",
]
