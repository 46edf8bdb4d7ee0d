"""
Environment variable models for type-safe router defaults.

These values seed ``RouterConfig.from_env``; explicit keyword arguments
always take precedence over the environment.
"""

from typing import Annotated, Optional

from aws_lambda_env_modeler import BaseModel, get_environment_variables
from pydantic import Field


class RouterEnvVars(BaseModel):
    """Environment variables read by the router."""

    # Prefix stripped from every inbound path, e.g. "api/v1"
    ROUTER_BASE_PATH: Annotated[str, Field(
        description='Base path prefix removed before route matching'
    )] = ''

    # Global handler timeout, unset means no timeout guard
    ROUTER_TIMEOUT_SECONDS: Annotated[Optional[float], Field(
        description='Global handler timeout in seconds',
        gt=0,
        le=900
    )] = None

    ROUTER_OUTPUT_ERROR: Annotated[str, Field(
        description='Include internal error details in error responses (true/false)',
        pattern=r'^(true|false)$'
    )] = 'false'

    ROUTER_CACHE_MODE: Annotated[str, Field(
        description='Route cache mode',
        pattern=r'^(all|static|dynamic|none)$'
    )] = 'all'

    ROUTER_CACHE_SIZE: Annotated[int, Field(
        description='Maximum number of cached dynamic route lookups',
        ge=1,
        le=10000
    )] = 128

    # Environment name (dev, staging, prod)
    ENVIRONMENT: Annotated[str, Field(
        description='Deployment environment name'
    )] = 'dev'

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == 'prod'

    @property
    def output_error(self) -> bool:
        """Whether error responses carry diagnostic detail."""
        return self.ROUTER_OUTPUT_ERROR.lower() == 'true' and not self.is_production


def get_router_env_vars() -> RouterEnvVars:
    """
    Get typed environment variables for the router.

    Returns:
        Validated environment variables model instance
    """
    return get_environment_variables(model=RouterEnvVars)
