"""
Router configuration model.

``RouterConfig`` is the single configuration surface of the router: the
discovery mode and its source, validation switches, cache mode, global
timeout and the global hooks. It is validated once when the router is built.
"""

from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lambda_router.models.env_vars import get_router_env_vars
from lambda_router.models.requirements import Hook


class RoutingMode(str, Enum):
    """Strategy used to build the route table."""

    DIRECTORY = "directory"
    PATTERN = "pattern"
    LIST = "list"
    DECORATOR = "decorator"


class CacheMode(str, Enum):
    """
    Which resolved path lookups are memoized.

    ``static`` only memoizes routes without path parameters, ``dynamic`` only
    routes with them. Handler modules are always imported once per process.
    """

    ALL = "all"
    STATIC = "static"
    DYNAMIC = "dynamic"
    NONE = "none"

    def caches(self, is_dynamic: bool) -> bool:
        if self == CacheMode.ALL:
            return True
        if self == CacheMode.STATIC:
            return not is_dynamic
        if self == CacheMode.DYNAMIC:
            return is_dynamic
        return False


class RouterConfig(BaseModel):
    """Configuration for a ``Router`` instance."""

    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=False)

    mode: Annotated[RoutingMode, Field(
        description='Route discovery mode'
    )] = RoutingMode.LIST

    handlers: Annotated[Optional[str], Field(
        description='Handler directory (directory mode) or glob expression (pattern mode)',
        examples=['api/handlers', 'api/handlers/**/*.controller.py']
    )] = None

    routes: Annotated[Optional[Dict[str, Union[str, Callable[..., Any]]]], Field(
        description='Explicit "METHOD::/path" map to handler files or callables (list mode)'
    )] = None

    controllers: Annotated[List[Any], Field(
        default_factory=list,
        description='Classes or instances whose methods carry @route metadata (decorator mode)'
    )]

    base_path: Annotated[str, Field(
        description='Prefix stripped from inbound paths before matching',
        examples=['api/v1']
    )] = ''

    schema_path: Annotated[Optional[str], Field(
        description='Path to an OpenAPI document in YAML or JSON'
    )] = None

    auto_validate: Annotated[bool, Field(
        description='Validate requests against the OpenAPI operation of the matched route'
    )] = False

    validate_response: Annotated[bool, Field(
        description='Validate handler responses before they are returned'
    )] = False

    cache_mode: Annotated[CacheMode, Field(
        description='Route cache mode'
    )] = CacheMode.ALL

    cache_size: Annotated[int, Field(
        ge=1,
        description='Maximum number of memoized path lookups'
    )] = 128

    timeout: Annotated[Optional[float], Field(
        gt=0,
        description='Global handler timeout in seconds'
    )] = None

    output_error: Annotated[bool, Field(
        description='Include internal diagnostic detail in error responses'
    )] = False

    before_all: Optional[Hook] = None
    after_all: Optional[Hook] = None
    with_auth: Optional[Hook] = None
    on_error: Optional[Hook] = None
    on_timeout: Optional[Hook] = None

    logger: Annotated[Optional[Any], Field(
        description='Logger used instead of the package logger'
    )] = None

    verbose_logging: Annotated[bool, Field(
        description='Log every request and response at INFO level'
    )] = False

    default_headers: Annotated[Dict[str, str], Field(
        default_factory=lambda: {'Content-Type': 'application/json'},
        description='Headers set on every response before the pipeline runs'
    )]

    @field_validator('base_path')
    @classmethod
    def normalize_base_path(cls, v: str) -> str:
        """Store the base path without surrounding slashes."""
        return v.strip().strip('/')

    @field_validator('routes')
    @classmethod
    def validate_route_keys(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Every list mode key must read METHOD::/path."""
        if v is None:
            return v
        for key in v:
            method, sep, path = key.partition('::')
            if not sep or not method.strip() or not path.strip():
                raise ValueError(f"route key '{key}' must have the form 'METHOD::/path'")
        return v

    @model_validator(mode='after')
    def validate_mode_source(self) -> 'RouterConfig':
        """Each discovery mode needs its own source."""
        if self.mode in (RoutingMode.DIRECTORY, RoutingMode.PATTERN) and not self.handlers:
            raise ValueError(f"mode '{self.mode.value}' requires 'handlers'")
        if self.mode == RoutingMode.LIST and self.routes is None:
            raise ValueError("mode 'list' requires 'routes'")
        if self.mode == RoutingMode.DECORATOR and not self.controllers:
            raise ValueError("mode 'decorator' requires 'controllers'")
        if self.auto_validate and not self.schema_path:
            raise ValueError("'auto_validate' requires 'schema_path'")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> 'RouterConfig':
        """
        Build a configuration seeded from environment variables.

        Args:
            **overrides: Explicit configuration values, these win over the environment

        Returns:
            Validated RouterConfig instance
        """
        env = get_router_env_vars()
        values: Dict[str, Any] = {
            'base_path': env.ROUTER_BASE_PATH,
            'timeout': env.ROUTER_TIMEOUT_SECONDS,
            'output_error': env.output_error,
            'cache_mode': env.ROUTER_CACHE_MODE,
            'cache_size': env.ROUTER_CACHE_SIZE,
        }
        values.update(overrides)
        return cls(**values)
