"""
Unit tests for router configuration and environment defaults.
"""

import pytest
from aws_lambda_env_modeler import get_environment_variables
from pydantic import ValidationError

from lambda_router.models.config import CacheMode, RouterConfig, RoutingMode
from lambda_router.models.env_vars import get_router_env_vars


def handler(request, response):
    pass


@pytest.fixture
def clean_env(monkeypatch):
    """Clear the cached environment model around each test."""
    for name in ("ROUTER_BASE_PATH", "ROUTER_TIMEOUT_SECONDS", "ROUTER_OUTPUT_ERROR",
                 "ROUTER_CACHE_MODE", "ROUTER_CACHE_SIZE"):
        monkeypatch.delenv(name, raising=False)
    get_environment_variables.cache_clear()
    yield monkeypatch
    get_environment_variables.cache_clear()


class TestRouterConfig:
    """Test cases for RouterConfig validation."""

    def test_defaults(self):
        """Test the default configuration of a list mode router."""
        config = RouterConfig(routes={"GET::/": handler})

        assert config.mode == RoutingMode.LIST
        assert config.cache_mode == CacheMode.ALL
        assert config.timeout is None
        assert config.output_error is False
        assert config.default_headers == {"Content-Type": "application/json"}

    def test_base_path_is_normalized(self):
        """Test that surrounding slashes are removed from the base path."""
        config = RouterConfig(routes={}, base_path="/api/v1/")

        assert config.base_path == "api/v1"

    def test_invalid_route_key(self):
        """Test that list mode keys must read METHOD::/path."""
        with pytest.raises(ValidationError) as exc_info:
            RouterConfig(routes={"/users": handler})

        assert "METHOD::/path" in str(exc_info.value)

    @pytest.mark.parametrize("mode", ["directory", "pattern"])
    def test_file_modes_require_handlers(self, mode):
        """Test that directory and pattern modes need a handlers source."""
        with pytest.raises(ValidationError):
            RouterConfig(mode=mode)

    def test_list_mode_requires_routes(self):
        """Test that list mode needs a routes map."""
        with pytest.raises(ValidationError):
            RouterConfig(mode="list")

    def test_decorator_mode_requires_controllers(self):
        """Test that decorator mode needs controllers."""
        with pytest.raises(ValidationError):
            RouterConfig(mode="decorator")

    def test_auto_validate_requires_schema(self):
        """Test that auto validation needs an OpenAPI document."""
        with pytest.raises(ValidationError):
            RouterConfig(routes={}, auto_validate=True)

    def test_timeout_must_be_positive(self):
        """Test global timeout validation."""
        with pytest.raises(ValidationError):
            RouterConfig(routes={}, timeout=-1)


class TestCacheMode:
    """Test cases for cache mode semantics."""

    @pytest.mark.parametrize("mode,static,dynamic", [
        (CacheMode.ALL, True, True),
        (CacheMode.STATIC, True, False),
        (CacheMode.DYNAMIC, False, True),
        (CacheMode.NONE, False, False),
    ])
    def test_caches(self, mode, static, dynamic):
        """Test which route kinds each mode memoizes."""
        assert mode.caches(is_dynamic=False) is static
        assert mode.caches(is_dynamic=True) is dynamic


class TestEnvironmentDefaults:
    """Test cases for environment driven configuration."""

    def test_env_defaults(self, clean_env):
        """Test the defaults when no router variables are set."""
        env = get_router_env_vars()

        assert env.ROUTER_BASE_PATH == ""
        assert env.ROUTER_TIMEOUT_SECONDS is None
        assert env.output_error is False

    def test_from_env(self, clean_env):
        """Test that environment variables seed the configuration."""
        clean_env.setenv("ROUTER_BASE_PATH", "/api/")
        clean_env.setenv("ROUTER_TIMEOUT_SECONDS", "2.5")
        clean_env.setenv("ROUTER_OUTPUT_ERROR", "true")
        clean_env.setenv("ROUTER_CACHE_MODE", "static")

        config = RouterConfig.from_env(routes={"GET::/": handler})

        assert config.base_path == "api"
        assert config.timeout == 2.5
        assert config.output_error is True
        assert config.cache_mode == CacheMode.STATIC

    def test_overrides_win(self, clean_env):
        """Test that explicit values take precedence over the environment."""
        clean_env.setenv("ROUTER_TIMEOUT_SECONDS", "2.5")

        config = RouterConfig.from_env(routes={}, timeout=9)

        assert config.timeout == 9

    def test_output_error_disabled_in_production(self, clean_env):
        """Test that production never leaks internal error detail."""
        clean_env.setenv("ROUTER_OUTPUT_ERROR", "true")
        clean_env.setenv("ENVIRONMENT", "prod")

        assert get_router_env_vars().output_error is False

    def test_invalid_cache_mode(self, clean_env):
        """Test that an unknown cache mode is rejected."""
        clean_env.setenv("ROUTER_CACHE_MODE", "sometimes")

        with pytest.raises(ValueError):
            get_router_env_vars()
