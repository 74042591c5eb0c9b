"""
Global configuration for the appcheck package.

Convention over configuration: sensible defaults are used unless the
application calls APPCHECK.configure() at startup.

Hierarchy of precedence (highest to lowest):
1. *Options passed to provider/client constructors
2. Values set via APPCHECK.configure()
3. Environment variables (APPCHECK_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from appcheck import APPCHECK
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> APPCHECK.config.exchange.request_timeout
    30
    >>>
    >>> # Custom configuration
    >>> APPCHECK.configure(
    ...     exchange={"request_timeout": 10},
    ...     throttle={"backoff_interval_millis": 2000},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Reads environment variables with type conversion.

    Example:
        >>> EnvVars.get("APPCHECK_EXCHANGE_REQUEST_TIMEOUT", type_hint=int)
        30
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(var_name: str, type_hint: Any = str) -> Any:
        """
        Read an environment variable converted to the given type.

        Returns:
            The converted value, or None if the env var is not set or empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:
            return None

        converter = EnvVars._infer_converter(type_hint)
        try:
            return converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        # Annotations are strings here (from __future__ import annotations)
        type_str = str(type_hint)
        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration sections.

    Provides `.with_overrides()` for partial updates (rejecting unknown
    field names) and `.with_env_vars()` for applying the env vars declared
    in field metadata.
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with the given fields overridden.

        None values are ignored, so partially filled dicts can be passed as-is.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields
        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return a new instance with environment variables applied.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(env_var, type_hint=f.type)
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Sections
# =============================================================================


@dataclass(frozen=True)
class ExchangeConfig(OverridableConfig):
    """
    Configuration for the token exchange HTTP client.

    Attributes:
        base_url: Base URL of the App Check exchange API.
            Env var: APPCHECK_EXCHANGE_BASE_URL

        request_timeout: HTTP request timeout in seconds.
            Env var: APPCHECK_EXCHANGE_REQUEST_TIMEOUT
    """

    base_url: str = field(
        default="https://content-firebaseappcheck.googleapis.com/v1",
        metadata={"env": "APPCHECK_EXCHANGE_BASE_URL"},
    )
    request_timeout: int = field(default=30, metadata={"env": "APPCHECK_EXCHANGE_REQUEST_TIMEOUT"})

    def validate(self) -> Self:
        """Validate exchange configuration fields."""
        if not (self.base_url.startswith("http://") or self.base_url.startswith("https://")):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="exchange"
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="exchange"
            )
        return self


@dataclass(frozen=True)
class ThrottleConfig(OverridableConfig):
    """
    Configuration for the per-provider throttle after failed exchanges.

    Transient failures (any status other than 403/404) block new attempts for
    an exponentially growing, jittered delay:
    ``backoff_interval_millis * backoff_factor ** failures`` (+/- backoff_random_factor),
    capped at ``backoff_max_millis``. Hard-block failures (403, 404) block new
    attempts for ``hard_block_millis``.

    Attributes:
        backoff_interval_millis: Delay after the first transient failure.
            Env var: APPCHECK_THROTTLE_BACKOFF_INTERVAL_MILLIS

        backoff_factor: Growth factor per consecutive transient failure.
            Env var: APPCHECK_THROTTLE_BACKOFF_FACTOR

        backoff_max_millis: Upper bound of a transient backoff delay.
            Env var: APPCHECK_THROTTLE_BACKOFF_MAX_MILLIS

        backoff_random_factor: Maximum jitter as a fraction of the delay.
            Env var: APPCHECK_THROTTLE_BACKOFF_RANDOM_FACTOR

        hard_block_millis: Fixed throttle window after a hard-block failure (1 day).
            Env var: APPCHECK_THROTTLE_HARD_BLOCK_MILLIS
    """

    backoff_interval_millis: int = field(default=1000, metadata={"env": "APPCHECK_THROTTLE_BACKOFF_INTERVAL_MILLIS"})
    backoff_factor: float = field(default=2.0, metadata={"env": "APPCHECK_THROTTLE_BACKOFF_FACTOR"})
    backoff_max_millis: int = field(default=4 * 60 * 60 * 1000, metadata={"env": "APPCHECK_THROTTLE_BACKOFF_MAX_MILLIS"})
    backoff_random_factor: float = field(default=0.5, metadata={"env": "APPCHECK_THROTTLE_BACKOFF_RANDOM_FACTOR"})
    hard_block_millis: int = field(default=24 * 60 * 60 * 1000, metadata={"env": "APPCHECK_THROTTLE_HARD_BLOCK_MILLIS"})

    def validate(self) -> Self:
        """Validate throttle configuration fields."""
        if self.backoff_interval_millis <= 0:
            raise ConfigValidationError(
                "backoff_interval_millis", self.backoff_interval_millis,
                "Must be greater than 0.", section="throttle"
            )
        if self.backoff_factor < 1:
            raise ConfigValidationError(
                "backoff_factor", self.backoff_factor,
                "Must be >= 1.", section="throttle"
            )
        if self.backoff_max_millis < self.backoff_interval_millis:
            raise ConfigValidationError(
                "backoff_max_millis", self.backoff_max_millis,
                "Must be >= backoff_interval_millis.", section="throttle"
            )
        if not (0 <= self.backoff_random_factor < 1):
            raise ConfigValidationError(
                "backoff_random_factor", self.backoff_random_factor,
                "Must be in range [0, 1).", section="throttle"
            )
        if self.hard_block_millis <= 0:
            raise ConfigValidationError(
                "hard_block_millis", self.hard_block_millis,
                "Must be greater than 0.", section="throttle"
            )
        return self


@dataclass(frozen=True)
class AppCheckConfig:
    """
    Root configuration, aggregating all sections.

    Access via the global `APPCHECK.config` property.

    Attributes:
        exchange: Token exchange HTTP client configuration.
        throttle: Throttle/backoff configuration.
    """

    exchange: ExchangeConfig = field(default_factory=ExchangeConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)

    def with_env_vars(self) -> AppCheckConfig:
        """Return a new config with APPCHECK_* environment variables applied on top."""
        return AppCheckConfig(
            exchange=self.exchange.with_env_vars(),
            throttle=self.throttle.with_env_vars(),
        )

    def with_section_overrides(
        self,
        *,
        exchange: dict[str, Any] | None = None,
        throttle: dict[str, Any] | None = None,
    ) -> AppCheckConfig:
        """Return a new config with overrides merged into each section."""
        return AppCheckConfig(
            exchange=self.exchange.with_overrides(exchange or {}),
            throttle=self.throttle.with_overrides(throttle or {}),
        )


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _APPCHECK:
    """
    Singleton holding the package configuration.

    Example:
        >>> from appcheck import APPCHECK
        >>> APPCHECK.configure(throttle={"hard_block_millis": 3_600_000})
        >>> APPCHECK.config.throttle.hard_block_millis
        3600000
    """

    def __init__(self) -> None:
        self._config: AppCheckConfig = AppCheckConfig().with_env_vars()

    def configure(
        self,
        *,
        exchange: dict[str, Any] | None = None,
        throttle: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> AppCheckConfig:
        """
        Configure package settings. Call at application startup.

        Args:
            exchange: Exchange client overrides (base_url, request_timeout).
            throttle: Throttle overrides (backoff_*, hard_block_millis).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, env vars are ignored.

        Returns:
            The configured AppCheckConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = AppCheckConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(exchange=exchange, throttle=throttle)
        return self.validate()

    @property
    def config(self) -> AppCheckConfig:
        """Current configuration (read-only)."""
        return self._config

    def reset(self) -> AppCheckConfig:
        """
        Reset configuration to defaults + env vars.

        Useful for testing to ensure clean state between tests.
        """
        self._config = AppCheckConfig().with_env_vars()
        return self.validate()

    def validate(self) -> AppCheckConfig:
        """
        Validate the current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.exchange.validate()
        self._config.throttle.validate()
        return self._config

    def __repr__(self) -> str:
        return f"APPCHECK(config={self._config!r})"


# Global singleton instance - always reflects current configuration
APPCHECK: _APPCHECK = _APPCHECK()
APPCHECK.validate()
