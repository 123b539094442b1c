"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults, plus structlog setup for the service.
"""

import logging
import os
from dataclasses import dataclass, field

import structlog

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_float_env(name: str, default: float) -> float:
    """Get a float value from environment variable, falling back on bad input."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_int_env(name: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on bad input."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_list_env(name: str, default: list[str]) -> list[str]:
    """Get a comma-separated list from environment variable."""
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        ALPHA_VANTAGE_API_KEY: Alpha Vantage API key for market data.
        ANTHROPIC_API_KEY: API key for the text model (sentiment and news).
        TEXT_MODEL: Model identifier used for text generation.
        MARKET_DATA_INTERVAL_SECONDS: Minimum spacing between market data calls.
        HTTP_TIMEOUT_SECONDS: Timeout for outbound HTTP calls.
        CACHE_DEFAULT_TTL: Default cache entry TTL in seconds.
        CACHE_STATS_INTERVAL: Seconds between cache stats log lines.
        ALLOWED_ORIGINS: CORS origins allowed to call the API.
        API_RATE_LIMIT_MAX_REQUESTS: Inbound requests allowed per client per window.
        API_RATE_LIMIT_WINDOW_SECONDS: Inbound rate limit window.
        API_RATE_LIMIT_ENABLED: Whether inbound rate limiting is applied.
        HOST: Interface the HTTP server binds to.
        PORT: Port the HTTP server listens on.
        ENVIRONMENT: Deployment environment name.
        LOG_LEVEL: Logging level.
    """

    # Data sources
    ALPHA_VANTAGE_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    TEXT_MODEL: str = "claude-sonnet-4-20250514"

    # Outbound calls
    MARKET_DATA_INTERVAL_SECONDS: float = 12.0  # 5 requests per minute
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Cache
    CACHE_DEFAULT_TTL: int = 300
    CACHE_STATS_INTERVAL: float = 300.0

    # HTTP surface
    ALLOWED_ORIGINS: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    API_RATE_LIMIT_MAX_REQUESTS: int = 100
    API_RATE_LIMIT_WINDOW_SECONDS: int = 900  # 15 minutes
    API_RATE_LIMIT_ENABLED: bool = True

    HOST: str = "0.0.0.0"
    PORT: int = 3001
    ENVIRONMENT: str = "production"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def is_development(self) -> bool:
        """Whether the service runs in development mode."""
        return self.ENVIRONMENT.lower() == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            ALPHA_VANTAGE_API_KEY=os.getenv("ALPHA_VANTAGE_API_KEY"),
            ANTHROPIC_API_KEY=os.getenv("ANTHROPIC_API_KEY"),
            TEXT_MODEL=os.getenv("TEXT_MODEL", "claude-sonnet-4-20250514"),
            MARKET_DATA_INTERVAL_SECONDS=_get_float_env("MARKET_DATA_INTERVAL_SECONDS", 12.0),
            HTTP_TIMEOUT_SECONDS=_get_float_env("HTTP_TIMEOUT_SECONDS", 30.0),
            CACHE_DEFAULT_TTL=_get_int_env("CACHE_DEFAULT_TTL", 300),
            CACHE_STATS_INTERVAL=_get_float_env("CACHE_STATS_INTERVAL", 300.0),
            ALLOWED_ORIGINS=_get_list_env("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
            API_RATE_LIMIT_MAX_REQUESTS=_get_int_env("API_RATE_LIMIT_MAX_REQUESTS", 100),
            API_RATE_LIMIT_WINDOW_SECONDS=_get_int_env("API_RATE_LIMIT_WINDOW_SECONDS", 900),
            API_RATE_LIMIT_ENABLED=_get_bool_env("API_RATE_LIMIT_ENABLED", default=True),
            HOST=os.getenv("HOST", "0.0.0.0"),
            PORT=_get_int_env("PORT", 3001),
            ENVIRONMENT=os.getenv("ENVIRONMENT", "production"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog for the service.

    Args:
        level: Minimum log level name (e.g. "INFO", "DEBUG").
        json_output: Render JSON lines when True, console output otherwise.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    renderer: structlog.typing.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=False,
    )


# Global settings instance
settings = Settings.from_env()
