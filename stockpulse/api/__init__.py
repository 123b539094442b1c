"""HTTP API.

This module contains:
- create_app: FastAPI application factory
- ServiceContainer: per-application services
- Stock, sentiment, news and health routes
"""

from stockpulse.api.dependencies import ServiceContainer, get_container
from stockpulse.api.errors import ApiError, ErrorResponse
from stockpulse.api.health import (
    ComponentCheck,
    HealthCheckResult,
    HealthService,
    HealthStatus,
    ServiceStatus,
    create_health_service,
)
from stockpulse.api.routes import build_app, create_app

__all__ = [
    "create_app",
    "build_app",
    "ServiceContainer",
    "get_container",
    "ApiError",
    "ErrorResponse",
    "ComponentCheck",
    "HealthCheckResult",
    "HealthService",
    "HealthStatus",
    "ServiceStatus",
    "create_health_service",
]
