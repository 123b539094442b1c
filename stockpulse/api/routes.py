"""FastAPI application for the StockPulse API.

This module provides:
- create_app(): application factory wiring services, middleware and routers
- /api/health and /api/health/ready endpoints
- Inbound per-client rate limiting on /api/*
- Security headers and CORS configuration
- Error handling with a {error, message} envelope
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stockpulse import __version__
from stockpulse.api.dependencies import Container, ServiceContainer
from stockpulse.api.errors import ApiError, ErrorResponse
from stockpulse.api.health import ServiceStatus
from stockpulse.config import Settings, configure_logging
from stockpulse.resilience.rate_limiter import RateLimitExceeded

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    container: ServiceContainer = app.state.container
    logger.info(
        "application_starting",
        environment=container.settings.ENVIRONMENT,
        market_data_configured=container.market.client.is_configured,
        text_model_configured=container.analyzer.is_configured,
    )
    container.cache.start_stats_logging()

    yield

    logger.info("application_shutting_down")
    await container.close()


OPENAPI_TAGS = [
    {"name": "Stock", "description": "Quotes, company overviews, intraday charts and market movers."},
    {"name": "Sentiment", "description": "Financial text sentiment with keyword fallback."},
    {"name": "News", "description": "Generated market news by category."},
    {"name": "Health", "description": "Liveness and readiness checks."},
]

API_DESCRIPTION = """
## Overview

Backend for the StockPulse Pro dashboard. Market data comes from Alpha Vantage
and text analysis from a hosted language model. When either provider is
unavailable, rate limited or returns malformed output, responses fall back to
simulated market data, keyword-based sentiment and template news, flagged
with a `note` field.

## Rate Limits

- 100 requests per 15 minutes per IP (configurable)
- Outbound market data calls are spaced at least 12 seconds apart
"""


# Applied to /api/* only; the docs UI loads its assets from a CDN
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'",
    "Referrer-Policy": "no-referrer",
}


def _client_id(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_app(
    settings: Settings | None = None,
    container: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. Read from the environment if not provided.
        container: Pre-built services (used by tests). Built from settings if
            not provided.

    Returns:
        Configured FastAPI application.
    """
    if container is not None:
        settings = container.settings
    settings = settings or Settings.from_env()
    container = container or ServiceContainer.from_settings(settings)

    app = FastAPI(
        title="StockPulse API",
        version=__version__,
        description=API_DESCRIPTION,
        lifespan=lifespan,
        openapi_tags=OPENAPI_TAGS,
    )
    app.state.container = container

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next: Any) -> Any:
        limiter = container.rate_limiter
        if limiter is None or not request.url.path.startswith("/api/"):
            return await call_next(request)

        try:
            headers = await limiter.check(_client_id(request))
        except RateLimitExceeded as e:
            retry_after = max(1, int(e.retry_after + 0.999))
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests from this IP, please try again later.",
                    "retryAfter": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(e.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(e.reset_time),
                },
            )

        response = await call_next(request)
        response.headers.update(headers.to_dict())
        return response

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next: Any) -> Any:
        response = await call_next(request)
        if request.url.path.startswith("/api/"):
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
        return response

    # Added last so CORS headers also reach 429 responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:  # noqa: ARG001
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError  # noqa: ARG001
    ) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg") if errors else None
        if errors and errors[0].get("loc"):
            location = ".".join(str(part) for part in errors[0]["loc"] if part != "body")
            message = f"{location}: {message}" if location else message
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Invalid input", message=message).model_dump(
                exclude_none=True
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            content: dict[str, Any] = {"error": "Endpoint not found", "path": request.url.path}
        else:
            content = ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception  # noqa: ARG001
    ) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                message=str(exc) if settings.is_development else None,
            ).model_dump(exclude_none=True),
        )

    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all routes on the application.

    Args:
        app: FastAPI application.
    """
    from stockpulse.api.news import router as news_router
    from stockpulse.api.sentiment import router as sentiment_router
    from stockpulse.api.stock import router as stock_router

    app.include_router(stock_router)
    app.include_router(sentiment_router)
    app.include_router(news_router)

    @app.get("/api/health", tags=["Health"])
    async def health(container: Container) -> dict[str, Any]:
        """Basic liveness check."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": container.settings.ENVIRONMENT,
            "version": __version__,
        }

    @app.get("/api/health/ready", tags=["Health"])
    async def readiness(container: Container) -> JSONResponse:
        """Readiness check of market data, text model and cache.

        Degraded providers still return 200 since fallbacks keep serving.
        """
        result = await container.health.readiness()
        status_code = 503 if result.status == ServiceStatus.NOT_READY else 200
        return JSONResponse(content=result.to_dict(), status_code=status_code)


def build_app() -> FastAPI:
    """Build the application from the environment, configuring logging."""
    settings = Settings.from_env()
    configure_logging(settings.LOG_LEVEL, json_output=not settings.is_development)
    return create_app(settings)
