"""FastAPI application factory and configuration."""

import logging
import secrets
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce Bearer token authentication.

    If a bearer token is configured, all requests must include a valid
    Authorization header with the Bearer token, except for excluded paths.
    """

    # Paths that are always public (no authentication required)
    EXCLUDED_PATHS = {
        "/docs",
        "/redoc",
        "/openapi.json",
        "/metrics",
        "/api/v1/health",
    }

    def __init__(self, app, bearer_token: Optional[str] = None):
        """
        Initialize the Bearer authentication middleware.

        Args:
            app: The FastAPI application
            bearer_token: The configured bearer token (if None, auth is disabled)
        """
        super().__init__(app)
        self.bearer_token = bearer_token
        self.auth_enabled = bearer_token is not None

    @staticmethod
    def _unauthorized(detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Authentication required", "detail": detail},
            headers={"WWW-Authenticate": "Bearer"},
        )

    async def dispatch(self, request: Request, call_next):
        """
        Process each request and validate Bearer token if configured.

        Args:
            request: The incoming request
            call_next: The next middleware/handler in the chain

        Returns:
            Response from the next handler or 401 error
        """
        if not self.auth_enabled or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            logger.warning(f"Missing Authorization header for {request.url.path}")
            return self._unauthorized("Missing Authorization header")

        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning(f"Invalid Authorization header format for {request.url.path}")
            return self._unauthorized(
                "Invalid Authorization header format. Expected: 'Bearer <token>'"
            )

        # Constant-time comparison
        if not secrets.compare_digest(parts[1], self.bearer_token):
            logger.warning(f"Invalid bearer token for {request.url.path}")
            return self._unauthorized("Invalid bearer token")

        return await call_next(request)


def create_app(
    title: str = "Voicegate API",
    version: str = "1.0.0",
    enable_metrics: bool = True,
    bearer_token: Optional[str] = None,
    metrics_registry: Optional[CollectorRegistry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        title: API title for OpenAPI documentation
        version: API version
        enable_metrics: Whether to enable Prometheus metrics
        bearer_token: Optional bearer token for API authentication
        metrics_registry: Registry exposed at /metrics (default: the global registry)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        version=version,
        description="""
# Voicegate API

Turns a noisy stream of speech recognition results into a rate-bounded
sequence of game commands.

## Features

- **Submit Commands**: Run recognized commands through rate limiting, duplicate filtering and debouncing
- **Statistics**: Counters, adaptive controller state and rate limiting windows
- **Performance Mode**: Report the host frame rate to lengthen debouncing under load
- **Metrics**: Prometheus metrics endpoint for observability

## Authentication

This API supports optional Bearer token authentication:
- **When configured**: All endpoints require an `Authorization: Bearer <token>` header
- **When not configured**: API is public and no authentication is required
- **Excluded endpoints**: `/docs`, `/redoc`, `/openapi.json`, `/metrics` and `/api/v1/health` are always public

To configure authentication, set the `VOICEGATE_API_BEARER_TOKEN` environment variable or use the `--api-bearer-token` CLI option.
        """,
        license_info={
            "name": "MIT",
        },
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints for monitoring system status",
            },
            {
                "name": "commands",
                "description": "Submit voice commands and read the executed history",
            },
            {
                "name": "status",
                "description": "Engine status, statistics and control",
            },
        ],
    )

    # =========================================================================
    # CORS Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Bearer Authentication Middleware
    # =========================================================================
    if bearer_token:
        app.add_middleware(BearerAuthMiddleware, bearer_token=bearer_token)
        logger.info("Bearer token authentication enabled")
    else:
        logger.info("Bearer token authentication disabled - API is public")

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        logger.warning(f"Validation error on {request.url}: {len(errors)} error(s)")
        return JSONResponse(
            status_code=422,
            content={
                "error": "Validation error",
                "detail": errors,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(f"Unexpected error on {request.url}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": str(exc) if logger.isEnabledFor(logging.DEBUG) else None,
            },
        )

    # =========================================================================
    # Routers
    # =========================================================================

    from .routes import commands, health
    from .routes import status as status_routes

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(commands.router, prefix="/api/v1", tags=["commands"])
    app.include_router(status_routes.router, prefix="/api/v1", tags=["status"])

    # =========================================================================
    # Prometheus Metrics
    # =========================================================================

    if enable_metrics:
        instrumentator_kwargs = {}
        if metrics_registry is not None:
            instrumentator_kwargs["registry"] = metrics_registry

        instrumentator = Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            should_respect_env_var=False,
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics"],
            inprogress_name="fastapi_inprogress",
            inprogress_labels=True,
            **instrumentator_kwargs,
        )
        instrumentator.instrument(app).expose(app, endpoint="/metrics")
        logger.info("Prometheus metrics enabled at /metrics")

    logger.info(f"FastAPI application created: {title} v{version}")

    return app
