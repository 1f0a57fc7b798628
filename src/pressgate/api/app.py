"""FastAPI application factory for Pressgate.

Creates the application with:
- Admin cache, revalidation and CMS webhook endpoints
- Thin content read endpoints over the cached content service
- Health probes and the Prometheus metrics endpoint
- Lifecycle management for the Runtime (HTTP client, cache sweep, monitor)
- OpenTelemetry tracing and Prometheus metrics
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from pressgate import __version__
from pressgate.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    request_validation_exception_handler,
    validation_exception_handler,
)
from pressgate.api.middleware import CorrelationMiddleware
from pressgate.api.routers import cache, content, health, revalidate, webhook
from pressgate.api.routers import metrics as metrics_router
from pressgate.config import Settings, settings
from pressgate.errors import ValidationError
from pressgate.observability import configure_logging
from pressgate.observability.metrics import MetricsMiddleware, get_metrics
from pressgate.observability.tracing import setup_tracing, shutdown_tracing
from pressgate.runtime import Runtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize OpenTelemetry tracing and Prometheus metrics
    - Build the Runtime (unless one was injected) and start its background tasks

    On shutdown:
    - Stop background tasks and close the HTTP client
    - Shutdown tracing
    """
    config: Settings = app.state.settings

    # JSON in production, console in dev
    configure_logging(json_format=config.env != "dev", level=config.log_level)

    setup_tracing(config)
    get_metrics()

    logger.info(f"Starting Pressgate ({config.env})")
    if getattr(app.state, "runtime", None) is None:
        app.state.runtime = Runtime.build(config)
    runtime: Runtime = app.state.runtime
    await runtime.start()
    logger.info("Pressgate startup complete")

    yield

    logger.info("Shutting down Pressgate")
    await runtime.stop()
    shutdown_tracing()
    logger.info("Pressgate shutdown complete")


def create_app(runtime: Runtime | None = None, config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        runtime: Pre-built runtime (tests inject one wired to fake upstreams).
            When omitted the lifespan builds it from config.
        config: Settings for an app without a runtime (defaults to the process
            settings). An injected runtime always supplies its own settings.
    """
    config = runtime.settings if runtime is not None else (config or settings)

    app = FastAPI(
        title="Pressgate",
        description="Caching content gateway for a headless WordPress CMS",
        version=__version__,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = config
    app.state.runtime = runtime

    # CorrelationMiddleware is innermost so every other layer sees the IDs
    app.add_middleware(CorrelationMiddleware)
    if config.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(
        ValidationError, cast(ExceptionHandler, validation_exception_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, request_validation_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    if config.enable_metrics:
        app.include_router(metrics_router.router)

    app.include_router(cache.router)
    app.include_router(revalidate.router)
    app.include_router(webhook.router)
    app.include_router(content.router)

    return app
