"""FastAPI application factory.

Creates and configures the Release Retention API. The service and the
dataset validator are stateless, so they are built once and attached to
``app.state``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from release_retention.api.dataset_validator import DatasetValidator
from release_retention.api.middleware import register_middleware
from release_retention.api.routes.datasets import router as datasets_router
from release_retention.api.routes.health import router as health_router
from release_retention.api.routes.retention import router as retention_router
from release_retention.logging import configure_logging
from release_retention.service import build_service
from release_retention.settings import Settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    logger.info(
        "app_started",
        app_name=settings.app_name,
        telemetry_enabled=settings.telemetry.enabled,
        max_body_bytes=settings.api.max_body_bytes,
    )

    yield

    logger.info("app_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title="Release Retention API",
        description="Deterministic release retention evaluation",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.retention_service = build_service(settings)
    app.state.dataset_validator = DatasetValidator()

    register_middleware(app, settings)

    app.include_router(retention_router, prefix="/v1")
    app.include_router(datasets_router, prefix="/v1")
    app.include_router(health_router, prefix="/v1")

    return app
