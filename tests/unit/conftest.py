"""Unit test conftest: FastAPI test clients wired without the app factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from release_retention.settings import ApiSettings, Settings, TelemetrySettings

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi.testclient import TestClient


@pytest.fixture()
def api_settings() -> Settings:
    """Settings with telemetry off and default limits."""
    return Settings(telemetry=TelemetrySettings(enabled=False), api=ApiSettings())


@pytest.fixture()
def client_factory(api_settings: Settings) -> Callable[..., TestClient]:
    """Build a TestClient; optionally replace the retention service or settings."""

    def _build(service: Any = None, settings: Settings | None = None) -> TestClient:
        from fastapi import FastAPI
        from fastapi.responses import ORJSONResponse
        from fastapi.testclient import TestClient as _TestClient

        from release_retention.api.dataset_validator import DatasetValidator
        from release_retention.api.middleware import register_middleware
        from release_retention.api.routes.datasets import router as datasets_router
        from release_retention.api.routes.health import router as health_router
        from release_retention.api.routes.retention import router as retention_router
        from release_retention.service import build_service

        settings = settings or api_settings
        app = FastAPI(default_response_class=ORJSONResponse)
        register_middleware(app, settings)
        app.include_router(retention_router, prefix="/v1")
        app.include_router(datasets_router, prefix="/v1")
        app.include_router(health_router, prefix="/v1")

        app.state.settings = settings
        app.state.retention_service = service or build_service(settings)
        app.state.dataset_validator = DatasetValidator()

        # Unhandled errors must come back as 500 problems, not re-raise
        return _TestClient(app, raise_server_exceptions=False)

    return _build


@pytest.fixture()
def test_client(client_factory: Callable[..., TestClient]) -> TestClient:
    """FastAPI TestClient with the default service."""
    return client_factory()
