"""FastAPI dependency injection helpers.

Extracts shared resources from ``app.state`` so route handlers can
declare them via ``Depends()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request  # noqa: TCH002 (runtime: FastAPI dependency injection)

if TYPE_CHECKING:
    from release_retention.api.dataset_validator import DatasetValidator
    from release_retention.service import RetentionService
    from release_retention.settings import Settings


def get_settings(request: Request) -> Settings:
    """Return the application settings from app state."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_retention_service(request: Request) -> RetentionService:
    """Return the retention service from app state."""
    return request.app.state.retention_service  # type: ignore[no-any-return]


def get_dataset_validator(request: Request) -> DatasetValidator:
    """Return the dataset validator from app state."""
    return request.app.state.dataset_validator  # type: ignore[no-any-return]
