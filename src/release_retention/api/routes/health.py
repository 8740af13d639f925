"""Health check endpoints.

GET /v1/health/live: the process is up.
GET /v1/health/ready: the service can take traffic. Evaluation has no
external dependencies, so readiness only requires the app to be wired.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

router = APIRouter(prefix="/health", tags=["health"])


def _now() -> str:
    return datetime.now(UTC).isoformat()


@router.get("/live")
async def liveness() -> dict[str, Any]:
    return {"status": "healthy", "timestamp": _now()}


@router.get("/ready")
async def readiness() -> dict[str, Any]:
    return {"status": "ready", "timestamp": _now()}
