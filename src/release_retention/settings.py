"""Application settings via Pydantic BaseSettings.

All configuration uses the RR_ environment variable prefix.
Centralized here to prevent hardcoded magic numbers across the codebase.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class TelemetrySettings(BaseSettings):
    """OpenTelemetry span emission. Observational only."""

    model_config = {"env_prefix": "RR_TELEMETRY_"}

    enabled: bool = False
    tracer_name: str = "release_retention"

    # Per-group debug logs from LoggingGroupObserver
    log_groups: bool = True


class ApiSettings(BaseSettings):
    """HTTP boundary limits."""

    model_config = {"env_prefix": "RR_API_"}

    # Request bodies above this size are rejected with 413 (10 MB)
    max_body_bytes: int = Field(default=10_000_000, ge=1)

    # Header carrying the caller's correlation id
    correlation_header: str = "X-Correlation-ID"


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "RR_"}

    app_name: str = "release-retention"
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
