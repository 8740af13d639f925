"""Unit tests for release_retention.settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from release_retention.settings import ApiSettings, Settings, TelemetrySettings


class TestSettingsDefaults:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("RR_DEBUG", "RR_LOG_LEVEL", "RR_JSON_LOGS", "RR_TELEMETRY_ENABLED"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings()
        assert settings.app_name == "release-retention"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.telemetry.enabled is False
        assert settings.api.max_body_bytes == 10_000_000
        assert settings.api.correlation_header == "X-Correlation-ID"


class TestEnvironmentOverrides:
    def test_root_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RR_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("RR_JSON_LOGS", "true")
        settings = Settings()
        assert settings.log_level == "DEBUG"
        assert settings.json_logs is True

    def test_nested_prefixes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RR_TELEMETRY_ENABLED", "true")
        monkeypatch.setenv("RR_API_MAX_BODY_BYTES", "2048")
        assert TelemetrySettings().enabled is True
        assert ApiSettings().max_body_bytes == 2048

    def test_max_body_bytes_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ApiSettings(max_body_bytes=0)
