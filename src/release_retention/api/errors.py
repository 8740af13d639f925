"""Stable error codes returned by the HTTP boundary."""

from __future__ import annotations

import enum


class ApiErrorCode(enum.StrEnum):
    # 400
    NULL_ELEMENT = "validation.null_element"
    MISSING_REQUIRED_FIELD = "validation.missing_required_field"
    DUPLICATE_PROJECT_ID = "validation.duplicate_project_id"
    DUPLICATE_ENVIRONMENT_ID = "validation.duplicate_environment_id"
    DUPLICATE_RELEASE_ID = "validation.duplicate_release_id"
    DUPLICATE_DEPLOYMENT_ID = "validation.duplicate_deployment_id"
    INVALID_REFERENCE = "validation.invalid_reference"
    INVALID_PAYLOAD = "validation.invalid_payload"

    # 413
    PAYLOAD_TOO_LARGE = "validation.payload_too_large"

    # 500
    INTERNAL_ERROR = "internal_error"
    DOMAIN_INVARIANT = "domain_invariant"
