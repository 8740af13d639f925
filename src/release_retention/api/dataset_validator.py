"""Dataset structural and referential checks for the validate endpoint.

Unlike the evaluation pipeline's validation chain, this collects EVERY
problem instead of stopping at the first. Broken references are warnings
(evaluation tolerates them as diagnostics); duplicate ids and blank required
fields are errors. Messages are sorted by (code, path, message) so the
response is stable regardless of input order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from release_retention.api.errors import ApiErrorCode
from release_retention.api.schemas import (
    ValidateDatasetResponse,
    ValidationMessageDto,
    ValidationSummaryDto,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from release_retention.api.schemas import DatasetDto

logger = structlog.get_logger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _message_key(message: ValidationMessageDto) -> tuple[str, str, str]:
    return (message.code, message.path or "", message.message)


class DatasetValidator:
    """Validates a dataset and reports errors, warnings and a summary."""

    def validate(self, dataset: DatasetDto) -> ValidateDatasetResponse:
        projects = dataset.projects or []
        environments = dataset.environments or []
        releases = dataset.releases or []
        deployments = dataset.deployments or []

        errors: list[ValidationMessageDto] = []
        warnings: list[ValidationMessageDto] = []

        for name, collection in (
            ("projects", projects),
            ("environments", environments),
            ("releases", releases),
            ("deployments", deployments),
        ):
            errors.extend(self._null_elements(name, collection))

        live_projects = [p for p in projects if p is not None]
        live_environments = [e for e in environments if e is not None]
        live_releases = [r for r in releases if r is not None]
        live_deployments = [d for d in deployments if d is not None]

        errors.extend(
            self._duplicate_ids(
                "projects", [p.id for p in live_projects], ApiErrorCode.DUPLICATE_PROJECT_ID
            )
        )
        errors.extend(
            self._duplicate_ids(
                "environments",
                [e.id for e in live_environments],
                ApiErrorCode.DUPLICATE_ENVIRONMENT_ID,
            )
        )
        errors.extend(
            self._duplicate_ids(
                "releases", [r.id for r in live_releases], ApiErrorCode.DUPLICATE_RELEASE_ID
            )
        )
        errors.extend(
            self._duplicate_ids(
                "deployments",
                [d.id for d in live_deployments],
                ApiErrorCode.DUPLICATE_DEPLOYMENT_ID,
            )
        )

        # Required fields on projects and environments
        for name, label, items in (
            ("projects", "Project", projects),
            ("environments", "Environment", environments),
        ):
            for i, item in enumerate(items):
                if item is None:
                    continue
                if _blank(item.id):
                    errors.append(self._missing(f"{label} ID is required.", f"{name}[{i}].id"))
                if _blank(item.name):
                    errors.append(
                        self._missing(f"{label} name is required.", f"{name}[{i}].name")
                    )

        # Releases -> projects
        project_ids = {p.id for p in live_projects}
        for i, release in enumerate(releases):
            if release is None:
                continue
            if _blank(release.id):
                errors.append(self._missing("Release ID is required.", f"releases[{i}].id"))
            if _blank(release.project_id):
                errors.append(
                    self._missing("Release projectId is required.", f"releases[{i}].projectId")
                )
            elif release.project_id not in project_ids:
                warnings.append(
                    ValidationMessageDto(
                        code=ApiErrorCode.INVALID_REFERENCE,
                        message=(
                            f"Release '{release.id}' references unknown project "
                            f"'{release.project_id}'."
                        ),
                        path=f"releases[{i}].projectId",
                    )
                )

        # Deployments -> releases, environments
        release_ids = {r.id for r in live_releases}
        environment_ids = {e.id for e in live_environments}
        for i, deployment in enumerate(deployments):
            if deployment is None:
                continue
            if _blank(deployment.id):
                errors.append(
                    self._missing("Deployment ID is required.", f"deployments[{i}].id")
                )

            if _blank(deployment.release_id):
                errors.append(
                    self._missing(
                        "Deployment releaseId is required.", f"deployments[{i}].releaseId"
                    )
                )
            elif deployment.release_id not in release_ids:
                warnings.append(
                    ValidationMessageDto(
                        code=ApiErrorCode.INVALID_REFERENCE,
                        message=(
                            f"Deployment '{deployment.id}' references unknown release "
                            f"'{deployment.release_id}'."
                        ),
                        path=f"deployments[{i}].releaseId",
                    )
                )

            if _blank(deployment.environment_id):
                errors.append(
                    self._missing(
                        "Deployment environmentId is required.",
                        f"deployments[{i}].environmentId",
                    )
                )
            elif deployment.environment_id not in environment_ids:
                warnings.append(
                    ValidationMessageDto(
                        code=ApiErrorCode.INVALID_REFERENCE,
                        message=(
                            f"Deployment '{deployment.id}' references unknown environment "
                            f"'{deployment.environment_id}'."
                        ),
                        path=f"deployments[{i}].environmentId",
                    )
                )

        errors.sort(key=_message_key)
        warnings.sort(key=_message_key)

        logger.info(
            "dataset_validated",
            error_count=len(errors),
            warning_count=len(warnings),
        )

        return ValidateDatasetResponse(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            summary=ValidationSummaryDto(
                project_count=len(projects),
                environment_count=len(environments),
                release_count=len(releases),
                deployment_count=len(deployments),
                error_count=len(errors),
                warning_count=len(warnings),
            ),
        )

    @staticmethod
    def _null_elements(name: str, items: Sequence[object | None]) -> list[ValidationMessageDto]:
        return [
            ValidationMessageDto(
                code=ApiErrorCode.NULL_ELEMENT,
                message=f"Null element found at index {i} in '{name}'.",
                path=f"{name}[{i}]",
            )
            for i, item in enumerate(items)
            if item is None
        ]

    @staticmethod
    def _duplicate_ids(
        name: str, ids: Sequence[str], code: ApiErrorCode
    ) -> list[ValidationMessageDto]:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for item_id in ids:
            if item_id in seen:
                duplicates.add(item_id)
            seen.add(item_id)
        return [
            ValidationMessageDto(
                code=code,
                message=f"Duplicate ID '{item_id}' found in {name}.",
                path=f"{name}[].id",
            )
            for item_id in sorted(duplicates)
        ]

    @staticmethod
    def _missing(message: str, path: str) -> ValidationMessageDto:
        return ValidationMessageDto(
            code=ApiErrorCode.MISSING_REQUIRED_FIELD,
            message=message,
            path=path,
        )
