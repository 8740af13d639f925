"""HTTP request/response models.

JSON bodies use camelCase keys; Python attributes stay snake_case. These
models only carry data across the boundary. All retention logic lives in
the domain pipeline.
"""

from __future__ import annotations

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from release_retention.domain.models import (
    Deployment,
    Environment,
    Project,
    Release,
    RetentionResult,
)


class CamelModel(BaseModel):
    """Base for boundary models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------


class ProjectDto(CamelModel):
    id: str
    name: str

    def to_domain(self) -> Project:
        return Project(id=self.id, name=self.name)


class EnvironmentDto(CamelModel):
    id: str
    name: str

    def to_domain(self) -> Environment:
        return Environment(id=self.id, name=self.name)


class ReleaseDto(CamelModel):
    id: str
    project_id: str
    version: str | None = None
    created: AwareDatetime

    def to_domain(self) -> Release:
        return Release(
            id=self.id,
            project_id=self.project_id,
            version=self.version,
            created=self.created,
        )


class DeploymentDto(CamelModel):
    id: str
    release_id: str
    environment_id: str
    deployed_at: AwareDatetime

    def to_domain(self) -> Deployment:
        return Deployment(
            id=self.id,
            release_id=self.release_id,
            environment_id=self.environment_id,
            deployed_at=self.deployed_at,
        )


class DatasetDto(CamelModel):
    """Projects, environments, releases and deployments.

    A missing or null collection is treated as empty. Null elements are
    passed through so the validation chain can report them.
    """

    projects: list[ProjectDto | None] | None = None
    environments: list[EnvironmentDto | None] | None = None
    releases: list[ReleaseDto | None] | None = None
    deployments: list[DeploymentDto | None] | None = None

    def domain_projects(self) -> list[Project | None]:
        return [p.to_domain() if p is not None else None for p in self.projects or []]

    def domain_environments(self) -> list[Environment | None]:
        return [e.to_domain() if e is not None else None for e in self.environments or []]

    def domain_releases(self) -> list[Release | None]:
        return [r.to_domain() if r is not None else None for r in self.releases or []]

    def domain_deployments(self) -> list[Deployment | None]:
        return [d.to_domain() if d is not None else None for d in self.deployments or []]


# ---------------------------------------------------------------------------
# Evaluate
# ---------------------------------------------------------------------------


class EvaluateRetentionRequest(CamelModel):
    dataset: DatasetDto = Field(default_factory=DatasetDto)
    releases_to_keep: int
    correlation_id: str | None = None


class KeptReleaseDto(CamelModel):
    release_id: str
    project_id: str
    environment_id: str
    version: str | None = None
    created: AwareDatetime
    latest_deployed_at: AwareDatetime
    rank: int
    reason_code: str


class DecisionDto(CamelModel):
    project_id: str
    environment_id: str
    release_id: str
    n: int
    rank: int
    latest_deployed_at: AwareDatetime | None = None
    reason_code: str
    reason_text: str


class DiagnosticsDto(CamelModel):
    groups_evaluated: int
    invalid_deployments_excluded: int
    total_kept_releases: int


class EvaluateRetentionResponse(CamelModel):
    kept_releases: list[KeptReleaseDto]
    decisions: list[DecisionDto]
    diagnostics: DiagnosticsDto
    correlation_id: str | None = None

    @classmethod
    def from_result(
        cls, result: RetentionResult, correlation_id: str | None
    ) -> EvaluateRetentionResponse:
        """Field-for-field copy. Ordering is preserved exactly as evaluated."""
        return cls(
            kept_releases=[
                KeptReleaseDto(
                    release_id=k.release_id,
                    project_id=k.project_id,
                    environment_id=k.environment_id,
                    version=k.version,
                    created=k.created,
                    latest_deployed_at=k.latest_deployed_at,
                    rank=k.rank,
                    reason_code=k.reason_code,
                )
                for k in result.kept_releases
            ],
            decisions=[
                DecisionDto(
                    project_id=d.project_id,
                    environment_id=d.environment_id,
                    release_id=d.release_id,
                    n=d.n,
                    rank=d.rank,
                    latest_deployed_at=d.latest_deployed_at,
                    reason_code=d.reason_code,
                    reason_text=d.reason_text,
                )
                for d in result.decisions
            ],
            diagnostics=DiagnosticsDto(
                groups_evaluated=result.diagnostics.groups_evaluated,
                invalid_deployments_excluded=result.diagnostics.invalid_deployments_excluded,
                total_kept_releases=result.diagnostics.total_kept_releases,
            ),
            correlation_id=correlation_id,
        )


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


class ValidateDatasetRequest(CamelModel):
    dataset: DatasetDto = Field(default_factory=DatasetDto)
    correlation_id: str | None = None


class ValidationMessageDto(CamelModel):
    code: str
    message: str
    path: str | None = None


class ValidationSummaryDto(CamelModel):
    project_count: int
    environment_count: int
    release_count: int
    deployment_count: int
    error_count: int
    warning_count: int


class ValidateDatasetResponse(CamelModel):
    is_valid: bool
    errors: list[ValidationMessageDto]
    warnings: list[ValidationMessageDto]
    summary: ValidationSummaryDto


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ProblemDetails(CamelModel):
    """RFC 7807 problem body with a stable error code. Null fields are omitted."""

    type: str
    title: str
    status: int
    detail: str | None = None
    instance: str | None = None
    error_code: str
    trace_id: str
    correlation_id: str | None = None
    errors: list[ValidationMessageDto] | None = None
