"""Domain models for release retention.

Input entities (Project, Environment, Release, Deployment) are immutable value
records supplied by the caller. Output models (ReleaseCandidate, KeptRelease,
DecisionLogEntry, RetentionDiagnostics, RetentionResult) are created fresh per
evaluation and never mutated afterwards.

All models are pure Python + Pydantic v2. Zero framework imports.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, AwareDatetime, BaseModel, Field

def _to_utc(value: datetime) -> datetime:
    return value.astimezone(UTC)


# Timezone-aware and normalized to UTC, so equal instants serialize identically
UtcDatetime = Annotated[AwareDatetime, AfterValidator(_to_utc)]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ReasonCode(enum.StrEnum):
    """Stable reason codes attached to every retention decision."""

    # Release is in the top N most recently deployed for its group
    KEPT_TOP_N = "kept.top_n"

    # Deployment excluded because it references a missing entity
    INVALID_REFERENCE = "diagnostic.invalid_reference"


class DecisionType(enum.StrEnum):
    """Decision log classification. Kept entries sort before diagnostics."""

    KEPT = "kept"
    DIAGNOSTIC = "diagnostic"


# Explicit reason code -> decision type mapping. Anything not listed is a diagnostic.
DECISION_TYPES: dict[ReasonCode, DecisionType] = {
    ReasonCode.KEPT_TOP_N: DecisionType.KEPT,
}


# ---------------------------------------------------------------------------
# Input entities
# ---------------------------------------------------------------------------


class Project(BaseModel):
    """A deployable application."""

    model_config = {"frozen": True}

    id: str
    name: str


class Environment(BaseModel):
    """A deployment target such as Staging or Production."""

    model_config = {"frozen": True}

    id: str
    name: str


class Release(BaseModel):
    """A versioned snapshot of a project that can be deployed."""

    model_config = {"frozen": True}

    id: str
    project_id: str
    version: str | None = None
    created: UtcDatetime


class Deployment(BaseModel):
    """A release deployed to an environment at a point in time.

    Deployment ids are event identifiers and are not required to be unique.
    """

    model_config = {"frozen": True}

    id: str
    release_id: str
    environment_id: str
    deployed_at: UtcDatetime


# ---------------------------------------------------------------------------
# Evaluation inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EvaluationInputs:
    """Caller-supplied snapshot for a single evaluation.

    Collections may still contain ``None`` elements at this point; the
    validation chain rejects them before anything else reads the data.
    """

    projects: Sequence[Project | None] = ()
    environments: Sequence[Environment | None] = ()
    releases: Sequence[Release | None] = ()
    deployments: Sequence[Deployment | None] = ()
    releases_to_keep: int = 0
    correlation_id: str | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class ReleaseCandidate(BaseModel):
    """A release selected for retention within its (project, environment) group."""

    model_config = {"frozen": True}

    project_id: str
    environment_id: str
    release_id: str
    version: str | None = None
    created: UtcDatetime
    latest_deployed_at: UtcDatetime
    rank: int = Field(..., ge=1)
    reason_code: ReasonCode = ReasonCode.KEPT_TOP_N


class KeptRelease(BaseModel):
    """A release that should be kept, as returned to callers."""

    model_config = {"frozen": True}

    release_id: str
    project_id: str
    environment_id: str
    version: str | None = None
    created: UtcDatetime
    latest_deployed_at: UtcDatetime
    rank: int = Field(..., ge=1)
    reason_code: ReasonCode


class DecisionLogEntry(BaseModel):
    """Explains why a release was kept or why a deployment was excluded."""

    model_config = {"frozen": True}

    project_id: str
    environment_id: str
    release_id: str
    n: int = Field(..., ge=0)
    rank: int = Field(..., ge=0)
    latest_deployed_at: UtcDatetime | None = None
    reason_text: str
    reason_code: ReasonCode
    correlation_id: str | None = None

    @property
    def decision_type(self) -> DecisionType:
        """Classification derived from the reason code, never from the text."""
        return DECISION_TYPES.get(self.reason_code, DecisionType.DIAGNOSTIC)


class RetentionDiagnostics(BaseModel):
    """Summary counters for an evaluation."""

    model_config = {"frozen": True}

    groups_evaluated: int = 0
    invalid_deployments_excluded: int = 0
    total_kept_releases: int = 0


class RetentionResult(BaseModel):
    """Kept releases, the ordered decision log and diagnostics."""

    model_config = {"frozen": True}

    kept_releases: tuple[KeptRelease, ...] = ()
    decisions: tuple[DecisionLogEntry, ...] = ()
    diagnostics: RetentionDiagnostics = Field(default_factory=RetentionDiagnostics)
