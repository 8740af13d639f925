"""Decision log assembly, result mapping and diagnostics.

Pure domain module with zero framework imports.

Decision log ordering:
  1. kept before diagnostic (by explicit reason code mapping)
  2. project_id asc, environment_id asc (ordinal)
  3. rank asc
  4. release_id asc (ordinal)
  5. reason_text asc, so diagnostics for different deployments of the same
     dangling release never depend on input order
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from release_retention.domain.models import (
    DecisionLogEntry,
    DecisionType,
    KeptRelease,
    ReasonCode,
    RetentionDiagnostics,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from release_retention.domain.models import Deployment, ReleaseCandidate

_DECISION_ORDER: dict[DecisionType, int] = {
    DecisionType.KEPT: 0,
    DecisionType.DIAGNOSTIC: 1,
}


def build_kept_entry(
    candidate: ReleaseCandidate,
    releases_to_keep: int,
    correlation_id: str | None = None,
) -> DecisionLogEntry:
    """Create the "kept" decision entry for a retained release."""
    return DecisionLogEntry(
        project_id=candidate.project_id,
        environment_id=candidate.environment_id,
        release_id=candidate.release_id,
        n=releases_to_keep,
        rank=candidate.rank,
        latest_deployed_at=candidate.latest_deployed_at,
        reason_text=(
            f"Release '{candidate.release_id}' kept: rank {candidate.rank} of {releases_to_keep} "
            f"for project '{candidate.project_id}' / environment '{candidate.environment_id}'"
        ),
        reason_code=ReasonCode.KEPT_TOP_N,
        correlation_id=correlation_id,
    )


def build_invalid_deployment_entry(
    deployment: Deployment,
    project_id: str,
    releases_to_keep: int,
    reasons: Sequence[str],
    correlation_id: str | None = None,
) -> DecisionLogEntry:
    """Create the diagnostic entry for a deployment excluded by the validity filter."""
    return DecisionLogEntry(
        project_id=project_id,
        environment_id=deployment.environment_id,
        release_id=deployment.release_id,
        n=releases_to_keep,
        rank=0,
        latest_deployed_at=None,
        reason_text=f"Deployment '{deployment.id}' excluded: {'; '.join(reasons)}",
        reason_code=ReasonCode.INVALID_REFERENCE,
        correlation_id=correlation_id,
    )


def to_kept_release(candidate: ReleaseCandidate) -> KeptRelease:
    """Field-for-field copy of a candidate into the result record."""
    return KeptRelease(
        release_id=candidate.release_id,
        project_id=candidate.project_id,
        environment_id=candidate.environment_id,
        version=candidate.version,
        created=candidate.created,
        latest_deployed_at=candidate.latest_deployed_at,
        rank=candidate.rank,
        reason_code=candidate.reason_code,
    )


def decision_sort_key(entry: DecisionLogEntry) -> tuple[int, str, str, int, str, str]:
    return (
        _DECISION_ORDER[entry.decision_type],
        entry.project_id,
        entry.environment_id,
        entry.rank,
        entry.release_id,
        entry.reason_text,
    )


def assemble_decision_log(
    kept_entries: Iterable[DecisionLogEntry],
    diagnostic_entries: Iterable[DecisionLogEntry],
) -> tuple[DecisionLogEntry, ...]:
    """Merge kept and diagnostic entries into one deterministically ordered log."""
    return tuple(sorted([*kept_entries, *diagnostic_entries], key=decision_sort_key))


def compute_diagnostics(
    candidates: Sequence[ReleaseCandidate],
    invalid_excluded_count: int,
    kept_releases: Sequence[KeptRelease],
) -> RetentionDiagnostics:
    """Summary counters.

    groups_evaluated counts distinct (project, environment) pairs among kept
    candidates only. A group with eligible releases but nothing kept (N=0)
    is not counted.
    """
    groups = {(c.project_id, c.environment_id) for c in candidates}
    return RetentionDiagnostics(
        groups_evaluated=len(groups),
        invalid_deployments_excluded=invalid_excluded_count,
        total_kept_releases=len(kept_releases),
    )
