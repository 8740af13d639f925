"""Deployment validity filter.

Pure domain module with zero framework imports.

Partitions deployments into valid (every reference resolves) and invalid
(dangling release, project or environment). Invalid deployments are a normal,
recoverable condition: they are excluded from ranking and recorded as
diagnostic decision log entries. This step never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from release_retention.domain.decisions import build_invalid_deployment_entry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from release_retention.domain.indexing import ReferenceIndex
    from release_retention.domain.models import DecisionLogEntry, Deployment

# Project id used on diagnostics when the deployment's release does not resolve
UNKNOWN_PROJECT_ID = "unknown"


@dataclass(frozen=True, slots=True)
class DeploymentValidity:
    """Outcome of checking one deployment. Empty reasons means valid."""

    reasons: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return len(self.reasons) == 0


@dataclass(frozen=True, slots=True)
class FilteredDeployments:
    """Valid deployments (input order) and diagnostics for the invalid ones."""

    valid: tuple[Deployment, ...] = ()
    diagnostics: tuple[DecisionLogEntry, ...] = ()


class DeploymentValiditySpecification(Protocol):
    """Decides whether a deployment's references resolve."""

    def evaluate(self, deployment: Deployment, index: ReferenceIndex) -> DeploymentValidity:
        """Return every applicable reason the deployment is invalid."""
        ...


class DefaultDeploymentValiditySpecification:
    """Release, then the release's project, then environment.

    The project check only runs when the release resolved. The environment
    check always runs, so a deployment can carry two reasons.
    """

    def evaluate(self, deployment: Deployment, index: ReferenceIndex) -> DeploymentValidity:
        reasons: list[str] = []

        release = index.releases_by_id.get(deployment.release_id)
        if release is None:
            reasons.append(f"release '{deployment.release_id}' not found")
        elif release.project_id not in index.projects_by_id:
            reasons.append(f"project '{release.project_id}' not found")

        if deployment.environment_id not in index.environments_by_id:
            reasons.append(f"environment '{deployment.environment_id}' not found")

        return DeploymentValidity(reasons=tuple(reasons))


def filter_deployments(
    deployments: Iterable[Deployment],
    index: ReferenceIndex,
    releases_to_keep: int,
    correlation_id: str | None = None,
    specification: DeploymentValiditySpecification | None = None,
) -> FilteredDeployments:
    """Split deployments into valid ones and diagnostic entries, in input order."""
    spec = specification or DefaultDeploymentValiditySpecification()
    valid: list[Deployment] = []
    diagnostics: list[DecisionLogEntry] = []

    for deployment in deployments:
        validity = spec.evaluate(deployment, index)
        if validity.is_valid:
            valid.append(deployment)
            continue

        release = index.releases_by_id.get(deployment.release_id)
        project_id = release.project_id if release is not None else UNKNOWN_PROJECT_ID
        diagnostics.append(
            build_invalid_deployment_entry(
                deployment,
                project_id,
                releases_to_keep,
                validity.reasons,
                correlation_id,
            )
        )

    return FilteredDeployments(valid=tuple(valid), diagnostics=tuple(diagnostics))
