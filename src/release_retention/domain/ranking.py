"""Group aggregation, ranking and top-N selection.

Pure domain module with zero framework imports.

For each valid deployment the key (release.project_id, environment_id,
release.id) keeps the MAXIMUM deployed_at seen. Collapsed entries are grouped
by (project_id, environment_id) and each group is ordered by the tie-break
chain:

  1. latest_deployed_at  desc
  2. release created     desc
  3. release id          asc (ordinal)

The first min(group size, N) entries are kept with dense 1-based ranks.
Ranking and selection are swappable strategies; the group evaluator composes
them and is itself the seam for instrumentation decorators.
"""

from __future__ import annotations

from dataclasses import dataclass
from operator import attrgetter
from typing import TYPE_CHECKING, Protocol

from release_retention.domain.errors import DomainInvariantError
from release_retention.domain.models import ReasonCode, ReleaseCandidate

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from release_retention.domain.models import Deployment, Release

GroupKey = tuple[str, str]


@dataclass(frozen=True, slots=True)
class GroupEntry:
    """One release within a (project, environment) group."""

    release_id: str
    version: str | None
    created: datetime
    latest_deployed_at: datetime


@dataclass(frozen=True, slots=True)
class RankedCandidate:
    """A group entry with its 1-based position after ordering."""

    release_id: str
    version: str | None
    created: datetime
    latest_deployed_at: datetime
    rank: int


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class RankingStrategy(Protocol):
    """Totally orders a group's entries and assigns ranks."""

    def rank(self, entries: Sequence[GroupEntry]) -> list[RankedCandidate]: ...


class SelectionStrategy(Protocol):
    """Chooses which ranked candidates to keep."""

    def select(
        self, ranked: Sequence[RankedCandidate], releases_to_keep: int
    ) -> list[RankedCandidate]: ...


class DefaultRankingStrategy:
    """Tie-break chain: latest deploy desc, created desc, id asc."""

    def rank(self, entries: Sequence[GroupEntry]) -> list[RankedCandidate]:
        # Stable multi-pass sort, least significant key first
        ordered = sorted(entries, key=attrgetter("release_id"))
        ordered.sort(key=attrgetter("created"), reverse=True)
        ordered.sort(key=attrgetter("latest_deployed_at"), reverse=True)

        return [
            RankedCandidate(
                release_id=entry.release_id,
                version=entry.version,
                created=entry.created,
                latest_deployed_at=entry.latest_deployed_at,
                rank=position,
            )
            for position, entry in enumerate(ordered, start=1)
        ]


class TopNSelectionStrategy:
    """Keep the first N ranked candidates."""

    def select(
        self, ranked: Sequence[RankedCandidate], releases_to_keep: int
    ) -> list[RankedCandidate]:
        return list(ranked[:releases_to_keep])


# ---------------------------------------------------------------------------
# Group evaluation
# ---------------------------------------------------------------------------


class GroupRetentionEvaluator(Protocol):
    """Evaluates a single (project, environment) group."""

    def evaluate_group(
        self,
        project_id: str,
        environment_id: str,
        entries: Sequence[GroupEntry],
        releases_to_keep: int,
    ) -> list[ReleaseCandidate]: ...


class DefaultGroupRetentionEvaluator:
    """Rank, select, then map to ReleaseCandidate."""

    def __init__(
        self,
        ranking: RankingStrategy | None = None,
        selection: SelectionStrategy | None = None,
    ) -> None:
        self._ranking = ranking or DefaultRankingStrategy()
        self._selection = selection or TopNSelectionStrategy()

    def evaluate_group(
        self,
        project_id: str,
        environment_id: str,
        entries: Sequence[GroupEntry],
        releases_to_keep: int,
    ) -> list[ReleaseCandidate]:
        ranked = self._ranking.rank(entries)
        selected = self._selection.select(ranked, releases_to_keep)
        return [
            ReleaseCandidate(
                project_id=project_id,
                environment_id=environment_id,
                release_id=candidate.release_id,
                version=candidate.version,
                created=candidate.created,
                latest_deployed_at=candidate.latest_deployed_at,
                rank=candidate.rank,
                reason_code=ReasonCode.KEPT_TOP_N,
            )
            for candidate in selected
        ]


def aggregate_groups(
    releases_by_id: Mapping[str, Release],
    deployments: Iterable[Deployment],
) -> dict[GroupKey, list[GroupEntry]]:
    """Collapse valid deployments into per-release latest deploy times, grouped.

    Entries within a group are ordered by release id so that strategies never
    observe input order. Raises DomainInvariantError if a deployment's release
    does not resolve (the validity filter should have excluded it).
    """
    latest: dict[tuple[str, str, str], datetime] = {}
    for deployment in deployments:
        release = releases_by_id.get(deployment.release_id)
        if release is None:
            msg = (
                f"Deployment '{deployment.id}' references release "
                f"'{deployment.release_id}' which is not in the reference index"
            )
            raise DomainInvariantError(msg)

        key = (release.project_id, deployment.environment_id, release.id)
        current = latest.get(key)
        if current is None or deployment.deployed_at > current:
            latest[key] = deployment.deployed_at

    groups: dict[GroupKey, list[GroupEntry]] = {}
    for project_id, environment_id, release_id in sorted(latest):
        release = releases_by_id[release_id]
        groups.setdefault((project_id, environment_id), []).append(
            GroupEntry(
                release_id=release.id,
                version=release.version,
                created=release.created,
                latest_deployed_at=latest[(project_id, environment_id, release_id)],
            )
        )
    return groups


def _ensure_dense_ranks(group: GroupKey, candidates: Sequence[ReleaseCandidate]) -> None:
    ranks = [c.rank for c in candidates]
    if ranks != list(range(1, len(candidates) + 1)):
        msg = f"Group {group} produced non-dense ranks {ranks}"
        raise DomainInvariantError(msg)


def evaluate_policy(
    releases_by_id: Mapping[str, Release],
    deployments: Iterable[Deployment],
    releases_to_keep: int,
    group_evaluator: GroupRetentionEvaluator | None = None,
) -> tuple[ReleaseCandidate, ...]:
    """Select the releases to keep for every (project, environment) group.

    Returns candidates ordered by project_id, environment_id, rank. With
    releases_to_keep == 0 no groups are computed at all.
    """
    if releases_to_keep == 0:
        return ()

    evaluator = group_evaluator or DefaultGroupRetentionEvaluator()
    groups = aggregate_groups(releases_by_id, deployments)

    kept: list[ReleaseCandidate] = []
    for (project_id, environment_id), entries in sorted(groups.items()):
        candidates = evaluator.evaluate_group(project_id, environment_id, entries, releases_to_keep)
        _ensure_dense_ranks((project_id, environment_id), candidates)
        kept.extend(candidates)

    return tuple(sorted(kept, key=attrgetter("project_id", "environment_id", "rank")))
