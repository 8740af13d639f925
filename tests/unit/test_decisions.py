"""Unit tests for release_retention.domain.decisions."""

from __future__ import annotations

from release_retention.domain.decisions import (
    assemble_decision_log,
    build_invalid_deployment_entry,
    build_kept_entry,
    compute_diagnostics,
    to_kept_release,
)
from release_retention.domain.models import DecisionType, ReasonCode, ReleaseCandidate
from tests.fixtures.datasets import at, make_deployment


def _candidate(project_id="p1", environment_id="e1", release_id="r1", rank=1):
    return ReleaseCandidate(
        project_id=project_id,
        environment_id=environment_id,
        release_id=release_id,
        version="1.0",
        created=at(),
        latest_deployed_at=at(hours=1),
        rank=rank,
    )


class TestBuildKeptEntry:
    def test_fields_and_text(self) -> None:
        entry = build_kept_entry(_candidate(rank=2), 3, correlation_id="c-1")
        assert entry.reason_code == ReasonCode.KEPT_TOP_N
        assert entry.decision_type == DecisionType.KEPT
        assert entry.n == 3
        assert entry.rank == 2
        assert entry.latest_deployed_at == at(hours=1)
        assert entry.correlation_id == "c-1"
        assert entry.reason_text == (
            "Release 'r1' kept: rank 2 of 3 for project 'p1' / environment 'e1'"
        )


class TestToKeptRelease:
    def test_copies_fields(self) -> None:
        candidate = _candidate(rank=1)
        kept = to_kept_release(candidate)
        assert kept.model_dump() == {
            "release_id": "r1",
            "project_id": "p1",
            "environment_id": "e1",
            "version": "1.0",
            "created": at(),
            "latest_deployed_at": at(hours=1),
            "rank": 1,
            "reason_code": ReasonCode.KEPT_TOP_N,
        }


class TestAssembleDecisionLog:
    def test_kept_before_diagnostics(self) -> None:
        diagnostic = build_invalid_deployment_entry(
            make_deployment("d1", "r0", "e0"), "a-project", 1, ["release 'r0' not found"]
        )
        kept = build_kept_entry(_candidate(project_id="z-project"), 1)
        log = assemble_decision_log([kept], [diagnostic])
        assert [e.decision_type for e in log] == [DecisionType.KEPT, DecisionType.DIAGNOSTIC]

    def test_sorted_by_project_environment_rank_release(self) -> None:
        entries = [
            build_kept_entry(_candidate("p2", "e1", "r1", 1), 2),
            build_kept_entry(_candidate("p1", "e2", "r2", 1), 2),
            build_kept_entry(_candidate("p1", "e1", "r3", 2), 2),
            build_kept_entry(_candidate("p1", "e1", "r4", 1), 2),
        ]
        log = assemble_decision_log(entries, [])
        assert [e.release_id for e in log] == ["r4", "r3", "r2", "r1"]

    def test_diagnostics_for_same_release_sorted_by_text(self) -> None:
        second = build_invalid_deployment_entry(
            make_deployment("d2", "r9", "e1"), "unknown", 1, ["release 'r9' not found"]
        )
        first = build_invalid_deployment_entry(
            make_deployment("d1", "r9", "e1"), "unknown", 1, ["release 'r9' not found"]
        )
        log = assemble_decision_log([], [second, first])
        assert [e.reason_text for e in log] == [first.reason_text, second.reason_text]


class TestComputeDiagnostics:
    def test_counts(self) -> None:
        candidates = [
            _candidate("p1", "e1", "r1", 1),
            _candidate("p1", "e1", "r2", 2),
            _candidate("p1", "e2", "r1", 1),
        ]
        kept = [to_kept_release(c) for c in candidates]
        diagnostics = compute_diagnostics(candidates, 4, kept)
        assert diagnostics.groups_evaluated == 2
        assert diagnostics.invalid_deployments_excluded == 4
        assert diagnostics.total_kept_releases == 3

    def test_nothing_kept(self) -> None:
        diagnostics = compute_diagnostics([], 0, [])
        assert diagnostics.groups_evaluated == 0
        assert diagnostics.total_kept_releases == 0
