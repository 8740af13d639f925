"""Unit tests for release_retention.domain.models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from release_retention.domain.models import (
    DecisionLogEntry,
    DecisionType,
    ReasonCode,
    Release,
    ReleaseCandidate,
    RetentionDiagnostics,
    RetentionResult,
)
from tests.fixtures.datasets import at, make_project, make_release


class TestInputEntities:
    def test_entities_are_frozen(self) -> None:
        project = make_project()
        with pytest.raises(ValidationError):
            project.name = "renamed"  # type: ignore[misc]

    def test_release_version_is_optional(self) -> None:
        release = make_release(version=None)
        assert release.version is None

    def test_naive_datetime_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Release(id="r", project_id="p", created=datetime(2000, 1, 1))  # noqa: DTZ001

    def test_offsets_normalized_to_utc(self) -> None:
        local = datetime(2000, 1, 1, 11, 0, tzinfo=timezone(timedelta(hours=1)))
        release = make_release(created=local)
        assert release.created.tzinfo is UTC
        assert release.created == datetime(2000, 1, 1, 10, 0, tzinfo=UTC)

    def test_ids_compare_ordinally(self) -> None:
        assert make_project("a").id != make_project("A").id


class TestReleaseCandidate:
    def _candidate(self, **overrides) -> ReleaseCandidate:
        defaults: dict = {
            "project_id": "p",
            "environment_id": "e",
            "release_id": "r",
            "created": at(),
            "latest_deployed_at": at(hours=1),
            "rank": 1,
        }
        defaults.update(overrides)
        return ReleaseCandidate(**defaults)

    def test_default_reason_code(self) -> None:
        assert self._candidate().reason_code == ReasonCode.KEPT_TOP_N

    def test_rank_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            self._candidate(rank=0)


class TestDecisionLogEntry:
    def _entry(self, reason_code: ReasonCode) -> DecisionLogEntry:
        return DecisionLogEntry(
            project_id="p",
            environment_id="e",
            release_id="r",
            n=1,
            rank=0,
            reason_text="text",
            reason_code=reason_code,
        )

    def test_kept_code_maps_to_kept(self) -> None:
        assert self._entry(ReasonCode.KEPT_TOP_N).decision_type == DecisionType.KEPT

    def test_invalid_reference_maps_to_diagnostic(self) -> None:
        entry = self._entry(ReasonCode.INVALID_REFERENCE)
        assert entry.decision_type == DecisionType.DIAGNOSTIC

    def test_reason_codes_are_stable_strings(self) -> None:
        assert ReasonCode.KEPT_TOP_N == "kept.top_n"
        assert ReasonCode.INVALID_REFERENCE == "diagnostic.invalid_reference"

    def test_negative_n_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DecisionLogEntry(
                project_id="p",
                environment_id="e",
                release_id="r",
                n=-1,
                rank=0,
                reason_text="text",
                reason_code=ReasonCode.KEPT_TOP_N,
            )


class TestRetentionResult:
    def test_empty_defaults(self) -> None:
        result = RetentionResult()
        assert result.kept_releases == ()
        assert result.decisions == ()
        assert result.diagnostics == RetentionDiagnostics()
