"""Unit tests for release_retention.service: end-to-end evaluation behaviour."""

from __future__ import annotations

import random
from datetime import timedelta, timezone

import pytest

from release_retention.domain.errors import ErrorCode, RetentionValidationError
from release_retention.domain.models import DecisionType, ReasonCode
from release_retention.service import RetentionService, build_service, evaluate_retention
from release_retention.settings import Settings, TelemetrySettings
from tests.fixtures.datasets import (
    at,
    make_deployment,
    make_environment,
    make_project,
    make_release,
)


def _evaluate(dataset: dict[str, list], releases_to_keep: int, **kwargs):
    return RetentionService().evaluate(
        dataset["projects"],
        dataset["environments"],
        dataset["releases"],
        dataset["deployments"],
        releases_to_keep,
        **kwargs,
    )


def _shuffled(dataset: dict[str, list], seed: int) -> dict[str, list]:
    rng = random.Random(seed)
    shuffled = {}
    for key, items in dataset.items():
        copy = list(items)
        rng.shuffle(copy)
        shuffled[key] = copy
    return shuffled


class TestWorkedExamples:
    def test_single_release_kept(self) -> None:
        result = evaluate_retention(
            [make_project("Project-1", name="My App")],
            [make_environment("Env-1", name="Production")],
            [make_release("Release-1", "Project-1", created=at(), version="1.0.0")],
            [make_deployment("Deploy-1", "Release-1", "Env-1", at(hours=2))],
            2,
        )
        (kept,) = result.kept_releases
        assert kept.release_id == "Release-1"
        assert kept.rank == 1
        assert kept.reason_code == "kept.top_n"
        assert result.diagnostics.groups_evaluated == 1
        assert result.diagnostics.invalid_deployments_excluded == 0
        assert result.diagnostics.total_kept_releases == 1

    def test_negative_n_rejected(self) -> None:
        with pytest.raises(RetentionValidationError) as exc_info:
            evaluate_retention([], [], [], [], -1)
        assert exc_info.value.code == ErrorCode.N_NEGATIVE

    def test_duplicate_project_ids_rejected_before_deployments(self) -> None:
        with pytest.raises(RetentionValidationError) as exc_info:
            evaluate_retention(
                [make_project("Project-1"), make_project("Project-1")],
                [],
                [],
                # Would be a diagnostic if deployments were processed
                [make_deployment("d1", "missing", "missing")],
                1,
            )
        assert exc_info.value.code == "validation.duplicate_id.project"


class TestNoneCollections:
    def test_none_collections_treated_as_empty(self) -> None:
        result = RetentionService().evaluate(None, None, None, None, 3)
        assert result.kept_releases == ()
        assert result.decisions == ()
        assert result.diagnostics.total_kept_releases == 0

    def test_null_element_rejected(self) -> None:
        with pytest.raises(RetentionValidationError) as exc_info:
            RetentionService().evaluate([make_project(), None], None, None, None, 1)
        assert exc_info.value.code == ErrorCode.NULL_ELEMENT
        assert exc_info.value.message == "Null element found at index 1 in 'projects'."


class TestProperties:
    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
    def test_determinism_under_shuffle(self, sample_dataset, seed: int) -> None:
        expected = _evaluate(sample_dataset, 2)
        actual = _evaluate(_shuffled(sample_dataset, seed), 2)
        assert actual.kept_releases == expected.kept_releases
        assert actual.decisions == expected.decisions
        assert actual.diagnostics == expected.diagnostics

    def test_zero_keeps_nothing_but_reports_diagnostics(self, sample_dataset) -> None:
        result = _evaluate(sample_dataset, 0)
        assert result.kept_releases == ()
        assert result.diagnostics.total_kept_releases == 0
        assert result.diagnostics.groups_evaluated == 0
        assert len(result.decisions) == 1
        assert all(d.decision_type == DecisionType.DIAGNOSTIC for d in result.decisions)

    @pytest.mark.parametrize("releases_to_keep", [1, 2, 3, 10])
    def test_cardinality(self, sample_dataset, releases_to_keep: int) -> None:
        result = _evaluate(sample_dataset, releases_to_keep)
        group_sizes = {("Project-1", "Staging"): 3, ("Project-1", "Production"): 2}
        group_sizes[("Project-2", "Production")] = 1
        for group, size in group_sizes.items():
            ranks = [
                k.rank
                for k in result.kept_releases
                if (k.project_id, k.environment_id) == group
            ]
            assert ranks == list(range(1, min(size, releases_to_keep) + 1))

    def test_tie_break_prefers_later_created_then_smaller_id(self) -> None:
        same_time = at(days=5)
        result = evaluate_retention(
            [make_project("p")],
            [make_environment("e")],
            [
                make_release("b", "p", created=at(days=1)),
                make_release("a", "p", created=at(days=1)),
                make_release("c", "p", created=at(days=2)),
            ],
            [
                make_deployment("d1", "a", "e", same_time),
                make_deployment("d2", "b", "e", same_time),
                make_deployment("d3", "c", "e", same_time),
            ],
            3,
        )
        assert [k.release_id for k in result.kept_releases] == ["c", "a", "b"]

    def test_invalid_reference_isolated(self) -> None:
        result = evaluate_retention(
            [make_project("p")],
            [make_environment("e")],
            [make_release("r1", "p")],
            [
                make_deployment("d1", "r1", "e", at(hours=1)),
                make_deployment("d2", "ghost", "e", at(hours=9)),
            ],
            5,
        )
        assert [k.release_id for k in result.kept_releases] == ["r1"]
        diagnostics = [d for d in result.decisions if d.decision_type == DecisionType.DIAGNOSTIC]
        assert len(diagnostics) == 1
        assert diagnostics[0].reason_code == ReasonCode.INVALID_REFERENCE
        assert diagnostics[0].release_id == "ghost"
        assert result.diagnostics.invalid_deployments_excluded == 1

    def test_idempotent_serialization(self, sample_dataset) -> None:
        first = _evaluate(sample_dataset, 2).model_dump_json()
        second = _evaluate(sample_dataset, 2).model_dump_json()
        assert first == second

    def test_equal_instants_with_different_offsets_serialize_identically(self) -> None:
        plus_one = timezone(timedelta(hours=1))
        deployments = [
            make_deployment("d1", "r1", "e", at(hours=2)),
            make_deployment("d2", "r1", "e", at(hours=2).astimezone(plus_one)),
        ]
        args = ([make_project("p")], [make_environment("e")], [make_release("r1", "p")])

        forward = evaluate_retention(*args, deployments, 1).model_dump_json()
        backward = evaluate_retention(*args, list(reversed(deployments)), 1).model_dump_json()

        assert forward == backward
        assert '"latest_deployed_at":"2000-01-01T10:00:00Z"' in forward

    def test_latest_deployment_wins_within_group(self, sample_dataset) -> None:
        result = _evaluate(sample_dataset, 1)
        production = [
            k
            for k in result.kept_releases
            if (k.project_id, k.environment_id) == ("Project-1", "Production")
        ]
        # Release-1 was redeployed to Production after Release-2
        assert [k.release_id for k in production] == ["Release-1"]

    def test_correlation_id_on_every_decision(self, sample_dataset) -> None:
        result = _evaluate(sample_dataset, 2, correlation_id="corr-42")
        assert result.decisions
        assert all(d.correlation_id == "corr-42" for d in result.decisions)


class TestBuildService:
    def test_observers_do_not_change_result(self, sample_dataset) -> None:
        class RaisingObserver:
            def on_group_start(self, *args) -> None:
                raise RuntimeError("boom")

            def on_group_complete(self, *args) -> None:
                raise RuntimeError("boom")

        settings = Settings(telemetry=TelemetrySettings(enabled=False))
        observed = build_service(settings, observers=[RaisingObserver()])
        plain = RetentionService()
        args = (
            sample_dataset["projects"],
            sample_dataset["environments"],
            sample_dataset["releases"],
            sample_dataset["deployments"],
            2,
        )
        assert observed.evaluate(*args) == plain.evaluate(*args)

    def test_build_service_with_telemetry_enabled(self, sample_dataset) -> None:
        settings = Settings(telemetry=TelemetrySettings(enabled=True))
        service = build_service(settings)
        result = service.evaluate(
            sample_dataset["projects"],
            sample_dataset["environments"],
            sample_dataset["releases"],
            sample_dataset["deployments"],
            1,
        )
        assert result.diagnostics.total_kept_releases == 3
