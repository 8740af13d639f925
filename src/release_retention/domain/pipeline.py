"""Retention evaluation pipeline.

An immutable EvaluationContext is folded through an ordered tuple of steps.
Each step is a pure ``(context) -> context`` function, so every step can be
unit-tested in isolation. Default order:

  1. validate inputs            (first failure raises RetentionValidationError)
  2. build reference index
  3. filter invalid deployments (diagnostics, never raises)
  4. evaluate policy            (aggregate, rank, select)
  5. map results                (ReleaseCandidate -> KeptRelease)
  6. build decision log
  7. finalize result            (diagnostics + RetentionResult)

A step that finds a field an earlier step should have populated still unset
raises DomainInvariantError.
"""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from release_retention.domain.decisions import (
    assemble_decision_log,
    build_kept_entry,
    compute_diagnostics,
    to_kept_release,
)
from release_retention.domain.errors import DomainInvariantError
from release_retention.domain.indexing import ReferenceIndex, build_reference_index
from release_retention.domain.models import (
    DecisionLogEntry,
    EvaluationInputs,
    KeptRelease,
    ReleaseCandidate,
    RetentionResult,
)
from release_retention.domain.ranking import GroupRetentionEvaluator, evaluate_policy
from release_retention.domain.validation import ValidationRule, run_validation_chain
from release_retention.domain.validity import (
    DeploymentValiditySpecification,
    FilteredDeployments,
    filter_deployments,
)

if TYPE_CHECKING:
    from release_retention.telemetry import SpanFactory


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    """Snapshot of pipeline state. Steps return a new context via ``evolve``."""

    inputs: EvaluationInputs
    reference_index: ReferenceIndex | None = None
    filtered: FilteredDeployments | None = None
    candidates: tuple[ReleaseCandidate, ...] | None = None
    kept_releases: tuple[KeptRelease, ...] | None = None
    decisions: tuple[DecisionLogEntry, ...] | None = None
    result: RetentionResult | None = None

    def evolve(self, **changes: Any) -> EvaluationContext:
        return dataclasses.replace(self, **changes)

    def require(self, name: str) -> Any:
        value = getattr(self, name)
        if value is None:
            msg = f"Pipeline invariant violation: '{name}' must be set by an earlier step"
            raise DomainInvariantError(msg)
        return value


EvaluationStep = Callable[[EvaluationContext], EvaluationContext]


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def validate_inputs_step(
    rules: Sequence[ValidationRule] | None = None,
    spans: SpanFactory | None = None,
) -> EvaluationStep:
    """Run the validation chain; raise on the first failure."""

    def step(context: EvaluationContext) -> EvaluationContext:
        if spans is None:
            failure = run_validation_chain(context.inputs, rules)
        else:
            with spans.validate_span() as span:
                failure = run_validation_chain(context.inputs, rules)
                span.set_attribute("validation.passed", failure is None)
        if failure is not None:
            raise failure.to_error()
        return context

    return step


def build_reference_index_step(context: EvaluationContext) -> EvaluationContext:
    inputs = context.inputs
    index = build_reference_index(inputs.projects, inputs.environments, inputs.releases)
    return context.evolve(reference_index=index)


def filter_invalid_deployments_step(
    specification: DeploymentValiditySpecification | None = None,
) -> EvaluationStep:
    def step(context: EvaluationContext) -> EvaluationContext:
        filtered = filter_deployments(
            context.inputs.deployments,
            context.require("reference_index"),
            context.inputs.releases_to_keep,
            context.inputs.correlation_id,
            specification,
        )
        return context.evolve(filtered=filtered)

    return step


def evaluate_policy_step(
    group_evaluator: GroupRetentionEvaluator | None = None,
) -> EvaluationStep:
    def step(context: EvaluationContext) -> EvaluationContext:
        index: ReferenceIndex = context.require("reference_index")
        filtered: FilteredDeployments = context.require("filtered")
        candidates = evaluate_policy(
            index.releases_by_id,
            filtered.valid,
            context.inputs.releases_to_keep,
            group_evaluator,
        )
        return context.evolve(candidates=candidates)

    return step


def map_results_step(context: EvaluationContext) -> EvaluationContext:
    candidates: tuple[ReleaseCandidate, ...] = context.require("candidates")
    return context.evolve(kept_releases=tuple(to_kept_release(c) for c in candidates))


def build_decision_log_step(context: EvaluationContext) -> EvaluationContext:
    candidates: tuple[ReleaseCandidate, ...] = context.require("candidates")
    filtered: FilteredDeployments = context.require("filtered")
    inputs = context.inputs
    kept_entries = [
        build_kept_entry(c, inputs.releases_to_keep, inputs.correlation_id) for c in candidates
    ]
    return context.evolve(decisions=assemble_decision_log(kept_entries, filtered.diagnostics))


def finalize_result_step(context: EvaluationContext) -> EvaluationContext:
    candidates: tuple[ReleaseCandidate, ...] = context.require("candidates")
    filtered: FilteredDeployments = context.require("filtered")
    kept_releases: tuple[KeptRelease, ...] = context.require("kept_releases")
    decisions: tuple[DecisionLogEntry, ...] = context.require("decisions")

    diagnostics = compute_diagnostics(candidates, len(filtered.diagnostics), kept_releases)
    result = RetentionResult(
        kept_releases=kept_releases,
        decisions=decisions,
        diagnostics=diagnostics,
    )
    return context.evolve(result=result)


def default_steps(
    *,
    rules: Sequence[ValidationRule] | None = None,
    specification: DeploymentValiditySpecification | None = None,
    group_evaluator: GroupRetentionEvaluator | None = None,
    spans: SpanFactory | None = None,
) -> tuple[EvaluationStep, ...]:
    """The seven pipeline steps in their fixed order."""
    return (
        validate_inputs_step(rules, spans),
        build_reference_index_step,
        filter_invalid_deployments_step(specification),
        evaluate_policy_step(group_evaluator),
        map_results_step,
        build_decision_log_step,
        finalize_result_step,
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class RetentionEvaluationEngine:
    """Pure, deterministic evaluation engine. No logging, no side effects."""

    def __init__(self, steps: Sequence[EvaluationStep] | None = None) -> None:
        self._steps = tuple(steps) if steps is not None else default_steps()

    def evaluate(self, inputs: EvaluationInputs) -> RetentionResult:
        context = functools.reduce(
            lambda ctx, step: step(ctx),
            self._steps,
            EvaluationContext(inputs=inputs),
        )
        result: RetentionResult = context.require("result")
        return result
