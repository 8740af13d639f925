"""Retention evaluation entry point (imperative shell).

Handles None-collection normalization, logging, spans and timing around the
pure RetentionEvaluationEngine. None of that touches the returned data.
"""

from __future__ import annotations

import time
from functools import lru_cache
from typing import TYPE_CHECKING

import structlog

from release_retention.domain.errors import RetentionError
from release_retention.domain.models import EvaluationInputs
from release_retention.domain.pipeline import RetentionEvaluationEngine, default_steps
from release_retention.domain.ranking import DefaultGroupRetentionEvaluator
from release_retention.settings import Settings
from release_retention.telemetry import (
    LoggingGroupObserver,
    ObservedGroupRetentionEvaluator,
    SpanFactory,
    create_span_factory,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from release_retention.domain.models import (
        Deployment,
        Environment,
        Project,
        Release,
        RetentionResult,
    )
    from release_retention.telemetry import GroupObserver

logger = structlog.get_logger(__name__)


class RetentionService:
    """Evaluates retention for every (project, environment) pair in a dataset."""

    def __init__(
        self,
        engine: RetentionEvaluationEngine | None = None,
        spans: SpanFactory | None = None,
    ) -> None:
        self._engine = engine or RetentionEvaluationEngine()
        self._spans = spans or SpanFactory()

    def evaluate(
        self,
        projects: Sequence[Project | None] | None,
        environments: Sequence[Environment | None] | None,
        releases: Sequence[Release | None] | None,
        deployments: Sequence[Deployment | None] | None,
        releases_to_keep: int,
        correlation_id: str | None = None,
    ) -> RetentionResult:
        """Evaluate retention and return kept releases, decisions and diagnostics.

        None collections are treated as empty. Raises RetentionValidationError
        when the dataset fails validation; no partial result is produced.
        """
        inputs = EvaluationInputs(
            projects=tuple(projects) if projects is not None else (),
            environments=tuple(environments) if environments is not None else (),
            releases=tuple(releases) if releases is not None else (),
            deployments=tuple(deployments) if deployments is not None else (),
            releases_to_keep=releases_to_keep,
            correlation_id=correlation_id,
        )
        log = logger.bind(correlation_id=correlation_id, releases_to_keep=releases_to_keep)
        log.info(
            "retention_evaluation_started",
            projects=len(inputs.projects),
            environments=len(inputs.environments),
            releases=len(inputs.releases),
            deployments=len(inputs.deployments),
        )

        start_time = time.monotonic()
        with self._spans.evaluate_span(
            releases_to_keep,
            len(inputs.projects),
            len(inputs.environments),
            len(inputs.releases),
            len(inputs.deployments),
        ) as span:
            try:
                result = self._engine.evaluate(inputs)
            except RetentionError as exc:
                span.set_attribute("error.code", exc.code)
                log.warning("retention_evaluation_failed", code=exc.code, message=exc.message)
                raise

            diagnostics = result.diagnostics
            span.set_attribute("retention.kept_releases", diagnostics.total_kept_releases)
            span.set_attribute(
                "retention.invalid_deployments_excluded",
                diagnostics.invalid_deployments_excluded,
            )
            span.set_attribute("retention.groups_evaluated", diagnostics.groups_evaluated)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        log.info(
            "retention_evaluation_completed",
            kept_releases=diagnostics.total_kept_releases,
            invalid_deployments_excluded=diagnostics.invalid_deployments_excluded,
            groups_evaluated=diagnostics.groups_evaluated,
            elapsed_ms=round(elapsed_ms, 3),
        )
        return result


def build_service(
    settings: Settings | None = None,
    observers: Sequence[GroupObserver] | None = None,
) -> RetentionService:
    """Wire a RetentionService with spans and group observers from settings."""
    settings = settings or Settings()
    spans = create_span_factory(settings.telemetry.enabled, settings.telemetry.tracer_name)

    if observers is None:
        observers = [LoggingGroupObserver()] if settings.telemetry.log_groups else []

    group_evaluator = ObservedGroupRetentionEvaluator(
        DefaultGroupRetentionEvaluator(),
        observers=observers,
        spans=spans,
    )
    engine = RetentionEvaluationEngine(default_steps(group_evaluator=group_evaluator, spans=spans))
    return RetentionService(engine=engine, spans=spans)


@lru_cache(maxsize=1)
def get_default_service() -> RetentionService:
    """Process-wide service built from environment settings. Stateless."""
    return build_service()


def evaluate_retention(
    projects: Sequence[Project | None] | None,
    environments: Sequence[Environment | None] | None,
    releases: Sequence[Release | None] | None,
    deployments: Sequence[Deployment | None] | None,
    releases_to_keep: int,
    correlation_id: str | None = None,
) -> RetentionResult:
    """Module-level shortcut for ``get_default_service().evaluate(...)``."""
    return get_default_service().evaluate(
        projects,
        environments,
        releases,
        deployments,
        releases_to_keep,
        correlation_id,
    )
