"""Observational instrumentation for retention evaluation.

Everything here is side-channel only: observers receive ids and counts,
never the candidates themselves, and nothing they do can change control
flow, ordering or returned data. An observer that raises is logged and
ignored.

Span Hierarchy (when an OpenTelemetry tracer is configured):
    retention.evaluate
    ├── retention.validate
    └── retention.rank   (one per project/environment group)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from opentelemetry.trace import Span, Tracer

    from release_retention.domain.models import ReleaseCandidate
    from release_retention.domain.ranking import GroupEntry, GroupRetentionEvaluator

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Spans
# ---------------------------------------------------------------------------


class NoOpSpan:
    """No-op span for when tracing is disabled."""

    def set_attribute(self, key: str, value: Any) -> None:
        pass

    def is_recording(self) -> bool:
        return False


class SpanFactory:
    """Creates OpenTelemetry spans, or no-op spans when no tracer is given."""

    _NOOP_SPAN = NoOpSpan()

    def __init__(self, tracer: Tracer | None = None) -> None:
        self._tracer = tracer

    @property
    def enabled(self) -> bool:
        return self._tracer is not None

    @contextmanager
    def _span(self, name: str, attributes: dict[str, Any]) -> Iterator[Span | NoOpSpan]:
        if self._tracer is None:
            yield self._NOOP_SPAN
            return

        with self._tracer.start_as_current_span(name, attributes=attributes) as span:
            yield span

    def evaluate_span(
        self,
        releases_to_keep: int,
        projects: int,
        environments: int,
        releases: int,
        deployments: int,
    ) -> Any:
        return self._span(
            "retention.evaluate",
            {
                "retention.n": releases_to_keep,
                "input.projects.count": projects,
                "input.environments.count": environments,
                "input.releases.count": releases,
                "input.deployments.count": deployments,
            },
        )

    def validate_span(self) -> Any:
        return self._span("retention.validate", {})

    def rank_span(self, project_id: str, environment_id: str, eligible_count: int) -> Any:
        return self._span(
            "retention.rank",
            {
                "project.id": project_id,
                "environment.id": environment_id,
                "eligible_releases.count": eligible_count,
            },
        )


def create_span_factory(enabled: bool, tracer_name: str) -> SpanFactory:
    """Build a SpanFactory from the global OpenTelemetry tracer provider."""
    if not enabled:
        return SpanFactory()

    from opentelemetry import trace

    return SpanFactory(tracer=trace.get_tracer(tracer_name))


# ---------------------------------------------------------------------------
# Group observers
# ---------------------------------------------------------------------------


class GroupObserver(Protocol):
    """Notified around each group's ranking. Receives counts only."""

    def on_group_start(self, project_id: str, environment_id: str, eligible_count: int) -> None: ...

    def on_group_complete(
        self,
        project_id: str,
        environment_id: str,
        eligible_count: int,
        kept_count: int,
        duration_ms: float,
    ) -> None: ...


class LoggingGroupObserver:
    """Emits one debug log per ranked group."""

    def on_group_start(self, project_id: str, environment_id: str, eligible_count: int) -> None:
        pass

    def on_group_complete(
        self,
        project_id: str,
        environment_id: str,
        eligible_count: int,
        kept_count: int,
        duration_ms: float,
    ) -> None:
        logger.debug(
            "retention_group_ranked",
            project_id=project_id,
            environment_id=environment_id,
            eligible_count=eligible_count,
            kept_count=kept_count,
            duration_ms=round(duration_ms, 3),
        )


class ObservedGroupRetentionEvaluator:
    """Decorates a group evaluator with observers and a per-group span.

    The inner evaluator's result is returned unchanged.
    """

    def __init__(
        self,
        inner: GroupRetentionEvaluator,
        observers: Sequence[GroupObserver] = (),
        spans: SpanFactory | None = None,
    ) -> None:
        self._inner = inner
        self._observers = tuple(observers)
        self._spans = spans or SpanFactory()

    def evaluate_group(
        self,
        project_id: str,
        environment_id: str,
        entries: Sequence[GroupEntry],
        releases_to_keep: int,
    ) -> list[ReleaseCandidate]:
        eligible_count = len(entries)
        self._notify("on_group_start", project_id, environment_id, eligible_count)

        start = time.perf_counter()
        with self._spans.rank_span(project_id, environment_id, eligible_count) as span:
            result = self._inner.evaluate_group(
                project_id, environment_id, entries, releases_to_keep
            )
            span.set_attribute("kept_releases.count", len(result))
        duration_ms = (time.perf_counter() - start) * 1000

        self._notify(
            "on_group_complete",
            project_id,
            environment_id,
            eligible_count,
            len(result),
            duration_ms,
        )
        return result

    def _notify(self, hook: str, *args: Any) -> None:
        for observer in self._observers:
            try:
                getattr(observer, hook)(*args)
            except Exception:
                logger.warning(
                    "group_observer_failed",
                    observer=type(observer).__name__,
                    hook=hook,
                    exc_info=True,
                )
