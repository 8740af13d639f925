"""Input validation chain.

Pure Python with zero framework imports. An ordered list of independent rules,
each returning a ValidationFailure or None. The chain stops at the first
failure; later rules never run.

Default order:
  1. releases_to_keep >= 0
  2. no None elements in projects, environments, releases, deployments
  3. no duplicate ids in projects, environments, releases
     (deployments are event records and are deliberately not checked)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from release_retention.domain.errors import ErrorCode, RetentionValidationError

if TYPE_CHECKING:
    from release_retention.domain.models import EvaluationInputs

CollectionAccessor = Callable[["EvaluationInputs"], Sequence[Any]]


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    """First failure reported by the validation chain."""

    code: str
    message: str

    def to_error(self) -> RetentionValidationError:
        return RetentionValidationError(self.code, self.message)


class ValidationRule(Protocol):
    """A single check over the raw evaluation inputs."""

    def validate(self, inputs: EvaluationInputs) -> ValidationFailure | None:
        """Return a failure, or None when the inputs pass."""
        ...


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class NonNegativeReleasesToKeepRule:
    """releases_to_keep must be >= 0."""

    def validate(self, inputs: EvaluationInputs) -> ValidationFailure | None:
        if inputs.releases_to_keep < 0:
            return ValidationFailure(
                ErrorCode.N_NEGATIVE,
                f"Parameter 'releasesToKeep' must be >= 0, but was {inputs.releases_to_keep}.",
            )
        return None


class NoNullElementsRule:
    """A collection must not contain None elements."""

    def __init__(self, collection_name: str, accessor: CollectionAccessor) -> None:
        self._collection_name = collection_name
        self._accessor = accessor

    def validate(self, inputs: EvaluationInputs) -> ValidationFailure | None:
        for index, item in enumerate(self._accessor(inputs)):
            if item is None:
                return ValidationFailure(
                    ErrorCode.NULL_ELEMENT,
                    f"Null element found at index {index} in '{self._collection_name}'.",
                )
        return None


class NoDuplicateIdsRule:
    """Ids within a collection must be unique (ordinal comparison).

    Every duplicated id is reported once, in order of its first repeat.
    """

    def __init__(self, entity_name: str, error_code: str, accessor: CollectionAccessor) -> None:
        self._entity_name = entity_name
        self._error_code = error_code
        self._accessor = accessor

    def validate(self, inputs: EvaluationInputs) -> ValidationFailure | None:
        seen: set[str] = set()
        duplicates: dict[str, None] = {}
        for item in self._accessor(inputs):
            if item.id in seen:
                duplicates.setdefault(item.id)
            else:
                seen.add(item.id)

        if duplicates:
            return ValidationFailure(
                self._error_code,
                f"Duplicate {self._entity_name} ID(s) found: {', '.join(duplicates)}",
            )
        return None


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def _projects(inputs: EvaluationInputs) -> Sequence[Any]:
    return inputs.projects


def _environments(inputs: EvaluationInputs) -> Sequence[Any]:
    return inputs.environments


def _releases(inputs: EvaluationInputs) -> Sequence[Any]:
    return inputs.releases


def _deployments(inputs: EvaluationInputs) -> Sequence[Any]:
    return inputs.deployments


def create_default_chain() -> tuple[ValidationRule, ...]:
    """Return the default rules in execution order."""
    return (
        NonNegativeReleasesToKeepRule(),
        NoNullElementsRule("projects", _projects),
        NoNullElementsRule("environments", _environments),
        NoNullElementsRule("releases", _releases),
        NoNullElementsRule("deployments", _deployments),
        NoDuplicateIdsRule("project", ErrorCode.DUPLICATE_PROJECT_ID, _projects),
        NoDuplicateIdsRule("environment", ErrorCode.DUPLICATE_ENVIRONMENT_ID, _environments),
        NoDuplicateIdsRule("release", ErrorCode.DUPLICATE_RELEASE_ID, _releases),
    )


def run_validation_chain(
    inputs: EvaluationInputs,
    rules: Sequence[ValidationRule] | None = None,
) -> ValidationFailure | None:
    """Run rules in order and return the first failure, if any."""
    for rule in rules if rules is not None else create_default_chain():
        failure = rule.validate(inputs)
        if failure is not None:
            return failure
    return None
