"""Error types raised by the retention pipeline.

Two disjoint categories reach callers:
- RetentionValidationError: structural problems in the input. Evaluation is
  aborted before any grouping and no partial result exists.
- DomainInvariantError: an internal pipeline bug (e.g. an unresolvable
  reference slipping past the validity filter). Never expected in practice.

Invalid deployment references are NOT errors; they become diagnostic
decision log entries.
"""

from __future__ import annotations

import enum


class ErrorCode(enum.StrEnum):
    """Stable error codes for programmatic handling."""

    # Validation errors
    N_NEGATIVE = "validation.n_negative"
    NULL_ELEMENT = "validation.null_element"
    DUPLICATE_PROJECT_ID = "validation.duplicate_id.project"
    DUPLICATE_ENVIRONMENT_ID = "validation.duplicate_id.environment"
    DUPLICATE_RELEASE_ID = "validation.duplicate_id.release"

    # Domain errors
    DOMAIN_INVARIANT = "domain.invariant_violation"


class RetentionError(Exception):
    """Base class for all retention errors. Carries a stable code."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class RetentionValidationError(RetentionError):
    """Raised when the input dataset fails the validation chain."""


class DomainInvariantError(RetentionError):
    """Raised when an internal pipeline invariant is violated."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.DOMAIN_INVARIANT, message)
