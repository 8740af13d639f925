"""Reference index: id -> entity lookups built once per evaluation.

Assumes the validation chain already guaranteed id uniqueness; does not
re-check. Keys compare ordinally (plain ``str`` equality).
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from release_retention.domain.models import Environment, Project, Release


@dataclass(frozen=True, slots=True)
class ReferenceIndex:
    """Read-only lookups for projects, environments and releases."""

    projects_by_id: Mapping[str, Project]
    environments_by_id: Mapping[str, Environment]
    releases_by_id: Mapping[str, Release]


def build_reference_index(
    projects: Iterable[Project],
    environments: Iterable[Environment],
    releases: Iterable[Release],
) -> ReferenceIndex:
    """Build the three lookups in a single pass over each collection."""
    return ReferenceIndex(
        projects_by_id=MappingProxyType({p.id: p for p in projects}),
        environments_by_id=MappingProxyType({e.id: e for e in environments}),
        releases_by_id=MappingProxyType({r.id: r for r in releases}),
    )
