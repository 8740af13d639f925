"""Shared pytest fixtures for the release-retention test suite.

Wraps the factories in ``tests.fixtures.datasets``. No external services are
required.
"""

from __future__ import annotations

import pytest

from tests.fixtures.datasets import (
    make_deployment,
    make_environment,
    make_project,
    make_release,
    make_sample_dataset,
)


@pytest.fixture()
def project_factory():
    """Return the ``make_project`` factory callable."""
    return make_project


@pytest.fixture()
def environment_factory():
    """Return the ``make_environment`` factory callable."""
    return make_environment


@pytest.fixture()
def release_factory():
    """Return the ``make_release`` factory callable."""
    return make_release


@pytest.fixture()
def deployment_factory():
    """Return the ``make_deployment`` factory callable."""
    return make_deployment


@pytest.fixture()
def sample_dataset() -> dict[str, list]:
    """A fresh multi-project, multi-environment dataset."""
    return make_sample_dataset()
