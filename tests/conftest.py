"""Shared pytest fixtures for riteway-pytest tests.

The riteway plugin is loaded here so the example module collects its
``assert_`` registrations; pytester drives end-to-end plugin runs.
"""

from __future__ import annotations

import pytest

from riteway_pytest import Assert, InProcessEngine

pytest_plugins = ["pytester", "riteway_pytest.pytest_plugin"]

PLUGIN_CONFTEST = 'pytest_plugins = ["riteway_pytest.pytest_plugin"]\n'


@pytest.fixture
def engine() -> InProcessEngine:
    """Create a fresh in-process engine (isolated per test)."""
    return InProcessEngine()


@pytest.fixture
def check(engine: InProcessEngine) -> Assert:
    """Adapter bound to the per-test in-process engine."""
    return Assert(engine)


@pytest.fixture
def riteway_pytester(pytester: pytest.Pytester) -> pytest.Pytester:
    """Pytester with the riteway plugin enabled in its root conftest."""
    pytester.makeconftest(PLUGIN_CONFTEST)
    return pytester
