"""Pytest plugin for riteway-pytest.

Enable it from a root conftest::

    pytest_plugins = ["riteway_pytest.pytest_plugin"]

Provides:
- Collection of ``assert_`` / ``assert_.only`` / ``assert_.skip`` registrations
- Marker: @pytest.mark.riteway (set on every collected assertion)
- Option: --riteway-only-scope (ini: riteway_only_scope)
- Ini: riteway_only_reason, riteway_skip_reason (reported skip reasons)
"""

from __future__ import annotations

import os
import warnings
from collections.abc import Generator
from typing import Any

import pytest

from riteway_pytest.collect import (
    CONFIG_KEY,
    MARKER_NAME,
    AssertionItem,
    UncollectedAssertionWarning,
    default_engine,
)
from riteway_pytest.config import ENV_ONLY_SCOPE, OnlyScope, load_config
from riteway_pytest.engine import Registration
from riteway_pytest.errors import ConfigurationError, LateRegistrationError
from riteway_pytest.observability.logging import configure_logging, get_logger

logger = get_logger(__name__)

MARKER_HELP = "Marks a test registered through riteway_pytest.assert_."

_ITEMS_KEY = pytest.StashKey[list[AssertionItem]]()


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options."""
    group = parser.getgroup("riteway", description="riteway given/should assertions")
    group.addoption(
        "--riteway-only-scope",
        action="store",
        dest="riteway_only_scope",
        default=os.environ.get(ENV_ONLY_SCOPE),
        choices=[scope.value for scope in OnlyScope],
        help=(
            "Scope in which assert_.only skips other tests: module or session "
            "(default: RITEWAY_ONLY_SCOPE, the riteway_only_scope ini value, or module)"
        ),
    )
    parser.addini(
        "riteway_only_scope",
        help="Scope in which assert_.only skips other tests (module or session)",
        default=None,
    )
    parser.addini(
        "riteway_only_reason",
        help="Skip reason reported for tests suppressed by assert_.only",
        default=None,
    )
    parser.addini(
        "riteway_skip_reason",
        help="Skip reason reported for assert_.skip registrations",
        default=None,
    )


def pytest_configure(config: pytest.Config) -> None:
    """Validate settings and register the riteway marker."""
    configure_logging()
    config.addinivalue_line("markers", f"{MARKER_NAME}: {MARKER_HELP}")
    scope = config.getoption("riteway_only_scope", default=None) or config.getini(
        "riteway_only_scope"
    )
    try:
        config.stash[CONFIG_KEY] = load_config(
            scope or None,
            only_reason=config.getini("riteway_only_reason") or None,
            skip_reason=config.getini("riteway_skip_reason") or None,
        )
    except ConfigurationError as exc:
        raise pytest.UsageError(exc.message) from exc
    config.stash[_ITEMS_KEY] = []


def pytest_pycollect_makeitem(
    collector: pytest.Module | pytest.Class, name: str, obj: Any
) -> AssertionItem | None:
    """Build an AssertionItem for each registration bound in a test module."""
    if not isinstance(obj, Registration):
        return None
    item = AssertionItem.from_parent(collector, name=obj.name, registration=obj)
    collector.config.stash[_ITEMS_KEY].append(item)
    return item


@pytest.hookimpl(wrapper=True)
def pytest_collection(session: pytest.Session) -> Generator[None, object, object]:
    with default_engine().collecting():
        return (yield)


def pytest_collection_finish(session: pytest.Session) -> None:
    """Warn about registrations no collected test module picked up."""
    claimed = [item.registration for item in session.config.stash[_ITEMS_KEY]]
    for registration in default_engine().unclaimed(claimed):
        registration.release()
        location = registration.location
        logger.warning(
            "assertion.uncollected",
            name=registration.name,
            module=location.module,
            line=location.lineno + 1,
        )
        warnings.warn(
            UncollectedAssertionWarning(
                f"{registration.name!r} registered in {location.module} "
                f"({location.filename}:{location.lineno + 1}) was never collected; "
                "call assert_ from a test module"
            ),
            stacklevel=1,
        )


def _fail_late_registrations() -> Generator[None, object, object]:
    with default_engine().running() as late:
        result = yield
    if late:
        raise LateRegistrationError([registration.name for registration in late])
    return result


@pytest.hookimpl(wrapper=True)
def pytest_runtest_setup(item: pytest.Item) -> Generator[None, object, object]:
    return (yield from _fail_late_registrations())


@pytest.hookimpl(wrapper=True)
def pytest_runtest_call(item: pytest.Item) -> Generator[None, object, object]:
    return (yield from _fail_late_registrations())


@pytest.hookimpl(wrapper=True)
def pytest_runtest_teardown(item: pytest.Item) -> Generator[None, object, object]:
    return (yield from _fail_late_registrations())


def _scope_key(item: pytest.Item, scope: OnlyScope) -> Any:
    if scope is OnlyScope.SESSION:
        return None
    return item.path


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip non-exclusive tests in every scope that holds an assert_.only case."""
    settings = config.stash[CONFIG_KEY]
    scopes: dict[Any, list[pytest.Item]] = {}
    for item in items:
        scopes.setdefault(_scope_key(item, settings.only_scope), []).append(item)

    marker = pytest.mark.skip(reason=settings.only_reason)
    for key, scoped in scopes.items():
        if not any(isinstance(item, AssertionItem) and item.exclusive for item in scoped):
            continue
        suppressed = 0
        for item in scoped:
            if isinstance(item, AssertionItem) and item.exclusive:
                continue
            item.add_marker(marker)
            suppressed += 1
        logger.debug(
            "exclusive.applied",
            scope=settings.only_scope.value,
            path=str(key) if key is not None else None,
            suppressed=suppressed,
        )


def pytest_deselected(items: list[pytest.Item]) -> None:
    for item in items:
        if isinstance(item, AssertionItem):
            item.registration.release()


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    """Release resources of registrations whose items never ran."""
    for item in session.config.stash.get(_ITEMS_KEY, []):
        item.registration.release()
