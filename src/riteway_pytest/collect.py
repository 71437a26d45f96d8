"""pytest engine: registrations become pytest items.

PytestEngine binds each registration into the namespace of the module
that made it. When pytest collects that module, the plugin's
``pytest_pycollect_makeitem`` hook finds the binding and builds an
AssertionItem for it, so cases appear in declaration order among the
module's ordinary test functions.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from riteway_pytest.config import RitewayConfig
from riteway_pytest.engine import BaseEngine, Mode, Registration
from riteway_pytest.errors import AssertionMismatch
from riteway_pytest.observability.logging import get_logger

logger = get_logger(__name__)

BINDING_PREFIX = "_riteway_assertion_"
MARKER_NAME = "riteway"

CONFIG_KEY = pytest.StashKey[RitewayConfig]()

if TYPE_CHECKING:
    from _pytest._code.code import TerminalRepr


class UncollectedAssertionWarning(pytest.PytestWarning):
    """An assert_ registration was bound into a module pytest never collected."""


class PytestEngine(BaseEngine):
    """Engine registering cases with pytest through module bindings.

    Registrations made while a test is running cannot be collected any
    more. Between ``running()`` enter and exit they are kept aside and
    released instead of bound, so the plugin can fail that test. Bound
    registrations are remembered until ``unclaimed()`` reports the ones
    collection never turned into items.
    """

    def __init__(self) -> None:
        self._ids = itertools.count()
        # None while collecting, a list of late registrations while running
        self._frames: list[list[Registration] | None] = []
        self._bound: list[Registration] = []

    def _add(self, registration: Registration) -> None:
        if self._frames and self._frames[-1] is not None:
            self._frames[-1].append(registration)
            logger.warning(
                "assertion.late",
                name=registration.name,
                module=registration.location.module,
                line=registration.location.lineno + 1,
            )
            return
        binding = f"{BINDING_PREFIX}{next(self._ids)}"
        registration.location.namespace[binding] = registration
        self._bound.append(registration)
        logger.debug("assertion.bound", name=registration.name, binding=binding)

    @contextmanager
    def collecting(self) -> Iterator[None]:
        """Bind registrations normally, even inside a running test."""
        self._frames.append(None)
        try:
            yield
        finally:
            self._frames.pop()

    @contextmanager
    def running(self) -> Iterator[list[Registration]]:
        """Divert registrations made while a test runs into the yielded list."""
        late: list[Registration] = []
        self._frames.append(late)
        try:
            yield late
        finally:
            self._frames.pop()
            for registration in late:
                registration.release()

    def unclaimed(self, claimed: Iterable[Registration]) -> list[Registration]:
        """Return bound registrations missing from ``claimed`` and forget all of them."""
        ids = {id(registration) for registration in claimed}
        orphans = [registration for registration in self._bound if id(registration) not in ids]
        self._bound.clear()
        return orphans


_default_engine: PytestEngine | None = None


def default_engine() -> PytestEngine:
    """Return the process-wide PytestEngine used by ``assert_``."""
    global _default_engine
    if _default_engine is None:
        _default_engine = PytestEngine()
    return _default_engine


class AssertionItem(pytest.Item):
    """A pytest item running one registered check."""

    def __init__(self, *, registration: Registration, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.registration = registration
        self.add_marker(MARKER_NAME)
        if registration.mode is Mode.SKIP:
            settings = self.config.stash.get(CONFIG_KEY, None) or RitewayConfig()
            self.add_marker(pytest.mark.skip(reason=settings.skip_reason))

    @property
    def exclusive(self) -> bool:
        return self.registration.mode is Mode.ONLY

    def runtest(self) -> None:
        asyncio.run(self.registration.body())

    def repr_failure(
        self,
        excinfo: pytest.ExceptionInfo[BaseException],
        style: Any = None,
    ) -> str | TerminalRepr:
        if isinstance(excinfo.value, AssertionMismatch):
            return self._repr_mismatch(excinfo.value)
        return super().repr_failure(excinfo, style=style)

    def _repr_mismatch(self, mismatch: AssertionMismatch) -> str:
        lines = [mismatch.description]
        explanations = self.config.hook.pytest_assertrepr_compare(
            config=self.config,
            op="==",
            left=mismatch.actual,
            right=mismatch.expected,
        )
        for explanation in explanations:
            if explanation:
                lines.append("assert " + explanation[0])
                lines.extend("  " + line for line in explanation[1:])
                break
        else:
            lines.append(f"assert {mismatch.actual!r} == {mismatch.expected!r}")
        return "\n".join(lines)

    def reportinfo(self) -> tuple[Path, int, str]:
        return self.path, self.registration.location.lineno, self.name
