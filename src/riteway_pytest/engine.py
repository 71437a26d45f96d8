"""Engine interface and the in-process engine.

An engine is anywhere named, asynchronous checks can be submitted for
later execution. The adapter only ever talks to the three methods of
the Engine protocol; what "run only these" or "skip" means in practice
is up to the engine plugged in.

Engines:
    BaseEngine: Stamps the registration mode and hands off to ``_add``.
    InProcessEngine: Collects registrations and runs them itself. Its
        exclusivity scope is the engine instance.
    PytestEngine (riteway_pytest.collect): Turns registrations into
        pytest items.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Protocol

from riteway_pytest.observability.logging import get_logger

logger = get_logger(__name__)

TestBody = Callable[[], Awaitable[None]]


class Mode(str, Enum):
    NORMAL = "normal"
    ONLY = "only"
    SKIP = "skip"


class Status(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Location:
    """Where a registration was made. ``lineno`` is 0-based."""

    filename: str
    lineno: int
    module: str
    namespace: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Registration:
    """A named asynchronous check submitted to an engine.

    Attributes:
        name: Test name shown by the engine.
        body: Coroutine function performing the check.
        location: Source location of the registering call.
        mode: Registration mode, set by the engine method used.
        discard: Optional callback releasing resources of a body that never ran.
    """

    name: str
    body: TestBody
    location: Location
    mode: Mode = Mode.NORMAL
    discard: Callable[[], None] | None = None

    def release(self) -> None:
        if self.discard is not None:
            self.discard()


class Engine(Protocol):
    def register(self, registration: Registration) -> None: ...

    def register_exclusive(self, registration: Registration) -> None: ...

    def register_skipped(self, registration: Registration) -> None: ...


class BaseEngine:
    """Implements the Engine protocol on top of a single ``_add`` hook."""

    def register(self, registration: Registration) -> None:
        self._add(replace(registration, mode=Mode.NORMAL))

    def register_exclusive(self, registration: Registration) -> None:
        self._add(replace(registration, mode=Mode.ONLY))

    def register_skipped(self, registration: Registration) -> None:
        self._add(replace(registration, mode=Mode.SKIP))

    def _add(self, registration: Registration) -> None:
        raise NotImplementedError


@dataclass
class CaseResult:
    name: str
    status: Status
    message: str = ""
    error: BaseException | None = None

    @property
    def passed(self) -> bool:
        return self.status is Status.PASSED


@dataclass
class RunReport:
    results: list[CaseResult] = field(default_factory=list)

    def _with_status(self, status: Status) -> list[CaseResult]:
        return [r for r in self.results if r.status is status]

    @property
    def passed(self) -> list[CaseResult]:
        return self._with_status(Status.PASSED)

    @property
    def failed(self) -> list[CaseResult]:
        return self._with_status(Status.FAILED)

    @property
    def skipped(self) -> list[CaseResult]:
        return self._with_status(Status.SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.failed


class InProcessEngine(BaseEngine):
    """Collects registrations and runs them in declaration order.

    If any registration is exclusive, only exclusive registrations run and
    the rest are reported as skipped. Skipped registrations never run.
    Each case is isolated: a failure is recorded and the run continues.

    Example:
        >>> engine = InProcessEngine()
        >>> check = Assert(engine)
        >>> check(given="1 + 1", should="be 2", actual=1 + 1, expected=2)
        >>> engine.run().ok
        True
    """

    def __init__(
        self,
        *,
        only_reason: str = "skipped by exclusive registration",
        skip_reason: str = "skipped",
    ) -> None:
        self.registrations: list[Registration] = []
        self.only_reason = only_reason
        self.skip_reason = skip_reason

    def _add(self, registration: Registration) -> None:
        self.registrations.append(registration)

    @property
    def has_exclusive(self) -> bool:
        return any(r.mode is Mode.ONLY for r in self.registrations)

    async def _run_case(self, registration: Registration, exclusive: bool) -> CaseResult:
        log = logger.bind(case=registration.name, mode=registration.mode.value)
        if registration.mode is Mode.SKIP:
            log.debug("case.skipped", reason=self.skip_reason)
            return CaseResult(registration.name, Status.SKIPPED, self.skip_reason)
        if exclusive and registration.mode is not Mode.ONLY:
            log.debug("case.skipped", reason=self.only_reason)
            return CaseResult(registration.name, Status.SKIPPED, self.only_reason)

        try:
            await registration.body()
        except Exception as exc:
            log.debug("case.failed", error=type(exc).__name__)
            return CaseResult(registration.name, Status.FAILED, str(exc) or type(exc).__name__, exc)
        log.debug("case.passed")
        return CaseResult(registration.name, Status.PASSED)

    async def run_async(self) -> RunReport:
        """Run every registration and return the report."""
        report = RunReport()
        exclusive = self.has_exclusive
        try:
            for registration in list(self.registrations):
                report.results.append(await self._run_case(registration, exclusive))
        finally:
            for registration in self.registrations:
                registration.release()
        return report

    def run(self) -> RunReport:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.run_async())
        raise RuntimeError(
            "Cannot call sync InProcessEngine.run from inside a running event loop. "
            "Use run_async."
        )
