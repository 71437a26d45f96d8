"""The given/should/actual/expected adapter.

``assert_`` registers one asynchronous check per call with an engine::

    from riteway_pytest import assert_

    assert_(
        given="a pure function",
        should="return its constant",
        actual=(lambda: "foo")(),
        expected="foo",
    )

``assert_.only`` and ``assert_.skip`` take the same arguments and use the
engine's exclusive and skip registration instead. Arguments may also be
passed as a single mapping, mirroring a config object::

    assert_.skip({"given": "x", "should": "y", "actual": 1, "expected": 2})

Registration never raises. Comparison happens when the engine runs the
check. A config that is not a mapping is treated as empty and logged.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Mapping
from typing import Any

from riteway_pytest.collect import default_engine
from riteway_pytest.engine import Engine, Location, Registration
from riteway_pytest.observability.logging import get_logger
from riteway_pytest.record import AssertionRecord, is_config, unknown_fields

logger = get_logger(__name__)

# Frames between the user's call site and _register
_CALLER_DEPTH = 3


def _caller_location(depth: int) -> Location:
    frame = sys._getframe(depth)
    namespace = frame.f_globals
    return Location(
        filename=frame.f_code.co_filename,
        lineno=frame.f_lineno - 1,
        module=str(namespace.get("__name__", "<unknown>")),
        namespace=namespace,
    )


class Assert:
    """Callable adapter bound to an engine.

    Args:
        engine: Engine receiving registrations. Defaults to the shared
            PytestEngine, looked up on first use.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            return default_engine()
        return self._engine

    def __call__(
        self,
        config: AssertionRecord | Mapping[str, Any] | None = None,
        /,
        **fields: Any,
    ) -> None:
        self._register(self.engine.register, config, fields)

    def only(
        self,
        config: AssertionRecord | Mapping[str, Any] | None = None,
        /,
        **fields: Any,
    ) -> None:
        self._register(self.engine.register_exclusive, config, fields)

    def skip(
        self,
        config: AssertionRecord | Mapping[str, Any] | None = None,
        /,
        **fields: Any,
    ) -> None:
        self._register(self.engine.register_skipped, config, fields)

    def _register(
        self,
        submit: Callable[[Registration], None],
        config: AssertionRecord | Mapping[str, Any] | None,
        fields: dict[str, Any],
    ) -> None:
        extra = unknown_fields(config, fields)
        record = AssertionRecord.from_fields(config, **fields)
        location = _caller_location(_CALLER_DEPTH)
        if not is_config(config):
            logger.warning(
                "assertion.invalid_config",
                name=record.description,
                config_type=type(config).__name__,
                filename=location.filename,
            )
        if extra:
            logger.warning(
                "assertion.unknown_fields",
                name=record.description,
                fields=extra,
                filename=location.filename,
            )
        registration = Registration(
            name=record.description,
            body=record.check,
            location=location,
            discard=record.discard,
        )
        submit(registration)
        logger.debug(
            "assertion.registered",
            name=registration.name,
            module=location.module,
            line=location.lineno + 1,
            via=getattr(submit, "__name__", repr(submit)),
        )


assert_ = Assert()
