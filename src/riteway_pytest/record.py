"""Assertion records: the given/should/actual/expected description of one case.

An AssertionRecord is built once per adapter call and never mutated. Its
``check`` coroutine is what engines run: resolve ``actual``, compare it
with ``expected`` and raise AssertionMismatch when they differ.

Coroutines are single-use in Python, unlike promises. A coroutine shared
by several records is therefore settled once and its outcome (value or
exception) replayed to every later waiter.
"""

from __future__ import annotations

import inspect
import math
import weakref
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from riteway_pytest.errors import AssertionMismatch

RECORD_FIELDS = ("given", "should", "actual", "expected")

# Settled coroutine outcomes: (raised, value_or_exception)
_settled: weakref.WeakKeyDictionary[Any, tuple[bool, Any]] = weakref.WeakKeyDictionary()


def _text(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


async def resolve(value: Any) -> Any:
    """Return ``value``, awaiting it first if it is awaitable.

    Raises:
        Exception: Whatever the awaitable raised.
    """
    if not inspect.isawaitable(value):
        return value
    if not inspect.iscoroutine(value):
        return await value

    outcome = _settled.get(value)
    if outcome is None:
        try:
            outcome = (False, await value)
        except BaseException as exc:
            _settled[value] = (True, exc)
            raise
        _settled[value] = outcome
    raised, result = outcome
    if raised:
        raise result
    return result


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def deep_equal(actual: Any, expected: Any) -> bool:
    """Compare two values structurally, treating NaN as equal to NaN.

    Falls back to ``==`` for everything except floats, sequences of the
    same type and mappings, which are walked so that a NaN nested inside
    them still matches.
    """
    if actual == expected:
        return True
    if _is_nan(actual) and _is_nan(expected):
        return True
    if isinstance(actual, (list, tuple)) and type(actual) is type(expected):
        return len(actual) == len(expected) and all(
            deep_equal(a, e) for a, e in zip(actual, expected)
        )
    if isinstance(actual, Mapping) and isinstance(expected, Mapping):
        return actual.keys() == expected.keys() and all(
            deep_equal(actual[key], expected[key]) for key in actual
        )
    return False


class AssertionRecord(BaseModel):
    """One given/should/actual/expected assertion.

    Attributes:
        given: Scenario under test; any value, rendered as text.
        should: Expected behaviour; ``None`` and non-strings are coerced.
        actual: Value under test, or an awaitable producing it.
        expected: Value ``actual`` must equal once resolved.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    given: Any = None
    should: str = ""
    actual: Any = None
    expected: Any = None

    @field_validator("should", mode="before")
    @classmethod
    def coerce_should(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else _text(value)

    @classmethod
    def from_fields(
        cls,
        config: AssertionRecord | Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> AssertionRecord:
        """Build a record from an existing record, a mapping, keyword fields, or a mix.

        Keyword fields override keys from ``config``. Unknown keys are
        ignored, and a ``config`` that is neither a record nor a mapping
        counts as empty.
        """
        if isinstance(config, AssertionRecord):
            if not fields:
                return config
            merged: dict[str, Any] = {name: getattr(config, name) for name in RECORD_FIELDS}
        elif isinstance(config, Mapping):
            merged = dict(config)
        else:
            merged = {}
        merged.update(fields)
        return cls(**{k: v for k, v in merged.items() if k in RECORD_FIELDS})

    @property
    def description(self) -> str:
        """Test name in the form ``given <given>: should <should>``."""
        return f"given {_text(self.given)}: should {self.should}"

    async def check(self) -> None:
        """Resolve ``actual`` and compare it with ``expected``.

        Raises:
            AssertionMismatch: If the resolved value does not equal ``expected``.
            Exception: Whatever resolving ``actual`` raised.
        """
        resolved = await resolve(self.actual)
        if not deep_equal(resolved, self.expected):
            raise AssertionMismatch(self.description, actual=resolved, expected=self.expected)

    def discard(self) -> None:
        """Close ``actual`` if it is a coroutine that never started."""
        actual = self.actual
        if inspect.iscoroutine(actual) and inspect.getcoroutinestate(actual) == inspect.CORO_CREATED:
            actual.close()


def unknown_fields(config: Any, fields: Mapping[str, Any]) -> list[Any]:
    """Return the keys of ``config`` and ``fields`` that are not record fields.

    Keys keep the order they were first seen in; they need not be strings.
    """
    keys = list(config) if isinstance(config, Mapping) else []
    keys.extend(fields)
    return list(dict.fromkeys(k for k in keys if k not in RECORD_FIELDS))


def is_config(config: Any) -> bool:
    """Whether ``config`` can supply record fields: None, a record or a mapping."""
    return config is None or isinstance(config, (AssertionRecord, Mapping))
