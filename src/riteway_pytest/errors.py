"""riteway-pytest error taxonomy.

This module defines the error hierarchy for the adapter, providing
structured errors with specific error codes and context information.
"""
from __future__ import annotations

from typing import Any


class RitewayError(Exception):
    """Base exception for all riteway-pytest errors.

    Attributes:
        code: Error code following the riteway:<area>/<reason> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AssertionMismatch(RitewayError, AssertionError):
    """Raised when a resolved actual value does not equal the expected value.

    Subclasses AssertionError so every test engine reports it as a plain
    failure rather than an error.

    Attributes:
        description: The ``given ...: should ...`` text of the failing case
        actual: The resolved actual value
        expected: The expected value
    """

    def __init__(
        self,
        description: str,
        actual: Any,
        expected: Any,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"{description}: expected {expected!r}, got {actual!r}"
        super().__init__(
            code="riteway:assert/mismatch",
            message=message,
            details={"description": description, **(details or {})},
        )
        self.description = description
        self.actual = actual
        self.expected = expected


class ConfigurationError(RitewayError):
    """Raised when a plugin setting has an unsupported value."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        message = f"Invalid value {value!r} for {field}: {reason}"
        super().__init__(
            code="riteway:config/invalid",
            message=message,
            details={"field": field, "value": value},
        )
        self.field = field
        self.value = value


class LateRegistrationError(RitewayError):
    """Raised when assertions were registered while a test was running.

    Such registrations can no longer become tests of their own, so the
    test that made them fails instead of passing silently.

    Attributes:
        names: Descriptions of the registrations that were dropped
    """

    def __init__(self, names: list[str]) -> None:
        listed = "; ".join(names)
        message = (
            f"{len(names)} assertion(s) registered while a test was running; "
            f"call assert_ at module level instead: {listed}"
        )
        super().__init__(
            code="riteway:assert/late",
            message=message,
            details={"names": names},
        )
        self.names = names
