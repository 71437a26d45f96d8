"""Configuration for the riteway pytest plugin."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from riteway_pytest.errors import ConfigurationError

ENV_ONLY_SCOPE = "RITEWAY_ONLY_SCOPE"

DEFAULT_ONLY_REASON = "skipped by assert_.only"
DEFAULT_SKIP_REASON = "skipped by assert_.skip"


class OnlyScope(str, Enum):
    """How far one exclusive registration suppresses its siblings."""

    MODULE = "module"
    SESSION = "session"


class RitewayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    only_scope: OnlyScope = Field(
        default=OnlyScope.MODULE,
        description="Scope in which assert_.only suppresses non-exclusive tests",
    )
    only_reason: str = Field(
        default=DEFAULT_ONLY_REASON,
        description="Skip reason reported for tests suppressed by assert_.only",
    )
    skip_reason: str = Field(
        default=DEFAULT_SKIP_REASON,
        description="Skip reason reported for assert_.skip registrations",
    )


def load_config(
    only_scope: str | None = None,
    *,
    only_reason: str | None = None,
    skip_reason: str | None = None,
) -> RitewayConfig:
    """Build a validated RitewayConfig, ignoring unset values.

    Raises:
        ConfigurationError: If a value fails validation.
    """
    values: dict[str, Any] = {
        "only_scope": only_scope.strip().lower() if only_scope else None,
        "only_reason": only_reason,
        "skip_reason": skip_reason,
    }
    try:
        return RitewayConfig(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as exc:
        error = exc.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "config"
        raise ConfigurationError(field, values.get(field), error["msg"]) from exc
