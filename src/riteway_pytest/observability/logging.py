"""Structured logging for riteway-pytest.

Loggers are structlog bound loggers wrapped around stdlib loggers under
the ``riteway_pytest`` namespace. Records therefore flow through the
stdlib ``logging`` tree, which means pytest's log capture (``caplog``,
``--log-level``, "Captured log" sections) sees them like any other
library's logs. structlog's global configuration is never touched, so
an application or test suite that configures structlog itself keeps
its own setup.

Environment Variables:
    RITEWAY_LOG_FORMAT: "json" for JSON lines, "console" for key=value output
    RITEWAY_LOG_LEVEL: Level for the riteway_pytest logger (DEBUG, INFO, ...)

Example:
    >>> from riteway_pytest.observability.logging import get_logger
    >>> logger = get_logger("riteway_pytest.adapter")
    >>> logger.debug("assertion.registered", name="given x: should y")
"""

import logging
import os

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

# Default configuration
DEFAULT_LOG_FORMAT = "console"
ROOT_LOGGER_NAME = "riteway_pytest"

# Environment variable names
ENV_LOG_FORMAT = "RITEWAY_LOG_FORMAT"
ENV_LOG_LEVEL = "RITEWAY_LOG_LEVEL"

_VALID_FORMATS = frozenset({"console", "json"})

_log_format = DEFAULT_LOG_FORMAT

_json_renderer = structlog.processors.JSONRenderer(sort_keys=True)
_console_renderer = structlog.processors.KeyValueRenderer(
    key_order=["event", "logger", "level"],
    drop_missing=True,
)


def _get_log_format() -> str:
    """Get log format from environment or use default."""
    value = os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT).strip().lower()
    return value if value in _VALID_FORMATS else DEFAULT_LOG_FORMAT


def _get_log_level() -> str | None:
    """Get log level from environment, or None to inherit from the root logger."""
    value = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    return value or None


def _render(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
    if _log_format == "json":
        return str(_json_renderer(logger, method_name, event_dict))
    return str(_console_renderer(logger, method_name, event_dict))


def _get_processors() -> list[Processor]:
    """Get the processor chain shared by every riteway logger."""
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _render,
    ]


def configure_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """Apply output format and level for riteway loggers.

    Args:
        log_format: "json" or "console". Defaults to env var or "console"
        log_level: Level name for the ``riteway_pytest`` logger. Defaults to
            the env var; when neither is set the level is inherited.

    Example:
        >>> configure_logging(log_format="json", log_level="DEBUG")
    """
    global _log_format

    fmt = (log_format or _get_log_format()).lower()
    _log_format = fmt if fmt in _VALID_FORMATS else DEFAULT_LOG_FORMAT

    level = (log_level or _get_log_level() or "").upper()
    if level:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(getattr(logging, level, logging.NOTSET))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Bound structlog logger writing to the stdlib logger ``name``
    """
    logger: structlog.stdlib.BoundLogger = structlog.wrap_logger(
        logging.getLogger(name),
        processors=_get_processors(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    return logger
