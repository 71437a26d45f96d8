"""Observability helpers for riteway-pytest (structured logging)."""

from riteway_pytest.observability.logging import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
