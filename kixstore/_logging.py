"""Structured logging setup."""

from __future__ import annotations

import logging
from typing import Any

import structlog


def configure_logging(level: str = "info", *, json: bool = False) -> None:
    """
    Configure structlog once per process.

    Example:
        configure_logging("debug")
        configure_logging("info", json=True)
    """
    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str) -> Any:
    """
    Lazy logger carrying the component name.

    Note: Stays lazy: configuration is resolved on every call, so modules can
    create loggers at import time before configure_logging() runs.
    """
    return structlog.get_logger(component=component)


__all__ = ("configure_logging", "get_logger")
