"""Logging configuration for the Ordering domain.

Processes (the API server, bus consumers) call ``configure_logging()`` once
at startup. Library modules only ever call ``structlog.get_logger(__name__)``
and pass identifiers as keyword context.

Work that spans several modules (an HTTP request, one catalogue response
fanned out to carts) binds its identifiers once with ``bound_context`` so
that every line logged underneath carries them, e.g. ``owner_id`` for a
request or ``correlation_id`` for a lookup response.

Output is JSON in production and staging, console text elsewhere;
``LOG_FORMAT=json|console`` overrides the choice.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def _environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """Get log level based on environment."""
    level_map = {
        "production": "INFO",
        "staging": "INFO",
        "development": "DEBUG",
        "test": "WARNING",
    }
    return os.getenv("LOG_LEVEL", level_map.get(_environment(), "INFO"))


def use_json_output() -> bool:
    fmt = os.getenv("LOG_FORMAT", "").lower()
    if fmt in ("json", "console"):
        return fmt == "json"
    return _environment() in ("production", "staging")


def setup_stdlib_logging() -> None:
    """Route stdlib logging to stdout at the environment's level."""
    log_level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # Protean logs every unit of work at INFO
    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_structlog() -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json_output():
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    """Configure all logging for the application."""
    setup_stdlib_logging()
    setup_structlog()


@contextmanager
def bound_context(**kwargs: Any) -> Iterator[None]:
    """Attach ``kwargs`` to every log line emitted inside the block.

    ``None`` values are skipped. Keys bound by an enclosing block are
    restored on exit.
    """
    values = {key: value for key, value in kwargs.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**values):
        yield
