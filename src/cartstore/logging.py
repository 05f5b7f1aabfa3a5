"""
Structured logging for cartstore.

Library modules obtain a structlog logger with :func:`get_logger` and emit
dotted event names with keyword fields::

    logger = get_logger(__name__)
    logger.info("migration.applied", migration="0001_create_users.up.sql", version=1)

Nothing is configured on import. The process entrypoint (the ``cartstore``
CLI or the embedding application) calls :func:`configure_logging` once.

Two processors are specific to this package:

- ``_redact_credentials`` masks the password in any ``url`` or
  ``database_url`` field, so connection strings can be logged as-is.
- ``_clip_statement`` shortens ``statement`` fields; migration scripts
  are logged by name, never by body.

Tags:
    logging, structlog, cartstore
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

STATEMENT_MAX_CHARS = 240

_URL_FIELDS = ("url", "database_url")
_PASSWORD_RE = re.compile(r"(?P<head>://[^:/@]+:)[^@]*(?P<tail>@)")


def _redact_credentials(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    for key in _URL_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = _PASSWORD_RE.sub(r"\g<head>***\g<tail>", value)
    return event_dict


def _clip_statement(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    statement = event_dict.get("statement")
    if isinstance(statement, str) and len(statement) > STATEMENT_MAX_CHARS:
        event_dict["statement"] = statement[:STATEMENT_MAX_CHARS] + "..."
    return event_dict


def _service_tagger(service: str) -> Processor:
    def tag(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return tag


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "cartstore",
) -> None:
    """Route structlog (and stdlib logging) output for this process.

    Args:
        level: Minimum level name, e.g. ``"DEBUG"`` to see every statement
        json_format: JSON lines (True), console (False), or JSON unless
            stdout is a terminal (None)
        service: Value of the ``service`` field on every event
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level {level!r}")

    if json_format is None:
        json_format = not sys.stdout.isatty()

    renderer: Processor = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_format
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _service_tagger(service),
            _redact_credentials,
            _clip_statement,
            structlog.processors.format_exc_info if json_format else structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # psycopg2 and SQLAlchemy report through the standard library
    logging.basicConfig(format="%(levelname)s %(name)s %(message)s", level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """A structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**fields: Any) -> None:
    """Attach ``fields`` to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "STATEMENT_MAX_CHARS",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
]
