"""Structured logging configuration.

Every module logs through structlog so the service emits one event per
line with key/value context:
  {"event": "releases_fetched", "service": "release-notes-api",
   "logger": "release_notes_api.source.github", "repo": "devtron-labs/devtron"}

In production the events are rendered as JSON; in development they are
pretty-printed.

Usage:
    from release_notes_api.logging_config import setup_logging, get_logger

    setup_logging(environment="production")
    logger = get_logger(__name__)
    logger.info("webhook_received", action="published", tag_name="v0.7.0")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

from release_notes_api import __version__

SERVICE_NAME = "release-notes-api"


def resolve_level(level: str) -> int:
    """Map a level name to its number; unknown names fall back to INFO."""
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def add_service_info(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp every event with the service name and version."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging for the service.

    Args:
        environment: "production" renders JSON, anything else renders for
                     the console. Reads ENVIRONMENT if not provided.
        log_level: DEBUG, INFO, WARNING or ERROR. Reads LOG_LEVEL if not
                   provided.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level = resolve_level(log_level or os.environ.get("LOG_LEVEL", "INFO"))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_service_info,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if env == "production":
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # uvicorn, sqlalchemy and botocore log through stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def get_logger(name: str) -> Any:
    """Return a structlog logger that tags its events with `name`."""
    return structlog.get_logger(name, logger=name)
