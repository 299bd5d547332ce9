"""Structured logging configuration.

Every log line the service writes goes through structlog's renderer,
including records from libraries that log through the standard library
(uvicorn access and error logs, httpx requests). In production each line
is a JSON object, e.g.:
  {"event": "webhook_release_merged", "release_name": "v0.6.2", "count": 12}

Usage:
    from release_notes.logging_config import setup_logging, get_logger

    setup_logging(environment="production")
    logger = get_logger(__name__)
    logger.info("webhook_release_merged", release_name="v0.6.2", count=12)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any

import structlog

# Loggers owned by the server and HTTP client; their own handlers are
# dropped so records reach the root handler exactly once.
STDLIB_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "httpcore")


def setup_logging(
    environment: str | None = None,
    log_level: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        environment: "production" renders JSON, anything else renders
                     colorized console output. Reads ENVIRONMENT if None.
        log_level: Minimum level name. Reads LOG_LEVEL if None.
        stream: Where log lines go. stdout if None.
    """
    env = environment or os.environ.get("ENVIRONMENT", "development")
    level = getattr(logging, (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper())
    stream = stream or sys.stdout

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*shared_processors, structlog.processors.format_exc_info],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in STDLIB_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers.clear()
        stdlib_logger.propagate = True


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        A structlog bound logger
    """
    return structlog.get_logger(name)
