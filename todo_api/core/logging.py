"""Structured logging setup.

Console output for local development and tests, JSON lines in production.
Request-scoped values (``request_id``) are bound through structlog
contextvars by the request-id middleware and merged into every event.
"""
import logging
import sys
from typing import List

import structlog
from structlog.contextvars import merge_contextvars
from structlog.typing import Processor

from .config import Settings


def configure_logging(settings: Settings) -> None:
    log_format = settings.LOG_FORMAT.lower()
    use_json = log_format == "json" or (not log_format and settings.is_production())

    processors: List[Processor] = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if use_json:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    logging.basicConfig(
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
