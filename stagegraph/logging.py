"""
Structured logging configuration using structlog.

Engine modules log events with key/value context:

    logger = get_logger(__name__)
    logger.warning("unresolved_dependency", stage="deploy", dependency="biuld")
"""

import logging
import sys
from typing import Any

import structlog

from stagegraph.config import get_settings


def configure_logging(
    level: str | None = None,
    json_output: bool = False,
    stream: Any = sys.stderr,
) -> None:
    """
    Configure structlog on top of the standard library logging module.

    Args:
        level: Log level name; defaults to STAGEGRAPH_LOG_LEVEL
        json_output: Render JSON lines instead of console output
        stream: Where log lines are written
    """
    level_name = (level or get_settings().log_level).upper()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger (typically for __name__)."""
    return structlog.get_logger(name)
