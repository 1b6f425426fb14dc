"""Structured logging configuration for RetroMermaid.

Library modules obtain loggers with get_logger(__name__). Those loggers are
structlog wrappers around stdlib loggers, so nothing is printed unless an
application configures a handler; the library never configures logging on
import. The command-line entry point calls configure_logging() once to route
events to stderr.

Usage:
    from retromermaid.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger(__name__)
    log.debug("layout_computed", kind="sequence", width=42)
"""

import logging
import os
import sys
from typing import List, Optional

import structlog
from structlog.types import Processor

__all__ = [
    "configure_logging",
    "get_logger",
]

# Environment variable for log format
LOG_FORMAT_ENV_VAR = "RETROMERMAID_LOG_FORMAT"

# Environment variable for log level
LOG_LEVEL_ENV_VAR = "RETROMERMAID_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"


def _get_log_level() -> int:
    """Read the log level from the environment, falling back to WARNING."""
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
    return getattr(logging, level_name, logging.WARNING)


def _is_json_output() -> bool:
    """Check whether RETROMERMAID_LOG_FORMAT asks for JSON lines."""
    return os.environ.get(LOG_FORMAT_ENV_VAR, "").lower() == "json"


def _get_shared_processors() -> List[Processor]:
    """Processors shared by structlog events and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(force_json: bool = False, level: Optional[int] = None) -> None:
    """
    Attach a structlog-formatted stderr handler to the stdlib root logger.

    Subsequent calls reconfigure logging, replacing the previous handler.

    Args:
        force_json: Emit JSON lines regardless of the environment.
        level: Log level override. If None, read from RETROMERMAID_LOG_LEVEL.
    """
    use_json = force_json or _is_json_output()
    log_level = level if level is not None else _get_log_level()

    renderer: Processor
    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=_get_shared_processors(),
        )
    )
    root_logger.addHandler(handler)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger bound to the stdlib logger ``name``.

    Events below the stdlib logger's effective level are dropped before any
    processing happens.

    Args:
        name: Logger name, normally the caller's ``__name__``.

    Returns:
        A bound structlog logger.
    """
    log: structlog.stdlib.BoundLogger = structlog.wrap_logger(
        logging.getLogger(name),
        processors=[
            structlog.stdlib.filter_by_level,
            *_get_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    return log
