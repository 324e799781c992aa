"""Structured logging setup."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from tlssig.config import check_log_level, get_log_level


def configure_logging(log_level: str | None = None) -> None:
    """Configure structlog on top of the standard library logger.

    The level defaults to TLSSIG_LOG_LEVEL.
    """
    log_level = check_log_level(log_level) if log_level else get_log_level()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )


def get_logger(name: str) -> Any:
    """Get a structured logger backed by the standard library logger.

    Records go through logging, so nothing is written until the host
    application (or configure_logging) sets up handlers.
    """
    return structlog.wrap_logger(logging.getLogger(name), wrapper_class=structlog.stdlib.BoundLogger)
