"""Structured logging setup.

Operational diagnostics only. The audit record of what happened in an
election is the event log (election.persistence.event_log), not this.

Until configure_logging() is called, records go through the standard
library logger without any handler installed, so an embedding
application only sees warnings and errors (on stderr) unless it sets
up logging itself.
"""

from __future__ import annotations

import logging
import sys

import structlog


def _processors(json: bool) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True)
        )
    return processors


def get_logger(name: str = "election"):
    """Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("phase advanced", old="voting_open", new="voting_closed")
    """
    return structlog.get_logger(name)


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        json: Render JSON lines instead of key=value pairs.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(json),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )


# Library default: defer to stdlib levels, leave handlers to the host.
# Not cached, so a later configure_logging() still takes effect.
if not structlog.is_configured():
    structlog.configure(
        processors=_processors(json=False),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
