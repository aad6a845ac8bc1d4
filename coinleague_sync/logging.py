"""
structlog setup for the sync service.

Every event is one JSON line on stdout. Context bound with
``structlog.contextvars.bound_contextvars`` (for example which trigger
started a sync) is merged into every event emitted inside that block,
including events from the pipeline, enricher and reader.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.typing import Processor

from .config import settings

SERVICE_NAME = "coinleague-sync"

_ENVIRONMENT_LEVELS = {"production": "INFO", "staging": "INFO"}


def resolve_level(level: str | None, environment: str) -> int:
    """LOG_LEVEL when set, else a per-environment default; unknown names fall back to INFO."""
    name = (level or _ENVIRONMENT_LEVELS.get(environment.lower(), "DEBUG")).strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.EventRenamer("message"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def configure_logging(level: int) -> None:
    # Library loggers (sqlalchemy, httpx, web3) go through stdlib at the same level
    logging.basicConfig(level=level, stream=sys.stdout, format="%(message)s")
    structlog.configure(
        processors=processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


configure_logging(resolve_level(settings.log_level, settings.environment))

logger = structlog.get_logger(SERVICE_NAME).bind(
    service=SERVICE_NAME,
    environment=settings.environment,
)
