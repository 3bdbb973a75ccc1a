"""Structured logging for the Nexus HR service.

structlog renders JSON in production and staging and a colored console view
elsewhere. Every entry carries the service name and environment; entries
logged during a pipeline run also carry the run id bound by
``bind_run_context``.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from src.core.config import get_settings


# Chatty libraries kept at WARNING regardless of the service level
QUIET_LOGGERS = ("httpx", "httpcore", "neo4j", "uvicorn.access")


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog processor adding ``service`` and ``environment``."""
    settings = get_settings()
    event_dict["service"] = settings.service_name
    event_dict["environment"] = settings.environment
    return event_dict


def build_processors(json_output: bool) -> list[Processor]:
    """Processor chain ending in the JSON or console renderer.

    Args:
        json_output: True for JSON lines, False for console rendering

    Returns:
        Ordered structlog processors
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_logging() -> None:
    """Configure structlog and stdlib logging from the application settings."""
    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())

    structlog.configure(
        processors=build_processors(settings.environment in ("production", "staging")),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Gateway clients log through stdlib logging
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_run_context(run_id: str, pipeline: str) -> None:
    """Attach a run id and pipeline name to every entry logged in this context."""
    structlog.contextvars.bind_contextvars(run_id=run_id, pipeline=pipeline)


def clear_run_context() -> None:
    structlog.contextvars.unbind_contextvars("run_id", "pipeline")


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger.

    Example:
        logger = get_logger(__name__)
        logger.info("Stage finished", stage="architect", new_items=2)
    """
    return structlog.get_logger(name)
