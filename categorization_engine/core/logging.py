"""
Auto-Categorization Engine - Structured Logging Module

Every module logs snake_case events with keyword context through a structlog
BoundLogger. The engine binds the document being categorized into
contextvars, so strategy-level events ("ml_categorization_failed",
"entity_extraction_failed") carry document_id without threading it through
every call.

Patterns Applied:
- One-time configure_logging() at startup, guarded by _configured
- Settings-driven bootstrap via configure_logging_from_settings()
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.typing import EventDict

from categorization_engine import __version__

if TYPE_CHECKING:
    from categorization_engine.core.config import Settings

SERVICE_NAME = "auto-categorization-engine"

_configured: bool = False


def add_service_info(
    logger: logging.Logger,  # noqa: ARG001 - Required by structlog interface
    method_name: str,  # noqa: ARG001 - Required by structlog interface
    event_dict: EventDict,
) -> EventDict:
    """Stamp service name and engine version on every entry."""
    event_dict["service"] = SERVICE_NAME
    event_dict.setdefault("engine_version", __version__)
    return event_dict


def _select_renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
) -> None:
    """Configure structlog for the process.

    Only the first call takes effect; later calls are ignored until
    reset_logging().

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Unknown names
            fall back to INFO.
        json_output: JSON lines when True, coloured console output otherwise.
    """
    global _configured

    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_info,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _select_renderer(json_output),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def configure_logging_from_settings(settings: Settings) -> None:
    """Apply log_level and log_json from Settings."""
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)


@contextmanager
def bind_document_context(document_id: int | str, **extra: Any) -> Iterator[None]:
    """Bind document_id (and any extra keys) to all log events in the block.

    Usage:
        with bind_document_context(document.id, strategies=["rules"]):
            logger.info("document_categorized")  # includes document_id
    """
    with structlog.contextvars.bound_contextvars(document_id=document_id, **extra):
        yield


def get_logger(name: str) -> Any:
    """Return a structlog BoundLogger named after the calling module."""
    return structlog.get_logger(name)


def reset_logging() -> None:
    """Reset logging configuration for testing."""
    global _configured
    _configured = False
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
