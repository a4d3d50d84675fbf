"""
Auto-Categorization Engine - OpenTelemetry Tracing Module

Span layout per categorize_document call:

    categorize_document            categorization.document_id
    ├── strategy.rules             categorization.strategy, .result_count
    ├── strategy.keywords
    ├── strategy.ml
    └── strategy.entities

A strategy that raises marks its span with ERROR status before the exception
propagates, so a malformed rule shows up on the rules span. Without
configure_tracing() the OpenTelemetry API hands out no-op tracers and the
instrumentation costs nothing.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from categorization_engine import __version__
from categorization_engine.core.logging import SERVICE_NAME

if TYPE_CHECKING:
    from categorization_engine.core.config import Settings

# =============================================================================
# Span names and attributes
# =============================================================================

SPAN_CATEGORIZE: Final[str] = "categorize_document"
SPAN_STRATEGY_PREFIX: Final[str] = "strategy."
ATTR_DOCUMENT_ID: Final[str] = "categorization.document_id"
ATTR_STRATEGY: Final[str] = "categorization.strategy"
ATTR_RESULT_COUNT: Final[str] = "categorization.result_count"
ATTR_CATEGORY_COUNT: Final[str] = "categorization.category_count"

_configured: bool = False


def configure_tracing(
    service_name: str = SERVICE_NAME,
    console_export: bool = True,
) -> None:
    """Install a TracerProvider for the process; only the first call applies.

    Args:
        service_name: service.name resource attribute.
        console_export: Print finished spans to stdout (development).
    """
    global _configured

    if _configured:
        return

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": service_name, "service.version": __version__}
        )
    )
    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    _configured = True


def configure_tracing_from_settings(settings: Settings) -> None:
    """Configure tracing when settings.tracing_enabled is set."""
    if settings.tracing_enabled:
        configure_tracing(
            service_name=settings.service_name,
            console_export=settings.tracing_console_export,
        )


def get_tracer(name: str) -> Any:
    """Return a tracer; a no-op tracer until configure_tracing() runs."""
    return trace.get_tracer(name)


@contextmanager
def strategy_span(tracer: Any, strategy: str) -> Iterator[Any]:
    """Span around one strategy.

    start_as_current_span records a raised exception and sets ERROR status
    before it propagates.
    """
    with tracer.start_as_current_span(
        f"{SPAN_STRATEGY_PREFIX}{strategy}",
        record_exception=True,
        set_status_on_exception=True,
    ) as span:
        span.set_attribute(ATTR_STRATEGY, strategy)
        yield span


def reset_tracing() -> None:
    """Reset tracing configuration for testing."""
    global _configured
    _configured = False
