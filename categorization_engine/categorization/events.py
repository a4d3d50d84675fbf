"""
Observer interface for categorization notifications.

Subscribers are called synchronously in registration order after each
categorize_document call. Delivery is fire-and-forget: there is no
acknowledgement, and a subscriber that raises is logged and skipped so it
cannot change the categorization result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from categorization_engine.core.logging import get_logger

if TYPE_CHECKING:
    from categorization_engine.categorization.models import CategorizationResult

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DocumentCategorizedEvent:
    """Emitted once per categorize_document call."""

    document_id: int | str
    categories: tuple[CategorizationResult, ...]


@runtime_checkable
class CategorizationSubscriber(Protocol):
    """Receives DocumentCategorizedEvent notifications."""

    def on_document_categorized(self, event: DocumentCategorizedEvent) -> None:
        ...


class EventPublisher:
    """Fan-out of events to registered subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[CategorizationSubscriber] = []

    def subscribe(self, subscriber: CategorizationSubscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: CategorizationSubscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    def publish(self, event: DocumentCategorizedEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber.on_document_categorized(event)
            except Exception as e:
                logger.error(
                    "subscriber_failed",
                    subscriber=type(subscriber).__name__,
                    document_id=event.document_id,
                    error=str(e),
                )


class RecordingSubscriber:
    """Subscriber that keeps every event it receives, for tests."""

    def __init__(self) -> None:
        self.events: list[DocumentCategorizedEvent] = []

    def on_document_categorized(self, event: DocumentCategorizedEvent) -> None:
        self.events.append(event)
