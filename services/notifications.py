"""
Domain event publishing.

Publishing is fire-and-forget: events are handed to the publisher after the
state transition has been persisted, and a publisher failure is logged but
never fails or rolls back the operation that produced the event.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Iterable, List, Protocol

from domain.events import DomainEvent

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    def publish(self, event: DomainEvent) -> None: ...


class LoggingEventPublisher:
    """Default publisher: writes every event to the log."""

    def publish(self, event: DomainEvent) -> None:
        payload = {k: str(v) for k, v in asdict(event).items()}
        logger.info(
            f"Domain event {type(event).__name__}",
            extra={"event_type": type(event).__name__, "event": payload},
        )


class RecordingEventPublisher:
    """Keeps published events in memory, in publish order."""

    def __init__(self) -> None:
        self.events: List[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> List[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


def publish_safely(publisher: EventPublisher, events: Iterable[DomainEvent]) -> None:
    for event in events:
        try:
            publisher.publish(event)
        except Exception:
            logger.exception(
                f"Failed to publish {type(event).__name__}; transition already committed",
                extra={"event_type": type(event).__name__},
            )


__all__ = [
    "EventPublisher",
    "LoggingEventPublisher",
    "RecordingEventPublisher",
    "publish_safely",
]
