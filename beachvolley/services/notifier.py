"""
Engine event publishing.

The engine hands events to an injected publisher after each committed state
change. Delivery is best-effort: a failing subscriber is logged and skipped,
never propagated back into the operation that produced the event.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Protocol

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    MATCH_UPDATE = "MATCH_UPDATE"
    GROUP_PHASE_COMPLETE = "GROUP_PHASE_COMPLETE"
    CHAMPION_DECLARED = "CHAMPION_DECLARED"


@dataclass
class EngineEvent:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "payload": self.payload}


class EventPublisher(Protocol):
    def publish(self, event: EngineEvent) -> None: ...


Subscriber = Callable[[EngineEvent], None]


class EventBus:
    """In-process fan-out to registered subscribers."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns a callable that unregisters it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: EngineEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("Event subscriber failed for %s", event.type.value)

    def publish_all(self, events: List[EngineEvent]) -> None:
        for event in events:
            self.publish(event)


def log_event(event: EngineEvent) -> None:
    logger.info("event %s %s", event.type.value, event.payload)


# App-wide bus; routes receive it through get_event_bus so tests can swap it
event_bus = EventBus()
event_bus.subscribe(log_event)


def get_event_bus() -> EventBus:
    return event_bus
