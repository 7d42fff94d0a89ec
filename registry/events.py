"""
Layered Asset Registry - Notification Channel

Append-only log of structured events emitted once per successful mutating
registry call. Events carry a monotonically increasing sequence number so
that consumers can resume from the last event they have seen.
"""

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Annotated, Callable, Iterable, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class BaseEvent(BaseModel):
    """Fields common to every registry event."""

    model_config = ConfigDict(frozen=True)

    sequence: int = Field(default=0, ge=0, description="Position in the event log, 1-based once emitted")
    asset_id: int = Field(..., ge=1)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MintedEvent(BaseEvent):
    event_type: Literal["minted"] = "minted"
    to: str
    base_uri: str


class OverlayUpdatedEvent(BaseEvent):
    event_type: Literal["overlay_updated"] = "overlay_updated"
    overlay_uri: str


class DynamicAttributesUpdatedEvent(BaseEvent):
    event_type: Literal["dynamic_attributes_updated"] = "dynamic_attributes_updated"
    dynamic_attributes: str


RegistryEvent = Annotated[
    Union[MintedEvent, OverlayUpdatedEvent, DynamicAttributesUpdatedEvent],
    Field(discriminator="event_type"),
]

Subscriber = Callable[[BaseEvent], None]


class NotificationChannel:
    """Thread-safe append-only event log with synchronous subscribers."""

    def __init__(self, events: Iterable[BaseEvent] = ()):
        self.logger = logging.getLogger("registry.events")
        self._lock = RLock()
        self._events: List[BaseEvent] = []
        self._subscribers: List[Subscriber] = []
        self.load(events)

    def load(self, events: Iterable[BaseEvent]) -> None:
        """Replace the log with already committed events. Subscribers are not notified."""
        with self._lock:
            self._events = []
            for event in events:
                self._append(event)

    def _append(self, event: BaseEvent) -> None:
        expected = len(self._events) + 1
        if event.sequence != expected:
            raise ValueError(
                f"Event sequence {event.sequence} out of order, expected {expected}"
            )
        self._events.append(event)

    def stamp(self, event: BaseEvent) -> BaseEvent:
        """Return a copy of event carrying the next sequence number."""
        with self._lock:
            return event.model_copy(update={"sequence": len(self._events) + 1})

    def emit(self, event: BaseEvent) -> BaseEvent:
        """Append an event and notify subscribers."""
        with self._lock:
            if event.sequence == 0:
                event = self.stamp(event)
            self._append(event)
            subscribers = list(self._subscribers)

        self.logger.debug(f"Emitted {event.event_type} #{event.sequence} for asset {event.asset_id}")

        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                # The event is already committed; a failing consumer cannot undo it.
                self.logger.error(f"Event subscriber {callback!r} failed: {e}")

        return event

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def events(self, since: int = 0) -> List[BaseEvent]:
        """Events with a sequence number greater than since."""
        with self._lock:
            return list(self._events[max(since, 0):])

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
