from __future__ import annotations

import threading
from typing import Any, Protocol


class EventPublisher(Protocol):
    """
    Port for fire-and-forget domain events.

    ``publish`` must return promptly and never raise because of a subscriber;
    the flows that emit events do not wait on their consumers.
    """

    def publish(self, event: Any) -> None: ...


class InMemoryEventPublisher(EventPublisher):
    """Record published events in order; used by unit tests."""

    def __init__(self) -> None:
        self._events: list[Any] = []
        self._lock = threading.Lock()

    def publish(self, event: Any) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[Any]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]
