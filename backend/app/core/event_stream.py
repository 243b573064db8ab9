"""Event Streams — in-process publish/subscribe for errors and user snapshots.

Invariants:
    - publish() is synchronous and delivers to every subscriber in subscription order
    - A failing callback is logged and never blocks delivery to the others
    - StateStream replays its current value to every new subscriber

Design Decisions:
    - Plain callbacks: async consumers (the SSE route) bridge with queue.put_nowait
    - No cross-thread delivery: everything runs on the service's event loop
"""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class EventStream(Generic[T]):
    """Broadcast stream without replay."""

    def __init__(self, name: str = "events"):
        self.name = name
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, value: T) -> None:
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                logger.error(
                    f"Subscriber of {self.name} stream failed: {e}", exc_info=True,
                )

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


class StateStream(EventStream[T]):
    """Broadcast stream holding a current value, replayed on subscribe."""

    def __init__(self, initial: T, name: str = "state"):
        super().__init__(name)
        self._value = initial

    @property
    def value(self) -> T:
        return self._value

    def publish(self, value: T) -> None:
        self._value = value
        super().publish(value)

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        unsubscribe = super().subscribe(callback)
        callback(self._value)
        return unsubscribe
