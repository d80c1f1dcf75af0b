"""Catalogue change and call lifecycle events with post-commit dispatch."""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    REGISTERED = "registered"
    UPDATED = "updated"
    REMOVED = "removed"


class CallEventType(str, Enum):
    """Invocation lifecycle, published by the proxy for each call."""

    CALLED = "called"
    RESPONSE = "response"
    ERROR = "error"


EventType = Union[ChangeType, CallEventType]


@dataclass(frozen=True)
class ChangeEvent:
    type: EventType
    key: str
    payload: Any = None


Listener = Callable[[ChangeEvent], None]


class EventBus:
    """Queue events during a mutation and deliver them once it has committed.

    Listeners that mutate the store while an event is being delivered do
    not re-enter the dispatcher: their events are appended to the queue and
    delivered after the current ones.
    """

    def __init__(self):
        self._listeners: dict[EventType, list[Listener]] = {
            t: [] for t in (*ChangeType, *CallEventType)
        }
        self._queue: deque[ChangeEvent] = deque()
        self._dispatching = False

    def subscribe(self, change_type: EventType, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners[change_type].append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(change_type, listener)

        return unsubscribe

    def unsubscribe(self, change_type: EventType, listener: Listener) -> None:
        try:
            self._listeners[change_type].remove(listener)
        except ValueError:
            pass

    def listener_count(self, change_type: Optional[EventType] = None) -> int:
        if change_type is not None:
            return len(self._listeners[change_type])
        return sum(len(listeners) for listeners in self._listeners.values())

    def publish(self, event: ChangeEvent) -> None:
        self._queue.append(event)
        if self._dispatching:
            return
        self._flush()

    def _flush(self) -> None:
        self._dispatching = True
        try:
            while self._queue:
                event = self._queue.popleft()
                for listener in list(self._listeners[event.type]):
                    try:
                        listener(event)
                    except Exception:
                        logger.exception(
                            f"Listener {listener!r} failed on {event.type.value} '{event.key}'"
                        )
        finally:
            self._dispatching = False
