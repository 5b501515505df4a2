"""Synchronous event dispatch for conversion progress."""

from collections.abc import Callable
from typing import Any

Listener = Callable[[Any], None]


class EventEmitter:
    """Dispatches event objects to listeners registered for their type.

    Listeners run synchronously in registration order, so an emit()
    returns only after every listener has seen the event.

    Example:
        emitter = EventEmitter()
        emitter.on(ConversionStarting, lambda event: print(event.index))
        emitter.emit(ConversionStarting(post={}, index=1, total=1))
    """

    def __init__(self):
        self._listeners: dict[type, list[tuple[Listener, bool]]] = {}

    def on(self, event_type: type, listener: Listener) -> Listener:
        """Register a listener for every event of event_type."""
        self._listeners.setdefault(event_type, []).append((listener, False))
        return listener

    def once(self, event_type: type, listener: Listener) -> Listener:
        """Register a listener for the next event of event_type only."""
        self._listeners.setdefault(event_type, []).append((listener, True))
        return listener

    def off(self, event_type: type, listener: Listener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        self._listeners[event_type] = [
            entry for entry in self._listeners.get(event_type, []) if entry[0] is not listener
        ]

    def listener_count(self, event_type: type) -> int:
        return len(self._listeners.get(event_type, []))

    def emit(self, event: Any) -> bool:
        """Deliver event to the listeners for its type.

        Returns:
            True if any listener received the event
        """
        entries = list(self._listeners.get(type(event), []))
        if not entries:
            return False

        self._listeners[type(event)] = [entry for entry in entries if not entry[1]]
        for listener, _ in entries:
            listener(event)
        return True
