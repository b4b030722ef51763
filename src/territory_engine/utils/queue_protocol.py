"""
Event Sink Protocol - Abstract interface for event transport.

The engine only ever calls ``put(event)``. Anything with that method works:
a ``queue.Queue`` drained by a UI thread, a list-backed recorder in tests,
or a callback wrapped in ``CallbackQueueAdapter``.

Usage:
    from queue import Queue
    sink: EventSink = Queue()

    sink = CallbackQueueAdapter(lambda event: ui.post(event))
"""

import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSink(Protocol):
    """Protocol for event sink implementations."""

    def put(self, event: dict[str, Any]) -> None:
        """
        Send an event to the sink.

        Args:
            event: Event dictionary to send
        """
        ...


class CallbackQueueAdapter:
    """
    Adapter that wraps a callback function as an EventSink.

    Example:
        def on_event(event):
            print(event["event_type"])

        sink = CallbackQueueAdapter(on_event)
        sink.put({"event_type": "LOOP_CLOSED", ...})  # Calls on_event
    """

    def __init__(self, callback):
        """
        Create adapter from callback function.

        Args:
            callback: Function that accepts event dict
        """
        self._callback = callback

    def put(self, event: dict[str, Any]) -> None:
        """Forward event to callback."""
        self._callback(event)


def emit(sink: EventSink | None, event: dict[str, Any]) -> None:
    """
    Deliver an event to the sink, if any.

    Sink errors are logged, not raised. State changes have already been
    committed when events are emitted.
    """
    if sink is None:
        return
    try:
        sink.put(event)
    except Exception as e:
        logger.error(f"Event sink failed for {event.get('event_type')}: {e}", exc_info=True)
