from __future__ import annotations

import threading
from typing import Any, Callable

# Event names emitted by the library
ENVELOPE_CHANGED = "envelope.changed"
BATCH_START = "batch.start"
ITEM_STATUS = "item.status"
BATCH_COMPLETE = "batch.complete"
EXPORT_ITEM = "export.item"


class EventBus:
    """Lightweight publish/subscribe bus for extractor and batch events.

    Handlers run synchronously, in subscription order, on the thread that
    calls :meth:`emit`.  The handler table is lock-protected so a GUI
    worker thread may subscribe while the main thread emits.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable[..., Any]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: str,
                  handler: Callable[..., Any]) -> Callable[[], None]:
        """Register a handler for an event type.

        Returns a callable that removes exactly this registration; calling
        it more than once is harmless.
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

        done = [False]

        def unsubscribe() -> None:
            if done[0]:
                return
            done[0] = True
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: str, handler: Callable[..., Any]) -> None:
        """Remove a handler."""
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def handler_count(self, event_type: str) -> int:
        with self._lock:
            return len(self._handlers.get(event_type, []))

    def emit(self, event_type: str, **data: Any) -> None:
        """Fire all handlers for an event type."""
        with self._lock:
            handlers = list(self._handlers.get(event_type, []))
        for handler in handlers:
            handler(**data)
