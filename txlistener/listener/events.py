# txlistener/listener/events.py

import threading
from typing import Callable, Dict, List, Type, TypeVar

from ..core.logging import LoggingMixin
from ..types import NewBlock, NewTransaction, TxResolved, ListenerEvent

E = TypeVar('E', NewBlock, NewTransaction, TxResolved)
EventHandler = Callable[[ListenerEvent], None]

EVENT_TYPES = (NewBlock, NewTransaction, TxResolved)


class EventBus(LoggingMixin):
    """
    Typed publish/subscribe for the three listener messages.

    Handlers run on the publishing thread. A failing handler is logged and
    does not stop delivery to the others.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[type, List[EventHandler]] = {event_type: [] for event_type in EVENT_TYPES}

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        if event_type not in self._handlers:
            raise ValueError(f"Unknown event type: {event_type!r}")
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: ListenerEvent) -> None:
        with self._lock:
            handlers = list(self._handlers[type(event)])

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                self.log_error("Event handler failed",
                               event=type(event).__name__,
                               error=str(e),
                               exception_type=type(e).__name__)
