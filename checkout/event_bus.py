"""
Fan-out of checkout events to local listeners.

Publishing happens after a sale has been committed, so nothing a listener
does can undo it. A listener that raises is logged and skipped; the
publisher never sees the error.
"""

import logging
from typing import Callable, Dict, List, Type, Union

from checkout.events import CheckoutEvent

logger = logging.getLogger(__name__)

EventKey = Union[str, Type[CheckoutEvent]]


def _key(event_type: EventKey) -> str:
    return event_type if isinstance(event_type, str) else event_type.__name__


class EventBus:
    """
    Routes each published event to the listeners registered for its class.

    Listeners are keyed by class name, so "BillPaid" and BillPaid are the
    same registration. Subclasses are not matched by their parent's key.
    Delivery is in registration order, on the publishing thread.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: EventKey, callback: Callable):
        """Register callback for event_type (a class or its name)."""
        self._subscribers.setdefault(_key(event_type), []).append(callback)

    def unsubscribe(self, event_type: EventKey, callback: Callable) -> bool:
        """Drop one registration. False when callback was never registered."""
        callbacks = self._subscribers.get(_key(event_type), [])
        if callback not in callbacks:
            return False
        callbacks.remove(callback)
        return True

    def publish(self, event: CheckoutEvent):
        # Snapshot so a listener may unsubscribe itself mid-delivery.
        event_type = type(event).__name__
        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
