"""
Discount event listeners.

DiscountService notifies a listener after each assignment, revocation and
application has been committed. Notification is best-effort: a failing
listener is logged and never undoes or breaks the business operation.
"""
import logging
from typing import Any, Dict, Iterable

from blinker import Namespace

logger = logging.getLogger(__name__)

EVENT_ASSIGNED = 'assigned'
EVENT_REVOKED = 'revoked'
EVENT_APPLIED = 'applied'

_signals = Namespace()

discount_assigned = _signals.signal('discount-assigned')
discount_revoked = _signals.signal('discount-revoked')
discount_applied = _signals.signal('discount-applied')

SIGNALS = {
    EVENT_ASSIGNED: discount_assigned,
    EVENT_REVOKED: discount_revoked,
    EVENT_APPLIED: discount_applied,
}


class DiscountEventListener:
    """Listener interface. Subclasses override notify()."""

    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class NullDiscountListener(DiscountEventListener):
    """Discards every event."""

    def notify(self, event_kind, payload):
        return None


class LoggingDiscountListener(DiscountEventListener):
    """Writes every event to the application log."""

    def __init__(self, log=None):
        self.log = log or logger

    def notify(self, event_kind, payload):
        self.log.info(f"[DISCOUNT] {event_kind}: {payload}")


class SignalDiscountListener(DiscountEventListener):
    """Re-emits events as blinker signals (sender is the event kind)."""

    def notify(self, event_kind, payload):
        signal = SIGNALS.get(event_kind)
        if signal is None:
            logger.warning(f"No signal registered for discount event {event_kind!r}")
            return
        signal.send(event_kind, **payload)


class CompositeDiscountListener(DiscountEventListener):
    """Fans an event out to several listeners."""

    def __init__(self, listeners: Iterable[DiscountEventListener]):
        self.listeners = list(listeners)

    def notify(self, event_kind, payload):
        for listener in self.listeners:
            dispatch(listener, event_kind, payload)


def dispatch(listener: DiscountEventListener, event_kind: str, payload: Dict[str, Any]) -> None:
    """Notify a listener, logging instead of raising on failure."""
    try:
        listener.notify(event_kind, payload)
    except Exception:
        logger.exception(f"Discount listener {listener!r} failed on {event_kind}")
