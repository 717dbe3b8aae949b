import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from budget_core.alerts import BudgetStatus
from budget_core.domain import utcnow
from budget_core.functional import check_budget

__all__ = [
    'event_bus', 'TRANSACTION_ADDED', 'TRANSACTION_DELETED', 'BUDGET_ALERT',
    'Event', 'EventBus', 'budget_alert_handler', 'notify_exceeded_handler',
    'register_default_handlers',
]

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.setdefault(name, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        """Run every handler for ``name`` in subscription order and collect results."""
        if name not in self._subscribers:
            return []

        event = Event(name=name, ts=utcnow().isoformat(), payload=payload)
        return [handler(event, payload) for handler in list(self._subscribers[name])]

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


TRANSACTION_ADDED = "TRANSACTION_ADDED"
TRANSACTION_DELETED = "TRANSACTION_DELETED"
BUDGET_ALERT = "BUDGET_ALERT"


def budget_alert_handler(event: Event, payload: dict) -> dict:
    """Classify the ledger snapshot carried by the event.

    Payload keys: ``transactions`` (tuple snapshot), ``budget`` and
    optionally ``settings``.
    """
    settings = payload.get("settings")
    checked = check_budget(
        payload.get("transactions", ()),
        payload["budget"],
        currency=settings.currency if settings else "USD",
        email=settings.email if settings else None,
    )
    if checked.is_left():
        error = checked.get_error()
        logger.warning("Cannot classify spending: %s", error["message"])
        return {"status": None, "error": error}

    alert = checked.get_or_else(None)
    if alert.status is BudgetStatus.NORMAL:
        return {"status": alert.status}
    return {"status": alert.status, "alert": alert.message, "budget_alert": alert}


def notify_exceeded_handler(event: Event, payload: dict) -> dict:
    """Stand-in for the e-mail notification an exceeded budget triggers."""
    alert = payload.get("budget_alert")
    if alert is None or not alert.requires_notification:
        return {}
    settings = payload.get("settings")
    recipient = settings.email if settings else None
    logger.info("Budget exceeded notification queued for %s: %s", recipient or "<no email>", alert.message)
    return {"notified": recipient, "message": alert.message, "ts": event.ts}


def register_default_handlers(bus: Optional[EventBus] = None) -> EventBus:
    bus = bus or event_bus
    bus.subscribe(TRANSACTION_ADDED, budget_alert_handler)
    bus.subscribe(TRANSACTION_DELETED, budget_alert_handler)
    bus.subscribe(BUDGET_ALERT, notify_exceeded_handler)
    return bus


event_bus = EventBus()
register_default_handlers()
