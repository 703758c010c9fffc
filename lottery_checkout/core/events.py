"""
Checkout event bus.

An explicit observable store scoped to the application lifetime.
Subscribers register per event class and receive every published instance
of that class (or a subclass). Handlers run synchronously in publish order.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class CheckoutEvent(BaseModel):
    """Base class for checkout events"""

    model_config = ConfigDict(frozen=True)

    order_id: str
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


class SessionStarted(CheckoutEvent):
    method: str


class SessionEnded(CheckoutEvent):
    method: str
    outcome: str  # "succeeded", "cancelled" or "unmounted"


class TicketIssued(CheckoutEvent):
    ticket_id: str
    transaction_id: str
    method: str


E = TypeVar("E", bound=CheckoutEvent)
Handler = Callable[[E], None]


class EventBus:
    """In-process publish/subscribe for checkout events"""

    def __init__(self):
        self._subscribers: dict[type, list[Callable]] = {}
        self._published: list[CheckoutEvent] = []
        self.keep_history = False

    def subscribe(self, event_type: Type[E], handler: Handler) -> Callable[[], None]:
        """
        Register a handler for an event class.

        Returns:
            A callable that removes the subscription
        """
        self._subscribers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: CheckoutEvent) -> None:
        """Deliver an event to every matching subscriber"""
        if self.keep_history:
            self._published.append(event)

        for event_type, handlers in list(self._subscribers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Event handler failed for {type(event).__name__}")

    def history(self, event_type: Optional[Type[E]] = None) -> list:
        """Published events, when history is kept"""
        if event_type is None:
            return list(self._published)
        return [e for e in self._published if isinstance(e, event_type)]

    def clear(self) -> None:
        self._subscribers.clear()
        self._published.clear()
