"""
Payment Session Contract

Every payment method is driven by a PaymentDriver. The orchestrator only
sees start(), perform(), cancel(), teardown() and snapshot(), plus the two
terminal callbacks:

    on_success(transaction_id)  at most once, after the state is SUCCEEDED
    on_cancel()                 at most once, only on explicit user cancel

A driver stops all of its timers before invoking either callback and when
torn down. Gateway failures become an in-session message and leave the
driver actionable.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional

from ...core.config import Settings, settings as default_settings
from ...core.errors import SessionBusyError, SessionClosedError, ValidationError
from ...core.timers import TimerEngine, TimerGroup
from ...models.order import Order
from ...models.payment import PaymentMethod, SessionSnapshot, SessionState
from ..currency import CurrencyConverter, converter as default_converter
from ..gateway import PaymentGateway

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[str], None]
CancelCallback = Callable[[], None]

CANCEL_ACTION = "cancel"


class PaymentDriver(ABC):
    """
    Base class for payment method drivers.

    Subclasses declare their steps as a str Enum and describe them with:
        step_states:  step -> canonical SessionState
        step_actions: step -> actions allowed in that step
        proceed:      step -> the action that moves the session forward
        busy_steps:   steps that cannot be cancelled or interrupted
    Each action "foo" is handled by an `async def _action_foo(self, data)`.
    """

    method: PaymentMethod
    settlement_currency: str = "USD"

    initial_step: Enum
    succeeded_step: Enum
    cancelled_step: Enum
    step_states: dict = {}
    step_actions: dict = {}
    proceed: dict = {}
    busy_steps: frozenset = frozenset()

    def __init__(
        self,
        order: Order,
        gateway: PaymentGateway,
        timer_engine: TimerEngine,
        on_success: SuccessCallback,
        on_cancel: CancelCallback,
        converter: Optional[CurrencyConverter] = None,
        config: Optional[Settings] = None,
    ):
        self.order = order
        self.gateway = gateway
        self.timers = TimerGroup(timer_engine)
        self.converter = converter or default_converter
        self.config = config or default_settings

        self._on_success = on_success
        self._on_cancel = on_cancel

        self.step = self.initial_step
        self.state: SessionState = self.step_states[self.initial_step]
        self.message: Optional[str] = None
        self.transaction_id: Optional[str] = None
        self.settled = False
        self.torn_down = False

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Begin the session, e.g. load details or generate a QR code"""
        logger.info(f"{self.method.value} session started for order {self.order.order_id}")
        await self._start()

    @abstractmethod
    async def _start(self) -> None:
        ...

    async def perform(self, action: str, data: Optional[dict[str, Any]] = None) -> None:
        """
        Run a named user action.

        Raises:
            SessionClosedError: the session already settled or was torn down
            SessionBusyError: the session is in a step that cannot be interrupted
            ValidationError: unknown action, action not allowed now, or bad input
        """
        if action == CANCEL_ACTION:
            await self.cancel()
            return

        self._ensure_open()
        if self.step in self.busy_steps:
            raise SessionBusyError("Payment is being processed, please wait")

        allowed = self.allowed_actions()
        if action not in allowed:
            raise ValidationError(
                f"Action '{action}' is not available in step {self.step.value}",
                fields={"action": action},
            )

        handler = getattr(self, f"_action_{action}")
        await handler(data or {})

    async def cancel(self) -> None:
        """Explicit user cancellation"""
        self._ensure_open()
        if self.step in self.busy_steps:
            raise SessionBusyError("Payment is being processed and cannot be cancelled")
        self._settle_cancelled()

    def _settle_cancelled(self) -> None:
        self._stop_timers()
        self.settled = True
        self._set_step(self.cancelled_step)
        logger.info(f"{self.method.value} session cancelled for order {self.order.order_id}")
        self._on_cancel()

    def teardown(self) -> None:
        """Unmount without reporting an outcome. Idempotent."""
        if self.torn_down:
            return
        self._stop_timers()
        self.torn_down = True
        logger.debug(f"{self.method.value} driver torn down for order {self.order.order_id}")

    # ==================== Helpers for subclasses ====================

    @property
    def closed(self) -> bool:
        return self.settled or self.torn_down

    @property
    def busy(self) -> bool:
        return not self.closed and self.step in self.busy_steps

    def _ensure_open(self) -> None:
        if self.settled:
            raise SessionClosedError(f"Payment session for order {self.order.order_id} is already {self.state.value}")
        if self.torn_down:
            raise SessionClosedError(f"Payment session for order {self.order.order_id} was closed")

    def _set_step(self, step: Enum, message: Optional[str] = None) -> None:
        previous = self.step
        self.step = step
        self.state = self.step_states[step]
        self.message = message
        if previous != step:
            logger.info(f"{self.method.value} {self.order.order_id}: {previous.value} -> {step.value}")

    def _stop_timers(self) -> None:
        self.timers.cancel_all()

    def _succeed(self, transaction_id: str) -> None:
        """Settle successfully and report to the orchestrator exactly once"""
        if self.closed:
            logger.warning(
                f"Ignoring late success {transaction_id} for closed {self.method.value} session {self.order.order_id}"
            )
            return

        self._stop_timers()
        self.settled = True
        self.transaction_id = transaction_id
        self._set_step(self.succeeded_step)
        logger.info(f"{self.method.value} payment succeeded for order {self.order.order_id}: {transaction_id}")
        self._on_success(transaction_id)

    # ==================== Rendering ====================

    def allowed_actions(self) -> list[str]:
        if self.closed or self.step in self.busy_steps:
            return []
        return list(self.step_actions.get(self.step, ()))

    @property
    def settlement_amount(self) -> Optional[Decimal]:
        if self.settlement_currency == "USD":
            return self.order.amount_usd
        return self.converter.convert(self.order.amount_usd, self.settlement_currency)

    @property
    def reference(self) -> Optional[str]:
        return None

    @property
    def countdown_remaining(self) -> Optional[int]:
        return None

    def details(self) -> dict[str, Any]:
        """Method-specific fields for the payment screen"""
        return {}

    def snapshot(self) -> SessionSnapshot:
        """What the payment screen shows right now"""
        can_cancel = not self.closed and self.step not in self.busy_steps
        return SessionSnapshot(
            method=self.method,
            order_id=self.order.order_id,
            state=self.state,
            step=self.step.value,
            message=self.message,
            amount_usd=self.order.amount_usd,
            settlement_amount=self.settlement_amount,
            settlement_currency=self.settlement_currency,
            countdown_remaining=self.countdown_remaining,
            reference=self.reference,
            proceed_action=None if self.closed else self.proceed.get(self.step),
            cancel_action=CANCEL_ACTION if can_cancel else None,
            actions=self.allowed_actions() + ([CANCEL_ACTION] if can_cancel else []),
            transaction_id=self.transaction_id,
            details=self.details(),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} order={self.order.order_id} step={self.step.value}>"


def require_text(data: dict[str, Any], field: str, label: str) -> str:
    """Fetch a non-empty string field from action data"""
    value = data.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required", fields={field: f"{label} is required"})
    return str(value).strip()
