"""
QR-push drivers

The payer scans a generated code in an external app; completion is only
learned by polling the reference. Each session owns two timers, a 1-second
countdown over the QR window and a status poll. Regenerating voids the old
reference and starts over with a fresh reference and a full countdown.
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from ...core.errors import ExpiryError, PaymentError, SessionBusyError
from ...core.timers import Countdown
from ...models.payment import PaymentMethod, PollStatus, QRPayload, SessionState
from .base import PaymentDriver

logger = logging.getLogger(__name__)


class QRStep(str, Enum):
    GENERATING = "GENERATING"
    SCANNING = "SCANNING"
    EXPIRED = "EXPIRED"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


class QRPushDriver(PaymentDriver):
    """Shared QR generate, countdown and poll loop"""

    # Method used when asking the gateway for a QR code
    qr_method: PaymentMethod
    transaction_prefix: str

    initial_step = QRStep.GENERATING
    succeeded_step = QRStep.SUCCEEDED
    cancelled_step = QRStep.CANCELLED
    step_states = {
        QRStep.GENERATING: SessionState.INITIALIZING,
        QRStep.SCANNING: SessionState.POLLING,
        QRStep.EXPIRED: SessionState.EXPIRED,
        QRStep.SUCCEEDED: SessionState.SUCCEEDED,
        QRStep.CANCELLED: SessionState.CANCELLED,
    }
    step_actions = {
        QRStep.GENERATING: ("regenerate",),
        QRStep.SCANNING: ("regenerate",),
        QRStep.EXPIRED: ("regenerate",),
    }
    proceed = {QRStep.GENERATING: "regenerate", QRStep.EXPIRED: "regenerate"}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.payload: Optional[QRPayload] = None
        self.countdown: Optional[Countdown] = None
        self.generation = 0
        self.polls = 0
        self._generating = False

    @property
    def reference(self) -> Optional[str]:
        return self.payload.reference if self.payload else None

    @property
    def countdown_remaining(self) -> Optional[int]:
        return self.countdown.remaining if self.countdown else None

    @property
    def settlement_amount(self) -> Optional[Decimal]:
        if self.payload:
            return self.payload.settlement_amount
        return super().settlement_amount

    def details(self) -> dict[str, Any]:
        if not self.payload:
            return {}
        return {
            "qr_image_ref": self.payload.qr_image_ref,
            "qr_data": self.payload.qr_data,
            "expires_at": self.payload.expires_at.isoformat(),
            "generation": self.generation,
        }

    async def _start(self) -> None:
        await self._generate()

    async def _generate(self) -> None:
        self._set_step(QRStep.GENERATING)
        self.payload = None
        self.countdown = None

        self._generating = True
        try:
            payload = await self.gateway.generate_qr(self.order, self.qr_method, self.settlement_currency)
        except PaymentError as e:
            logger.warning(f"QR generation failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self.message = e.message
            return
        finally:
            self._generating = False

        if self.closed:
            await self._void(payload.reference)
            return

        self.payload = payload
        self.generation += 1
        self.polls = 0
        reference = payload.reference

        async def poll() -> None:
            await self._poll(reference)

        self.countdown = self.timers.countdown(
            self.config.qr_window_seconds,
            on_expire=self._expire,
            name=f"{self.method.value.lower()}-countdown",
        )
        self.timers.interval(
            self.config.poll_interval_seconds,
            poll,
            name=f"{self.method.value.lower()}-poll",
        )
        self._set_step(QRStep.SCANNING)

    async def _poll(self, reference: str) -> None:
        if self.closed or reference != self.reference or self.step != QRStep.SCANNING:
            return

        self.polls += 1
        try:
            status = await self.gateway.check_status(reference)
        except PaymentError as e:
            logger.warning(f"Status check for {reference} failed: {e.message}")
            if not self.closed and reference == self.reference:
                self.message = "Could not check payment status, still waiting"
            return

        # A regeneration or expiry may have happened while the check was in flight
        if self.closed or reference != self.reference or self.step != QRStep.SCANNING:
            logger.debug(f"Discarding stale status {status.value} for {reference}")
            return

        logger.debug(f"Poll {self.polls} for {reference}: {status.value}")
        if status == PollStatus.COMPLETED:
            self._succeed(f"{self.transaction_prefix}{reference}")
        else:
            self.message = None

    def _expire(self) -> None:
        if self.closed:
            return
        self._stop_timers()
        error = ExpiryError("QR code has expired, generate a new one to continue")
        self._set_step(QRStep.EXPIRED, error.message)

    async def _action_regenerate(self, data: dict[str, Any]) -> None:
        if self._generating:
            raise SessionBusyError("A QR code is already being generated")
        self._generating = True
        self._stop_timers()
        old = self.reference
        self._set_step(QRStep.GENERATING)
        self.payload = None
        self.countdown = None
        if old:
            await self._void(old)
        if self.closed:
            return
        await self._generate()

    async def _void(self, reference: str) -> None:
        try:
            await self.gateway.void_reference(reference)
        except PaymentError as e:
            logger.warning(f"Could not void reference {reference}: {e.message}")


class PromptPayDriver(QRPushDriver):
    method = PaymentMethod.PROMPTPAY
    qr_method = PaymentMethod.PROMPTPAY
    settlement_currency = "THB"
    transaction_prefix = "pp_"


class AlipayDriver(QRPushDriver):
    method = PaymentMethod.ALIPAY
    qr_method = PaymentMethod.ALIPAY
    settlement_currency = "CNY"
    transaction_prefix = "alipay_"


class WeChatPayDriver(QRPushDriver):
    method = PaymentMethod.WECHAT
    qr_method = PaymentMethod.WECHAT
    settlement_currency = "CNY"
    transaction_prefix = "wechat_"


class OmisePromptPayDriver(QRPushDriver):
    """PromptPay through the Omise gateway, mounted by OmiseDriver"""

    method = PaymentMethod.OMISE
    qr_method = PaymentMethod.OMISE
    settlement_currency = "THB"
    transaction_prefix = "omise_"
