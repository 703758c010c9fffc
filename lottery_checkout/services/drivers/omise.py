"""
Omise driver

Lets the payer pick an Omise source first. PromptPay mounts a child QR
driver whose outcome is reported through this driver; the other sources
are charged directly.
"""

import logging
from enum import Enum
from typing import Any, Optional

from ...core.errors import PaymentError, ValidationError
from ...models.payment import OmiseSubMethod, PaymentMethod, SessionSnapshot, SessionState
from .base import PaymentDriver
from .qr import OmisePromptPayDriver

logger = logging.getLogger(__name__)

SUB_METHOD_NAMES = {
    OmiseSubMethod.PROMPTPAY: "PromptPay",
    OmiseSubMethod.TRUEMONEY: "TrueMoney",
    OmiseSubMethod.INTERNET_BANKING: "Internet Banking",
    OmiseSubMethod.CREDIT_CARD: "Credit / Debit Card",
}


class OmiseStep(str, Enum):
    SELECT = "SELECT"
    QR = "QR"
    PROCESS = "PROCESS"
    PROCESSING = "PROCESSING"
    FAILED = "FAILED"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


class OmiseDriver(PaymentDriver):
    method = PaymentMethod.OMISE
    settlement_currency = "THB"

    initial_step = OmiseStep.SELECT
    succeeded_step = OmiseStep.SUCCEEDED
    cancelled_step = OmiseStep.CANCELLED
    step_states = {
        OmiseStep.SELECT: SessionState.AWAITING_ACTION,
        OmiseStep.QR: SessionState.POLLING,
        OmiseStep.PROCESS: SessionState.AWAITING_ACTION,
        OmiseStep.PROCESSING: SessionState.CONFIRMING,
        OmiseStep.FAILED: SessionState.FAILED,
        OmiseStep.SUCCEEDED: SessionState.SUCCEEDED,
        OmiseStep.CANCELLED: SessionState.CANCELLED,
    }
    step_actions = {
        OmiseStep.SELECT: ("select",),
        OmiseStep.QR: ("regenerate", "back"),
        OmiseStep.PROCESS: ("process", "back"),
        OmiseStep.FAILED: ("process", "back"),
    }
    proceed = {OmiseStep.SELECT: "select", OmiseStep.PROCESS: "process", OmiseStep.FAILED: "process"}
    busy_steps = frozenset({OmiseStep.PROCESSING})

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sub_method: Optional[OmiseSubMethod] = None
        self.child: Optional[OmisePromptPayDriver] = None

    async def _start(self) -> None:
        self._set_step(OmiseStep.SELECT)

    def details(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "sub_method": self.sub_method.value if self.sub_method else None,
            "sub_methods": [{"id": m.value, "name": name} for m, name in SUB_METHOD_NAMES.items()],
        }
        if self.child:
            result["qr"] = self.child.details()
        return result

    def snapshot(self) -> SessionSnapshot:
        snapshot = super().snapshot()
        if self.step != OmiseStep.QR or self.child is None or self.closed:
            return snapshot

        child = self.child.snapshot()
        return snapshot.model_copy(update={
            "state": child.state,
            "message": child.message,
            "settlement_amount": child.settlement_amount,
            "countdown_remaining": child.countdown_remaining,
            "reference": child.reference,
            "proceed_action": child.proceed_action,
        })

    # ==================== Child QR session ====================

    def _mount_child(self) -> OmisePromptPayDriver:
        self.child = OmisePromptPayDriver(
            self.order,
            self.gateway,
            self.timers.engine,
            on_success=self._child_succeeded,
            on_cancel=self._child_cancelled,
            converter=self.converter,
            config=self.config,
        )
        return self.child

    def _unmount_child(self) -> None:
        if self.child is not None:
            self.child.teardown()
            self.child = None

    def _child_succeeded(self, transaction_id: str) -> None:
        self._succeed(transaction_id)

    def _child_cancelled(self) -> None:
        if not self.closed:
            self._settle_cancelled()

    def _stop_timers(self) -> None:
        super()._stop_timers()
        if self.child is not None:
            self.child.teardown()

    # ==================== Actions ====================

    async def _action_select(self, data: dict[str, Any]) -> None:
        try:
            sub_method = OmiseSubMethod(str(data.get("sub_method") or ""))
        except ValueError:
            raise ValidationError(
                "Please choose a payment option",
                fields={"sub_method": " | ".join(m.value for m in OmiseSubMethod)},
            )

        self.sub_method = sub_method
        if sub_method == OmiseSubMethod.PROMPTPAY:
            self._set_step(OmiseStep.QR)
            await self._mount_child().start()
        else:
            self._set_step(OmiseStep.PROCESS)

    async def _action_regenerate(self, data: dict[str, Any]) -> None:
        await self.child.perform("regenerate", data)

    async def _action_back(self, data: dict[str, Any]) -> None:
        self._unmount_child()
        self.sub_method = None
        self._set_step(OmiseStep.SELECT)

    async def _action_process(self, data: dict[str, Any]) -> None:
        self._set_step(OmiseStep.PROCESSING, f"Processing {SUB_METHOD_NAMES[self.sub_method]} payment")
        try:
            result = await self.gateway.charge_omise(self.order, self.sub_method)
        except PaymentError as e:
            logger.warning(f"Omise charge failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(OmiseStep.FAILED, e.message)
            return

        if self.closed:
            return
        if not result.success:
            self._set_step(OmiseStep.FAILED, result.message or "Payment failed")
            return
        self._succeed(result.transaction_id)
