"""Wise transfer driver: recipient details, then confirm with the Wise transaction id"""

import logging
from enum import Enum
from typing import Any, Optional

from ...core.errors import PaymentError
from ...models.payment import PaymentMethod, SessionState, WiseTransferDetails
from .base import PaymentDriver, require_text

logger = logging.getLogger(__name__)


class WiseStep(str, Enum):
    LOADING = "LOADING"
    DETAILS = "DETAILS"
    CONFIRM = "CONFIRM"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


class WiseDriver(PaymentDriver):
    method = PaymentMethod.WISE

    initial_step = WiseStep.LOADING
    succeeded_step = WiseStep.SUCCEEDED
    cancelled_step = WiseStep.CANCELLED
    step_states = {
        WiseStep.LOADING: SessionState.INITIALIZING,
        WiseStep.DETAILS: SessionState.AWAITING_ACTION,
        WiseStep.CONFIRM: SessionState.AWAITING_ACTION,
        WiseStep.PROCESSING: SessionState.CONFIRMING,
        WiseStep.SUCCEEDED: SessionState.SUCCEEDED,
        WiseStep.CANCELLED: SessionState.CANCELLED,
    }
    step_actions = {
        WiseStep.LOADING: ("reload",),
        WiseStep.DETAILS: ("continue",),
        WiseStep.CONFIRM: ("confirm", "back"),
    }
    proceed = {WiseStep.LOADING: "reload", WiseStep.DETAILS: "continue", WiseStep.CONFIRM: "confirm"}
    busy_steps = frozenset({WiseStep.PROCESSING})

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.transfer: Optional[WiseTransferDetails] = None
        self.external_id: Optional[str] = None
        self._loading = False

    @property
    def reference(self) -> Optional[str]:
        return self.transfer.reference if self.transfer else None

    def details(self) -> dict[str, Any]:
        result: dict[str, Any] = {"external_id": self.external_id}
        if self.transfer:
            result["recipient"] = self.transfer.model_dump(mode="json")
        return result

    async def _start(self) -> None:
        await self._load()

    async def _load(self) -> None:
        if self._loading:
            return
        self._loading = True
        try:
            transfer = await self.gateway.get_wise_details(self.order)
        except PaymentError as e:
            logger.warning(f"Could not load Wise details for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(WiseStep.LOADING, e.message)
            return
        finally:
            self._loading = False

        if self.closed:
            return
        self.transfer = transfer
        self._set_step(WiseStep.DETAILS)

    async def _action_reload(self, data: dict[str, Any]) -> None:
        await self._load()

    async def _action_continue(self, data: dict[str, Any]) -> None:
        self._set_step(WiseStep.CONFIRM)

    async def _action_back(self, data: dict[str, Any]) -> None:
        self._set_step(WiseStep.DETAILS)

    async def _action_confirm(self, data: dict[str, Any]) -> None:
        self.external_id = require_text(data, "external_id", "Wise transaction ID")
        self._set_step(WiseStep.PROCESSING, "Checking your transfer")
        self.timers.timeout(self.config.wise_processing_delay_seconds, self._verify, name="wise-verify")

    async def _verify(self) -> None:
        try:
            result = await self.gateway.confirm_wise(self.reference, self.external_id)
        except PaymentError as e:
            logger.warning(f"Wise confirmation failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(WiseStep.CONFIRM, e.message)
            return

        if self.closed:
            return
        if not result.success:
            logger.info(f"Wise transfer {self.external_id} rejected for order {self.order.order_id}")
            self._set_step(WiseStep.CONFIRM, result.message or "Transfer could not be confirmed")
            return
        self._succeed(result.transaction_id)
