"""Bank transfer driver: show account details, take a slip, review it"""

import base64
import binascii
import logging
from enum import Enum
from typing import Any, Optional

from ...core.errors import PaymentError, ValidationError
from ...models.payment import BankDetails, PaymentMethod, SessionState
from ..slips import SlipRegistry, SlipUpload, check_slip, slip_registry
from .base import PaymentDriver

logger = logging.getLogger(__name__)


class BankStep(str, Enum):
    LOADING = "LOADING"
    INFO = "INFO"
    UPLOAD = "UPLOAD"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


def decode_slip_content(data: dict[str, Any]) -> bytes:
    """Slip bytes from action data, raw or base64 encoded"""
    content = data.get("content")
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)

    encoded = data.get("content_base64")
    if not encoded:
        raise ValidationError("Please choose a slip image to upload", fields={"content": "required"})
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Slip content is not valid base64", fields={"content_base64": "invalid"})


class BankTransferDriver(PaymentDriver):
    """
    Manual bank transfer.

    The payer transfers out of band and uploads the slip. Submitting starts
    a fixed review delay that always runs to completion; the slip is then
    checked for reuse across orders and by the gateway.
    """

    method = PaymentMethod.BANK
    settlement_currency = "THB"

    initial_step = BankStep.LOADING
    succeeded_step = BankStep.SUCCEEDED
    cancelled_step = BankStep.CANCELLED
    step_states = {
        BankStep.LOADING: SessionState.INITIALIZING,
        BankStep.INFO: SessionState.AWAITING_ACTION,
        BankStep.UPLOAD: SessionState.AWAITING_ACTION,
        BankStep.PROCESSING: SessionState.CONFIRMING,
        BankStep.SUCCEEDED: SessionState.SUCCEEDED,
        BankStep.CANCELLED: SessionState.CANCELLED,
    }
    step_actions = {
        BankStep.LOADING: ("reload",),
        BankStep.INFO: ("continue",),
        BankStep.UPLOAD: ("upload", "submit", "back"),
    }
    proceed = {BankStep.LOADING: "reload", BankStep.INFO: "continue", BankStep.UPLOAD: "submit"}
    busy_steps = frozenset({BankStep.PROCESSING})

    def __init__(self, *args, slips: Optional[SlipRegistry] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.slips = slips or slip_registry
        self.bank_details: Optional[BankDetails] = None
        self.slip: Optional[SlipUpload] = None
        self._loading = False

    @property
    def reference(self) -> Optional[str]:
        return self.bank_details.reference if self.bank_details else None

    def details(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.bank_details:
            result["bank"] = self.bank_details.model_dump(mode="json")
        if self.slip:
            result["slip"] = {
                "filename": self.slip.filename,
                "content_type": self.slip.content_type,
                "size": self.slip.size,
            }
        return result

    async def _start(self) -> None:
        await self._load()

    async def _load(self) -> None:
        if self._loading:
            return
        self._loading = True
        try:
            details = await self.gateway.get_bank_details(self.order)
        except PaymentError as e:
            logger.warning(f"Could not load bank details for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(BankStep.LOADING, e.message)
            return
        finally:
            self._loading = False

        if self.closed:
            return
        self.bank_details = details
        self._set_step(BankStep.INFO)

    async def _action_reload(self, data: dict[str, Any]) -> None:
        await self._load()

    async def _action_continue(self, data: dict[str, Any]) -> None:
        self._set_step(BankStep.UPLOAD)

    async def _action_back(self, data: dict[str, Any]) -> None:
        self._set_step(BankStep.INFO)

    async def _action_upload(self, data: dict[str, Any]) -> None:
        content = decode_slip_content(data)
        self.slip = check_slip(
            filename=str(data.get("filename") or "slip"),
            content_type=str(data.get("content_type") or ""),
            content=content,
            max_bytes=self.config.slip_max_bytes,
        )
        self.message = f"{self.slip.filename} ready to submit"
        logger.info(f"Slip {self.slip.sha256[:12]} ({self.slip.size} bytes) uploaded for order {self.order.order_id}")

    async def _action_submit(self, data: dict[str, Any]) -> None:
        if self.slip is None:
            raise ValidationError("Please upload your transfer slip first", fields={"slip": "required"})

        self._set_step(BankStep.PROCESSING, "Verifying your transfer")
        self.timers.timeout(self.config.bank_review_delay_seconds, self._review, name="bank-review")

    async def _review(self) -> None:
        slip = self.slip
        try:
            self.slips.ensure_available(slip, self.order.order_id)
            verdict = await self.gateway.verify_bank_slip(self.reference, slip.sha256, slip.size)
        except PaymentError as e:
            logger.warning(f"Slip review failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(BankStep.UPLOAD, e.message)
            return

        if self.closed:
            return
        if not verdict.accepted:
            logger.info(f"Slip rejected for order {self.order.order_id}: {verdict.message}")
            self.slip = None
            self._set_step(BankStep.UPLOAD, verdict.message or "Transfer could not be verified")
            return

        # Only a slip that settles this order is bound to it
        try:
            self.slips.claim(slip, self.order.order_id)
        except PaymentError as e:
            self._set_step(BankStep.UPLOAD, e.message)
            return
        self._succeed(f"bank_{self.reference}")
