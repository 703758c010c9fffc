"""TrueMoney Wallet driver: phone number, OTP challenge, then debit"""

import logging
import re
from enum import Enum
from typing import Any, Optional

from ...core.errors import PaymentError, ValidationError
from ...models.payment import OtpChallenge, PaymentMethod, SessionState
from .base import PaymentDriver

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^0[689]\d{8}$")
OTP_PATTERN = re.compile(r"^\d{6}$")


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def is_valid_phone(phone: str) -> bool:
    """Thai mobile number: 10 digits, leading 0, second digit 6, 8 or 9"""
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))


def is_valid_otp(otp: str) -> bool:
    return bool(OTP_PATTERN.match((otp or "").strip()))


class TrueMoneyStep(str, Enum):
    PHONE_ENTRY = "PHONE_ENTRY"
    OTP_REQUESTED = "OTP_REQUESTED"
    OTP_ENTRY = "OTP_ENTRY"
    CONFIRMING = "CONFIRMING"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


class TrueMoneyDriver(PaymentDriver):
    method = PaymentMethod.TRUEMONEY
    settlement_currency = "THB"

    initial_step = TrueMoneyStep.PHONE_ENTRY
    succeeded_step = TrueMoneyStep.SUCCEEDED
    cancelled_step = TrueMoneyStep.CANCELLED
    step_states = {
        TrueMoneyStep.PHONE_ENTRY: SessionState.AWAITING_ACTION,
        TrueMoneyStep.OTP_REQUESTED: SessionState.CONFIRMING,
        TrueMoneyStep.OTP_ENTRY: SessionState.AWAITING_ACTION,
        TrueMoneyStep.CONFIRMING: SessionState.CONFIRMING,
        TrueMoneyStep.SUCCEEDED: SessionState.SUCCEEDED,
        TrueMoneyStep.CANCELLED: SessionState.CANCELLED,
    }
    step_actions = {
        TrueMoneyStep.PHONE_ENTRY: ("request_otp",),
        TrueMoneyStep.OTP_ENTRY: ("confirm", "resend_otp", "change_phone"),
    }
    proceed = {TrueMoneyStep.PHONE_ENTRY: "request_otp", TrueMoneyStep.OTP_ENTRY: "confirm"}
    busy_steps = frozenset({TrueMoneyStep.OTP_REQUESTED, TrueMoneyStep.CONFIRMING})

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.phone_number: Optional[str] = None
        self.challenge: Optional[OtpChallenge] = None
        self._resending = False

    async def _start(self) -> None:
        self._set_step(TrueMoneyStep.PHONE_ENTRY)

    def details(self) -> dict[str, Any]:
        return {
            "phone_number": self.phone_number,
            "otp_expires_at": self.challenge.expires_at.isoformat() if self.challenge else None,
        }

    async def _action_request_otp(self, data: dict[str, Any]) -> None:
        phone = normalize_phone(str(data.get("phone_number") or ""))
        if not is_valid_phone(phone):
            raise ValidationError(
                "Please enter a valid mobile number",
                fields={"phone_number": "Must be 10 digits starting with 06, 08 or 09"},
            )

        self.phone_number = phone
        self._set_step(TrueMoneyStep.OTP_REQUESTED)
        try:
            challenge = await self.gateway.request_otp(self.order, phone)
        except PaymentError as e:
            logger.warning(f"OTP request failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(TrueMoneyStep.PHONE_ENTRY, e.message)
            return

        if self.closed:
            return
        self.challenge = challenge
        self._set_step(TrueMoneyStep.OTP_ENTRY, f"OTP sent to {phone}")

    async def _action_resend_otp(self, data: dict[str, Any]) -> None:
        if self._resending:
            return
        self._resending = True
        try:
            challenge = await self.gateway.request_otp(self.order, self.phone_number)
        except PaymentError as e:
            logger.warning(f"OTP resend failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self.message = e.message
            return
        finally:
            self._resending = False

        if self.closed:
            return
        self.challenge = challenge
        self.message = f"A new OTP was sent to {self.phone_number}"

    async def _action_change_phone(self, data: dict[str, Any]) -> None:
        self.challenge = None
        self._set_step(TrueMoneyStep.PHONE_ENTRY)

    async def _action_confirm(self, data: dict[str, Any]) -> None:
        otp = str(data.get("otp") or "").strip()
        if not is_valid_otp(otp):
            raise ValidationError("OTP must be exactly 6 digits", fields={"otp": "Must be 6 digits"})

        self._set_step(TrueMoneyStep.CONFIRMING)
        try:
            result = await self.gateway.confirm_otp(self.order, self.challenge.challenge_id, otp)
        except PaymentError as e:
            logger.warning(f"TrueMoney confirmation failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(TrueMoneyStep.OTP_ENTRY, e.message)
            return

        if self.closed:
            return
        if not result.success:
            self._set_step(TrueMoneyStep.OTP_ENTRY, result.message or "OTP confirmation failed")
            return
        self._succeed(result.transaction_id)
