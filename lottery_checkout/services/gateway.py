"""
Payment Gateway

The collaborator every payment driver talks to. `PaymentGateway` is the
interface; `SimulatedGateway` is an in-process sandbox that behaves like
the real services closely enough to drive every session path.

Sandbox behaviour:
- Card 4000000000000002 is declined, 4000000000009995 has insufficient funds
- QR references complete after a configurable number of status checks
- OTP 000000 is always rejected
- Wise transaction ids must be at least 6 letters, digits or dashes
"""

import asyncio
import logging
import re
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from ..core.config import settings
from ..core.errors import GatewayError, NotFoundError
from ..models.order import Order
from ..models.payment import (
    BankDetails,
    CardDetails,
    OmiseSubMethod,
    OtpChallenge,
    PaymentMethod,
    PollStatus,
    QRPayload,
    SavedCard,
    SlipVerdict,
    TransactionResult,
    WiseTransferDetails,
)
from . import promptpay
from .card_rules import is_expired, luhn_valid
from .currency import CurrencyConverter, converter as default_converter

logger = logging.getLogger(__name__)

DECLINED_CARD = "4000000000000002"
INSUFFICIENT_FUNDS_CARD = "4000000000009995"
REJECTED_OTP = "000000"
WISE_ID_PATTERN = re.compile(r"^[A-Za-z0-9-]{6,}$")

# Reference prefix per QR method
QR_REFERENCE_PREFIX: dict[PaymentMethod, str] = {
    PaymentMethod.PROMPTPAY: "PP",
    PaymentMethod.ALIPAY: "ALIPAY",
    PaymentMethod.WECHAT: "WX",
    PaymentMethod.OMISE: "chrg_",
}


class PaymentGateway(ABC):
    """Operations the payment drivers need from the payment services"""

    @abstractmethod
    async def charge_card(self, order: Order, card: CardDetails) -> TransactionResult:
        """Charge a card entered in the form"""

    @abstractmethod
    async def charge_saved_card(self, order: Order, card: SavedCard) -> TransactionResult:
        """Charge a previously saved card"""

    @abstractmethod
    async def generate_qr(self, order: Order, method: PaymentMethod, currency: str) -> QRPayload:
        """Create a QR instruction and reference for a push payment"""

    @abstractmethod
    async def check_status(self, reference: str) -> PollStatus:
        """Status of a QR reference"""

    @abstractmethod
    async def void_reference(self, reference: str) -> None:
        """Invalidate a QR reference so it can never complete"""

    @abstractmethod
    async def request_otp(self, order: Order, phone_number: str) -> OtpChallenge:
        """Send an OTP to a wallet phone number"""

    @abstractmethod
    async def confirm_otp(self, order: Order, challenge_id: str, otp: str) -> TransactionResult:
        """Debit the wallet once the OTP is confirmed"""

    @abstractmethod
    async def get_bank_details(self, order: Order) -> BankDetails:
        """Settlement account and reference for a bank transfer"""

    @abstractmethod
    async def verify_bank_slip(self, reference: str, slip_sha256: str, size: int) -> SlipVerdict:
        """Review an uploaded transfer slip"""

    @abstractmethod
    async def get_wise_details(self, order: Order) -> WiseTransferDetails:
        """Recipient details and reference for a Wise transfer"""

    @abstractmethod
    async def confirm_wise(self, reference: str, external_id: str) -> TransactionResult:
        """Check that a Wise transfer arrived for a reference"""

    @abstractmethod
    async def charge_omise(self, order: Order, sub_method: OmiseSubMethod) -> TransactionResult:
        """Charge through the Omise gateway with a non-QR source"""

    async def close(self) -> None:
        """Release any held connections"""


class SimulatedGateway(PaymentGateway):
    """In-process sandbox gateway"""

    def __init__(
        self,
        latency: Optional[float] = None,
        polls_before_completion: Optional[int] = None,
        currency_converter: Optional[CurrencyConverter] = None,
        qr_window_seconds: Optional[int] = None,
        merchant_promptpay_id: Optional[str] = None,
    ):
        self.latency = settings.simulated_latency_seconds if latency is None else latency
        self.polls_before_completion = (
            settings.polls_before_completion if polls_before_completion is None else polls_before_completion
        )
        self.converter = currency_converter or default_converter
        self.qr_window_seconds = qr_window_seconds or settings.qr_window_seconds
        self.merchant_promptpay_id = merchant_promptpay_id or settings.promptpay_merchant_id

        self.references: dict[str, QRPayload] = {}
        self.status_checks: dict[str, int] = {}
        self.paid: set[str] = set()
        self.voided: set[str] = set()
        self.otp_challenges: dict[str, OtpChallenge] = {}
        self.charges: list[TransactionResult] = []

    async def _delay(self, factor: float = 1.0) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency * factor)

    @staticmethod
    def _new_id(length: int = 12) -> str:
        return uuid.uuid4().hex[:length]

    def _record(self, result: TransactionResult) -> TransactionResult:
        self.charges.append(result)
        return result

    # ==================== Cards ====================

    async def charge_card(self, order: Order, card: CardDetails) -> TransactionResult:
        await self._delay(4)
        number = card.digits

        if len(number) < 13 or len(number) > 19 or not luhn_valid(number):
            return TransactionResult(success=False, message="Invalid card number")

        if is_expired(card.expiry_month, card.expiry_year):
            return TransactionResult(success=False, message="Card has expired")

        if len(card.cvv) < 3:
            return TransactionResult(success=False, message="Invalid CVV")

        if number == DECLINED_CARD:
            return self._record(TransactionResult(success=False, message="Card declined, please use another card"))

        if number == INSUFFICIENT_FUNDS_CARD:
            return self._record(TransactionResult(success=False, message="Insufficient funds, please use another card"))

        logger.info(f"Card charge approved for order {order.order_id}: ${order.amount_usd}")
        return self._record(
            TransactionResult(success=True, transaction_id=f"txn_{self._new_id()}", message="Payment successful")
        )

    async def charge_saved_card(self, order: Order, card: SavedCard) -> TransactionResult:
        await self._delay(4)
        if is_expired(card.expiry_month, card.expiry_year):
            return TransactionResult(success=False, message="Saved card has expired")

        logger.info(f"Saved card {card.id} charged for order {order.order_id}: ${order.amount_usd}")
        return self._record(
            TransactionResult(success=True, transaction_id=f"txn_{self._new_id()}", message="Payment successful")
        )

    # ==================== QR push ====================

    async def generate_qr(self, order: Order, method: PaymentMethod, currency: str) -> QRPayload:
        await self._delay()
        prefix = QR_REFERENCE_PREFIX.get(method)
        if prefix is None:
            raise GatewayError(f"{method.value} does not support QR payments")

        reference = f"{prefix}{self._new_id(14).upper() if prefix != 'chrg_' else self._new_id(14)}"
        settlement = self.converter.convert(order.amount_usd, currency)

        if currency == "THB":
            qr_data = promptpay.build_payload(self.merchant_promptpay_id, settlement)
        elif method == PaymentMethod.ALIPAY:
            qr_data = f"https://qr.alipay.com/sandbox?amount={settlement}&ref={reference}"
        else:
            qr_data = f"wxp://f2f0{reference}"

        payload = QRPayload(
            qr_image_ref=promptpay.qr_image_url(qr_data),
            qr_data=qr_data,
            amount_usd=order.amount_usd,
            settlement_amount=settlement,
            currency=currency,
            reference=reference,
            expires_at=datetime.utcnow() + timedelta(seconds=self.qr_window_seconds),
        )
        self.references[reference] = payload
        self.status_checks[reference] = 0
        logger.info(f"Generated {method.value} QR {reference} for order {order.order_id}: {settlement} {currency}")
        return payload

    async def check_status(self, reference: str) -> PollStatus:
        await self._delay(2)
        if reference not in self.references:
            raise NotFoundError("Reference", reference)

        if reference in self.voided:
            return PollStatus.PENDING

        checks = self.status_checks.get(reference, 0)
        self.status_checks[reference] = checks + 1

        if reference in self.paid:
            return PollStatus.COMPLETED

        if self.polls_before_completion >= 0 and checks >= self.polls_before_completion:
            self.paid.add(reference)
            return PollStatus.COMPLETED

        return PollStatus.PENDING

    async def void_reference(self, reference: str) -> None:
        if reference in self.references:
            self.voided.add(reference)
            self.paid.discard(reference)
            logger.info(f"Voided QR reference {reference}")

    def mark_paid(self, reference: str) -> bool:
        """Sandbox hook: the payer scanned and paid"""
        if reference not in self.references or reference in self.voided:
            return False
        self.paid.add(reference)
        return True

    # ==================== Wallet OTP ====================

    async def request_otp(self, order: Order, phone_number: str) -> OtpChallenge:
        await self._delay(3)
        challenge = OtpChallenge(
            challenge_id=f"otp_{self._new_id()}",
            phone_number=phone_number,
            expires_at=datetime.utcnow() + timedelta(minutes=5),
        )
        self.otp_challenges[challenge.challenge_id] = challenge
        logger.info(f"OTP sent to {phone_number[:3]}****{phone_number[-3:]} for order {order.order_id}")
        return challenge

    async def confirm_otp(self, order: Order, challenge_id: str, otp: str) -> TransactionResult:
        await self._delay(4)
        challenge = self.otp_challenges.get(challenge_id)
        if challenge is None:
            return TransactionResult(success=False, message="OTP session not found, please request a new code")

        if datetime.utcnow() > challenge.expires_at:
            return TransactionResult(success=False, message="OTP has expired, please request a new code")

        if otp == REJECTED_OTP:
            return TransactionResult(success=False, message="Incorrect OTP")

        del self.otp_challenges[challenge_id]
        return self._record(
            TransactionResult(
                success=True,
                transaction_id=f"tm_{self._new_id()}",
                message="TrueMoney payment successful",
            )
        )

    # ==================== Manual transfers ====================

    async def get_bank_details(self, order: Order) -> BankDetails:
        await self._delay()
        return BankDetails(
            bank_name="Bangkok Bank",
            account_number="123-4-56789-0",
            account_name="Truvamate Co., Ltd.",
            amount_usd=order.amount_usd,
            settlement_amount=self.converter.to_thb(order.amount_usd),
            reference=f"TRV{str(uuid.uuid4().int)[-8:]}",
        )

    async def verify_bank_slip(self, reference: str, slip_sha256: str, size: int) -> SlipVerdict:
        await self._delay(3)
        if size < 1024:
            return SlipVerdict(accepted=False, message="Slip image is too small to read, please upload a clearer photo")
        return SlipVerdict(accepted=True, message="Transfer verified")

    async def get_wise_details(self, order: Order) -> WiseTransferDetails:
        await self._delay()
        return WiseTransferDetails(
            recipient_name="Truvamate International Ltd",
            recipient_email="payments@truvamate.com",
            account_number="8312456789",
            routing_number="026073150",
            bank_name="Community Federal Savings Bank",
            swift="CMFGUS33",
            amount_usd=order.amount_usd,
            reference=f"WISE-{str(uuid.uuid4().int)[-8:]}",
            expires_at=datetime.utcnow() + timedelta(hours=24),
        )

    async def confirm_wise(self, reference: str, external_id: str) -> TransactionResult:
        await self._delay(4)
        if not WISE_ID_PATTERN.match(external_id.strip()):
            return TransactionResult(success=False, message="Wise transaction ID was not found")
        return self._record(
            TransactionResult(
                success=True,
                transaction_id=f"wise_{self._new_id()}",
                message="Wise transfer confirmed",
            )
        )

    # ==================== Omise ====================

    async def charge_omise(self, order: Order, sub_method: OmiseSubMethod) -> TransactionResult:
        await self._delay(4)
        if sub_method == OmiseSubMethod.PROMPTPAY:
            raise GatewayError("PromptPay charges are created through generate_qr")
        charge_id = f"chrg_{self._new_id()}"
        logger.info(f"Omise {sub_method.value} charge {charge_id} for order {order.order_id}")
        return self._record(
            TransactionResult(
                success=True,
                transaction_id=charge_id,
                message=f"Paid with {sub_method.value}",
            )
        )
