"""Payment models for lottery checkout"""

from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PaymentMethod(str, Enum):
    CARD = "CARD"
    PROMPTPAY = "PROMPTPAY"
    TRUEMONEY = "TRUEMONEY"
    BANK = "BANK"
    WISE = "WISE"
    ALIPAY = "ALIPAY"
    WECHAT = "WECHAT"
    OMISE = "OMISE"


class Capability(str, Enum):
    """What a payment method needs to reach completion"""
    SYNC_CHARGE = "sync_charge"
    QR_POLL = "qr_poll"
    OTP_CHALLENGE = "otp_challenge"
    MANUAL_PROOF = "manual_proof"
    MANUAL_REFERENCE = "manual_reference"
    DISPATCH = "dispatch"


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    AWAITING_ACTION = "awaiting_action"
    POLLING = "polling"
    EXPIRED = "expired"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SessionState.SUCCEEDED, SessionState.CANCELLED})


class PollStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class OmiseSubMethod(str, Enum):
    PROMPTPAY = "promptpay"
    TRUEMONEY = "truemoney"
    INTERNET_BANKING = "internet_banking"
    CREDIT_CARD = "credit_card"


class CardBrand(str, Enum):
    VISA = "VISA"
    MASTERCARD = "MASTERCARD"
    AMEX = "AMEX"


class TransactionResult(BaseModel):
    """Outcome of a gateway charge"""
    success: bool
    transaction_id: Optional[str] = None
    message: Optional[str] = None


class CardDetails(BaseModel):
    """Raw card form fields. Never persisted."""
    number: str
    expiry_month: str
    expiry_year: str
    cvv: str
    cardholder_name: str

    @property
    def digits(self) -> str:
        return "".join(ch for ch in self.number if ch.isdigit())


class SavedCard(BaseModel):
    """Card kept for later orders, without the full number"""
    id: str
    brand: CardBrand
    last4: str = Field(min_length=4, max_length=4)
    expiry_month: str
    expiry_year: str
    cardholder_name: str
    is_default: bool = False
    created_at: datetime


class QRPayload(BaseModel):
    """Generated QR instruction for a push payment"""
    qr_image_ref: str
    qr_data: str
    amount_usd: Decimal
    settlement_amount: Decimal
    currency: str
    reference: str
    expires_at: datetime


class BankDetails(BaseModel):
    """Settlement account for a manual bank transfer"""
    bank_name: str
    account_number: str
    account_name: str
    amount_usd: Decimal
    settlement_amount: Decimal
    currency: str = "THB"
    reference: str


class WiseTransferDetails(BaseModel):
    """Recipient details for a Wise transfer"""
    recipient_name: str
    recipient_email: str
    account_number: str
    routing_number: str
    bank_name: str
    swift: str
    amount_usd: Decimal
    currency: str = "USD"
    reference: str
    expires_at: datetime


class OtpChallenge(BaseModel):
    """OTP sent to a wallet phone number"""
    challenge_id: str
    phone_number: str
    expires_at: datetime


class SlipVerdict(BaseModel):
    """Result of checking an uploaded transfer slip"""
    accepted: bool
    message: Optional[str] = None


class SessionSnapshot(BaseModel):
    """What the payment screen renders for the active session"""
    method: PaymentMethod
    order_id: str
    state: SessionState
    step: str
    message: Optional[str] = None
    amount_usd: Decimal
    settlement_amount: Optional[Decimal] = None
    settlement_currency: Optional[str] = None
    countdown_remaining: Optional[int] = None
    reference: Optional[str] = None
    proceed_action: Optional[str] = None
    cancel_action: Optional[str] = "cancel"
    actions: list[str] = []
    transaction_id: Optional[str] = None
    details: dict[str, Any] = {}


class SelectMethodRequest(BaseModel):
    method: PaymentMethod


class SessionActionRequest(BaseModel):
    """User action on the active payment session"""
    data: dict[str, Any] = {}


class PaymentMethodInfo(BaseModel):
    method: PaymentMethod
    name: str
    capability: Capability
    settlement_currency: str
