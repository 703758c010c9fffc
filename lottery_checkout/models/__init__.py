# Lottery Checkout Models

from .game import Game, LotteryLine, TicketTier, complete_lines
from .order import Order, Quote, QuoteRequest, CreateOrderRequest, CheckoutView, CheckoutStatus
from .payment import (
    PaymentMethod,
    Capability,
    SessionState,
    PollStatus,
    OmiseSubMethod,
    CardBrand,
    TransactionResult,
    CardDetails,
    SavedCard,
    QRPayload,
    BankDetails,
    WiseTransferDetails,
    OtpChallenge,
    SlipVerdict,
    SessionSnapshot,
    SelectMethodRequest,
    SessionActionRequest,
    PaymentMethodInfo,
)
from .ticket import Ticket, TicketStatus

__all__ = [
    "Game",
    "LotteryLine",
    "TicketTier",
    "complete_lines",
    "Order",
    "Quote",
    "QuoteRequest",
    "CreateOrderRequest",
    "CheckoutView",
    "CheckoutStatus",
    "PaymentMethod",
    "Capability",
    "SessionState",
    "PollStatus",
    "OmiseSubMethod",
    "CardBrand",
    "TransactionResult",
    "CardDetails",
    "SavedCard",
    "QRPayload",
    "BankDetails",
    "WiseTransferDetails",
    "OtpChallenge",
    "SlipVerdict",
    "SessionSnapshot",
    "SelectMethodRequest",
    "SessionActionRequest",
    "PaymentMethodInfo",
    "Ticket",
    "TicketStatus",
]
