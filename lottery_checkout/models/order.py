"""Order models for lottery checkout"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .game import LotteryLine, TicketTier


class CheckoutView(str, Enum):
    NUMBER_SELECTION = "number_selection"
    METHOD_SELECTION = "method_selection"
    PAYMENT = "payment"
    SUCCESS = "success"


class Order(BaseModel):
    """One checkout attempt. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    order_id: str = Field(min_length=1)
    game_id: str
    game_name: str
    tier: TicketTier
    has_multiplier: bool = False
    lines: int = Field(gt=0)
    selected_lines: tuple[LotteryLine, ...]
    amount_usd: Decimal = Field(gt=0)
    created_at: datetime


class QuoteRequest(BaseModel):
    """Request to price a number selection"""
    game_id: str
    tier: TicketTier = TicketTier.STANDARD
    lines: list[LotteryLine]
    has_multiplier: bool = False


class Quote(BaseModel):
    """Price breakdown for a number selection"""
    tier: TicketTier
    complete_lines: int
    base_price: Decimal
    subtotal: Decimal
    multiplier_cost: Decimal
    total: Decimal
    currency: str = "USD"
    eligible: bool


class CreateOrderRequest(QuoteRequest):
    """Request to start checkout for a number selection"""


class CheckoutStatus(BaseModel):
    """Current orchestrator state"""
    view: CheckoutView
    order: Optional[Order] = None
    active_method: Optional[str] = None
