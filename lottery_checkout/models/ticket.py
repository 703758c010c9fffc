"""Ticket models for lottery checkout"""

from pydantic import BaseModel
from typing import Optional
from datetime import date
from decimal import Decimal
from enum import Enum

from .game import LotteryLine


class TicketStatus(str, Enum):
    PENDING = "PENDING"
    PURCHASED = "PURCHASED"
    SCANNED = "SCANNED"
    WIN = "WIN"
    LOSE = "LOSE"


class Ticket(BaseModel):
    """Order history entry created after a successful payment"""
    id: str
    game_id: str
    game_name: str
    status: TicketStatus = TicketStatus.PENDING
    lines: list[LotteryLine]
    total_amount: Decimal
    currency: str = "USD"
    purchase_date: date
    draw_date: Optional[str] = None
    payment_method: str
    transaction_id: str
