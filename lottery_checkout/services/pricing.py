"""Ticket price calculation"""

from decimal import Decimal

from ..models.game import LotteryLine, TicketTier, complete_lines
from ..models.order import Quote

TIER_PRICES: dict[TicketTier, Decimal] = {
    TicketTier.STANDARD: Decimal("5.00"),
    TicketTier.SYNDICATE: Decimal("15.00"),
    TicketTier.BUNDLE: Decimal("25.00"),
}

MULTIPLIER_PRICE = Decimal("1.00")


def quote(tier: TicketTier, lines: list[LotteryLine], has_multiplier: bool = False) -> Quote:
    """
    Price a number selection.

    Only complete lines are charged. The multiplier add-on costs a flat
    amount per complete line.
    """
    count = len(complete_lines(lines))
    base_price = TIER_PRICES[tier]
    subtotal = base_price * count
    multiplier_cost = MULTIPLIER_PRICE * count if has_multiplier else Decimal("0.00")

    return Quote(
        tier=tier,
        complete_lines=count,
        base_price=base_price,
        subtotal=subtotal.quantize(Decimal("0.01")),
        multiplier_cost=multiplier_cost.quantize(Decimal("0.01")),
        total=(subtotal + multiplier_cost).quantize(Decimal("0.01")),
        eligible=count > 0,
    )
