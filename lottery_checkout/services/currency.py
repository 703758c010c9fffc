"""Fixed-rate currency conversion from USD to settlement currencies"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from ..core.config import settings
from ..core.errors import UnsupportedCurrencyError, ValidationError

CENT = Decimal("0.01")


class CurrencyConverter:
    """Converts USD prices into THB or CNY using a fixed rate table"""

    def __init__(self, rates: Optional[dict[str, Decimal]] = None):
        if rates is None:
            rates = {
                "THB": settings.usd_to_thb_rate,
                "CNY": settings.usd_to_cny_rate,
            }
        self.rates = {"USD": Decimal("1"), **{k.upper(): Decimal(v) for k, v in rates.items()}}

    def convert(self, amount_usd: Union[Decimal, int, str], currency: str) -> Decimal:
        """
        Convert a USD amount.

        Args:
            amount_usd: Positive amount in US dollars
            currency: Target currency code

        Returns:
            Amount in the target currency, rounded to cents
        """
        amount = Decimal(str(amount_usd))
        if amount <= 0:
            raise ValidationError("Amount must be positive", fields={"amount": str(amount_usd)})

        rate = self.rates.get(currency.upper())
        if rate is None:
            raise UnsupportedCurrencyError(currency)

        return (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)

    def to_thb(self, amount_usd: Union[Decimal, int, str]) -> Decimal:
        return self.convert(amount_usd, "THB")


# Singleton instance
converter = CurrencyConverter()
