"""Card form validation and card number helpers"""

import re
from datetime import date
from typing import Optional

from ..models.payment import CardBrand, CardDetails

CVV_PATTERN = re.compile(r"^\d{3,4}$")


def validate_card_form(card: CardDetails, today: Optional[date] = None) -> dict[str, str]:
    """
    Check card form fields before a charge is attempted.

    Returns:
        Mapping of field name to error message; empty when the form is valid
    """
    today = today or date.today()
    errors: dict[str, str] = {}

    digits = card.digits
    if not digits or len(digits) < 13 or len(digits) > 19 or re.search(r"[^\d\s]", card.number):
        errors["number"] = "Card number must be 13 to 19 digits"

    month = _parse_int(card.expiry_month)
    if month is None or month < 1 or month > 12:
        errors["expiry_month"] = "Expiry month must be between 01 and 12"

    year = _parse_int(card.expiry_year)
    current_year = today.year % 100
    if year is None or year < current_year or year > current_year + 20:
        errors["expiry_year"] = "Expiry year is out of range"

    if not CVV_PATTERN.match(card.cvv or ""):
        errors["cvv"] = "CVV must be 3 or 4 digits"

    if not card.cardholder_name.strip():
        errors["cardholder_name"] = "Cardholder name is required"

    return errors


def luhn_valid(number: str) -> bool:
    """Luhn checksum over a digit string"""
    if not number.isdigit():
        return False

    total = 0
    for i, ch in enumerate(reversed(number)):
        digit = int(ch)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def detect_brand(number: str) -> CardBrand:
    """Card network from the number prefix"""
    if number.startswith("4"):
        return CardBrand.VISA
    if re.match(r"^5[1-5]", number) or re.match(r"^2[2-7]", number):
        return CardBrand.MASTERCARD
    if re.match(r"^3[47]", number):
        return CardBrand.AMEX
    return CardBrand.VISA


def is_expired(expiry_month: str, expiry_year: str, today: Optional[date] = None) -> bool:
    """True once the card's expiry month has passed"""
    today = today or date.today()
    month = _parse_int(expiry_month)
    year = _parse_int(expiry_year)
    if month is None or year is None:
        return True
    return (2000 + year, month) < (today.year, today.month)


def _parse_int(value: str) -> Optional[int]:
    value = (value or "").strip()
    if not value.isdigit():
        return None
    return int(value)
