"""Saved card storage for lottery checkout"""

import uuid
import logging
from datetime import datetime
from typing import Optional

from ..models.payment import CardBrand, SavedCard

logger = logging.getLogger(__name__)


class SavedCardDatabase:
    """
    In-memory saved card storage, one list per profile.

    Cards are only appended or deleted, never edited. Each write replaces
    the profile's list as a whole, so the last writer wins.
    """

    def __init__(self):
        self.cards: dict[str, list[SavedCard]] = {}

    def list_cards(self, profile_id: str = "default") -> list[SavedCard]:
        """Get saved cards for a profile"""
        return list(self.cards.get(profile_id, []))

    def get_card(self, card_id: str, profile_id: str = "default") -> Optional[SavedCard]:
        """Get a saved card by ID"""
        return next((c for c in self.list_cards(profile_id) if c.id == card_id), None)

    def find_card(
        self,
        last4: str,
        expiry_month: str,
        expiry_year: str,
        profile_id: str = "default",
    ) -> Optional[SavedCard]:
        """Find a card by its last4 + expiry key"""
        month = expiry_month.zfill(2)
        year = expiry_year.zfill(2)
        return next(
            (
                c for c in self.list_cards(profile_id)
                if c.last4 == last4 and c.expiry_month == month and c.expiry_year == year
            ),
            None,
        )

    def save_card(
        self,
        brand: CardBrand,
        last4: str,
        expiry_month: str,
        expiry_year: str,
        cardholder_name: str,
        profile_id: str = "default",
    ) -> SavedCard:
        """Save a card; an existing card with the same last4 + expiry is returned as is"""
        existing = self.find_card(last4, expiry_month, expiry_year, profile_id)
        if existing:
            return existing

        cards = self.list_cards(profile_id)
        card = SavedCard(
            id=f"card_{uuid.uuid4().hex[:12]}",
            brand=brand,
            last4=last4,
            expiry_month=expiry_month.zfill(2),
            expiry_year=expiry_year.zfill(2),
            cardholder_name=cardholder_name,
            is_default=not cards,
            created_at=datetime.utcnow(),
        )
        self.cards[profile_id] = cards + [card]
        logger.info(f"Saved {brand.value} card ending {last4} for profile {profile_id}")
        return card

    def delete_card(self, card_id: str, profile_id: str = "default") -> bool:
        """Delete a saved card"""
        cards = self.list_cards(profile_id)
        remaining = [c for c in cards if c.id != card_id]
        if len(remaining) == len(cards):
            return False
        self.cards[profile_id] = remaining
        return True


# Singleton instance
card_db = SavedCardDatabase()
