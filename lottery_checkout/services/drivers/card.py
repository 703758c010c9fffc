"""Card payment driver: synchronous charge with optional saved cards"""

import logging
from enum import Enum
from typing import Any, Optional

from ...core.errors import GatewayError, ValidationError
from ...database.cards import SavedCardDatabase, card_db
from ...models.payment import CardDetails, PaymentMethod, SessionState, TransactionResult
from ..card_rules import detect_brand, validate_card_form
from .base import PaymentDriver, require_text

logger = logging.getLogger(__name__)


class CardStep(str, Enum):
    LOADING = "LOADING"
    FORM = "FORM"
    CONFIRMING = "CONFIRMING"
    FAILED = "FAILED"
    SUCCEEDED = "SUCCEEDED"
    CANCELLED = "CANCELLED"


CARD_FIELDS = ("number", "expiry_month", "expiry_year", "cvv", "cardholder_name")


class CardDriver(PaymentDriver):
    """Card form, saved cards and a single charge call per pay action"""

    method = PaymentMethod.CARD

    initial_step = CardStep.LOADING
    succeeded_step = CardStep.SUCCEEDED
    cancelled_step = CardStep.CANCELLED
    step_states = {
        CardStep.LOADING: SessionState.INITIALIZING,
        CardStep.FORM: SessionState.AWAITING_ACTION,
        CardStep.CONFIRMING: SessionState.CONFIRMING,
        CardStep.FAILED: SessionState.FAILED,
        CardStep.SUCCEEDED: SessionState.SUCCEEDED,
        CardStep.CANCELLED: SessionState.CANCELLED,
    }
    step_actions = {
        CardStep.FORM: ("pay", "pay_saved", "delete_card"),
        CardStep.FAILED: ("pay", "pay_saved", "delete_card"),
    }
    proceed = {CardStep.FORM: "pay", CardStep.FAILED: "pay"}
    busy_steps = frozenset({CardStep.CONFIRMING})

    def __init__(self, *args, cards: Optional[SavedCardDatabase] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.cards = cards or card_db
        self.profile_id = self.config.card_profile_id

    async def _start(self) -> None:
        self._set_step(CardStep.FORM)

    def details(self) -> dict[str, Any]:
        return {
            "saved_cards": [card.model_dump(mode="json") for card in self.cards.list_cards(self.profile_id)],
        }

    async def _action_pay(self, data: dict[str, Any]) -> None:
        card = CardDetails(**{field: str(data.get(field) or "") for field in CARD_FIELDS})
        errors = validate_card_form(card)
        if errors:
            raise ValidationError("Please check your card details", fields=errors)

        self._set_step(CardStep.CONFIRMING)
        result = await self._charge(self.gateway.charge_card(self.order, card))
        if result is None:
            return

        if data.get("save_card"):
            self.cards.save_card(
                brand=detect_brand(card.digits),
                last4=card.digits[-4:],
                expiry_month=card.expiry_month.strip(),
                expiry_year=card.expiry_year.strip(),
                cardholder_name=card.cardholder_name.strip(),
                profile_id=self.profile_id,
            )
        self._succeed(result.transaction_id)

    async def _action_pay_saved(self, data: dict[str, Any]) -> None:
        card_id = require_text(data, "card_id", "Saved card")
        saved = self.cards.get_card(card_id, self.profile_id)
        if saved is None:
            raise ValidationError("Saved card not found", fields={"card_id": card_id})

        self._set_step(CardStep.CONFIRMING)
        result = await self._charge(self.gateway.charge_saved_card(self.order, saved))
        if result is None:
            return
        self._succeed(result.transaction_id)

    async def _action_delete_card(self, data: dict[str, Any]) -> None:
        card_id = require_text(data, "card_id", "Saved card")
        if not self.cards.delete_card(card_id, self.profile_id):
            raise ValidationError("Saved card not found", fields={"card_id": card_id})
        logger.info(f"Deleted saved card {card_id}")

    async def _charge(self, charge) -> Optional[TransactionResult]:
        """Await a charge; returns the result only when it succeeded and the session is still open"""
        try:
            result = await charge
        except GatewayError as e:
            logger.warning(f"Card charge failed for order {self.order.order_id}: {e.message}")
            if not self.closed:
                self._set_step(CardStep.FAILED, e.message)
            return None

        if self.closed:
            return None

        if not result.success:
            self._set_step(CardStep.FAILED, result.message or "Payment failed")
            return None
        return result
