"""Saved card API routes"""

from fastapi import APIRouter, HTTPException

from ..core.config import settings
from ..database.cards import card_db
from ..models.payment import SavedCard

router = APIRouter(prefix="/api/cards", tags=["Cards"])


@router.get("", response_model=list[SavedCard])
async def list_cards():
    """List saved cards for the current profile"""
    return card_db.list_cards(settings.card_profile_id)


@router.delete("/{card_id}")
async def delete_card(card_id: str):
    """Delete a saved card"""
    if not card_db.delete_card(card_id, settings.card_profile_id):
        raise HTTPException(status_code=404, detail="Card not found")
    return {"deleted": card_id}
