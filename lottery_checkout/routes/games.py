"""Game catalog API routes"""

from fastapi import APIRouter, HTTPException

from ..models.game import Game
from ..database.games import game_db

router = APIRouter(prefix="/api/games", tags=["Games"])


@router.get("", response_model=list[Game])
async def list_games():
    """List lottery games available for checkout"""
    return game_db.list_games()


@router.get("/{game_id}", response_model=Game)
async def get_game(game_id: str):
    """Get game details"""
    game = game_db.get_game(game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game
