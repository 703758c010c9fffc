# API Routes

from .games import router as games_router
from .checkout import router as checkout_router
from .payments import router as payments_router
from .cards import router as cards_router
from .tickets import router as tickets_router
from .sandbox import router as sandbox_router

__all__ = [
    "games_router",
    "checkout_router",
    "payments_router",
    "cards_router",
    "tickets_router",
    "sandbox_router",
]
