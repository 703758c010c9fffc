# Database modules

from .games import game_db, GameDatabase
from .cards import card_db, SavedCardDatabase
from .tickets import ticket_db, TicketDatabase, DuplicateTicketError

__all__ = [
    "game_db",
    "GameDatabase",
    "card_db",
    "SavedCardDatabase",
    "ticket_db",
    "TicketDatabase",
    "DuplicateTicketError",
]
