"""Static game catalog"""

from typing import Optional
from ..models.game import Game

# Catalog snapshot; live jackpot data comes from a separate service
GAMES: dict[str, Game] = {
    "powerball": Game(
        id="powerball",
        name="Powerball",
        jackpot="US$ 145 Million",
        next_draw="2 Days",
        main_range=69,
        power_range=26,
        multiplier_name="Power Play",
    ),
    "megamillions": Game(
        id="megamillions",
        name="Mega Millions",
        jackpot="US$ 210 Million",
        next_draw="3 Days",
        main_range=70,
        power_range=25,
        multiplier_name="Megaplier",
    ),
    "euromillions": Game(
        id="euromillions",
        name="EuroMillions",
        jackpot="€ 98 Million",
        next_draw="1 Day",
        main_range=50,
        power_range=12,
    ),
    "lotto-thai": Game(
        id="lotto-thai",
        name="Thai Government Lottery",
        jackpot="฿ 6 Million",
        next_draw="5 Days",
        main_range=49,
        power_range=10,
    ),
}


class GameDatabase:
    """In-memory game catalog"""

    def __init__(self):
        self.games = GAMES.copy()

    def get_game(self, game_id: str) -> Optional[Game]:
        """Get a game by ID"""
        return self.games.get(game_id)

    def list_games(self) -> list[Game]:
        """Get all games"""
        return list(self.games.values())


# Singleton instance
game_db = GameDatabase()
