"""Game and number-selection models"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

MAIN_NUMBER_COUNT = 5


class TicketTier(str, Enum):
    STANDARD = "Standard"
    SYNDICATE = "Syndicate"
    BUNDLE = "Bundle"


class Game(BaseModel):
    """International lottery game in the catalog"""
    id: str
    name: str
    jackpot: str
    next_draw: str
    main_range: int = Field(default=69, gt=0)
    power_range: int = Field(default=26, gt=0)
    multiplier_name: str = "Multiplier"

    class Config:
        from_attributes = True

    def line_problem(self, line: "LotteryLine") -> Optional[str]:
        """Why a picked line cannot be played in this game, or None if it can"""
        if len(set(line.main_numbers)) != len(line.main_numbers):
            return "Main numbers must all be different"
        if any(not 1 <= number <= self.main_range for number in line.main_numbers):
            return f"Main numbers must be between 1 and {self.main_range}"
        if line.power_number is not None and not 1 <= line.power_number <= self.power_range:
            return f"The extra number must be between 1 and {self.power_range}"
        return None


class LotteryLine(BaseModel):
    """One line of picked numbers"""
    id: str
    main_numbers: list[int] = []
    power_number: Optional[int] = None
    is_quick_pick: bool = False

    @property
    def is_complete(self) -> bool:
        """A line is playable once all main numbers and the power number are picked"""
        return len(self.main_numbers) == MAIN_NUMBER_COUNT and self.power_number is not None


def complete_lines(lines: list[LotteryLine]) -> list[LotteryLine]:
    """Lines with a full number selection, in the order given"""
    return [line for line in lines if line.is_complete]
