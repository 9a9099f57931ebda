"""Gumball Machine - a jar of decorative balls, one of which carries the prize."""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from config.settings import RevealConfig
from config.widget_schema import GumballConfig
from reveal_engine.base import BaseWidget
from reveal_engine.events import EventTarget, WidgetEvent

logger = logging.getLogger("prizereveal.gumball")

# Positions are percentages of the dome; 88 keeps a ball fully inside it
MAX_POSITION_PCT = 88
MAX_Z_INDEX = 50


@dataclass
class Gumball:
    color: str
    prize: str
    left: float
    top: float
    z_index: int
    is_winning: bool = False


def lighten_color(color: str, percent: float) -> str:
    """Add `percent`% of full brightness to each channel of a #rrggbb color."""
    num = int(color.lstrip("#"), 16)
    amt = round(2.55 * percent)
    channels = ((num >> 16) + amt, ((num >> 8) & 0xFF) + amt, (num & 0xFF) + amt)
    return "#" + "".join(f"{min(255, max(0, c)):02x}" for c in channels)


class GumballMachine(BaseWidget):
    widget_type = "gumball"
    display_name = "Gumball Machine"
    config_model = GumballConfig

    def __init__(self, parent: Optional[EventTarget] = None, rng: Optional[random.Random] = None):
        super().__init__(parent)
        self.rng = rng or random.Random()
        self.gumballs: list[Gumball] = []
        self.dispensing = False
        self.game_won = False
        self.dispensed: Optional[Gumball] = None
        self.prize_display = ""

    def init(self, config: GumballConfig) -> None:
        self.config = config
        self.dispensing = False
        self.game_won = False
        self.dispensed = None
        self.prize_display = ""
        self.gumballs = self._create_gumballs()

    @property
    def winning_option(self):
        idx = self.config.winning_index
        if 0 <= idx < len(self.config.options):
            return self.config.options[idx]
        return None

    def _create_gumballs(self) -> list[Gumball]:
        options = self.config.options
        if not options:
            return []

        balls = []
        for i in range(RevealConfig.GUMBALL_COUNT):
            option = options[i % len(options)]
            balls.append(Gumball(
                color=option.color,
                prize=option.prize,
                left=self.rng.random() * MAX_POSITION_PCT,
                top=self.rng.random() * MAX_POSITION_PCT,
                z_index=self.rng.randrange(MAX_Z_INDEX),
            ))

        winner = self.winning_option
        if winner is None:
            logger.warning(f"winningIndex {self.config.winning_index} out of range; no winning ball marked")
        elif balls:
            ball = balls[self.rng.randrange(len(balls))]
            ball.color = winner.color
            ball.prize = winner.prize
            ball.is_winning = True
        return balls

    def turn_crank(self) -> Optional[Gumball]:
        """Dispense the winning ball (or the first one if none is marked)."""
        if self.dispensing or self.game_won or not self.gumballs:
            return None
        self.dispensing = True
        self.dispensed = next((g for g in self.gumballs if g.is_winning), self.gumballs[0])
        return self.dispensed

    def pop(self) -> Optional[WidgetEvent]:
        """Open the dispensed ball and announce the prize."""
        if self.game_won or self.dispensed is None:
            return None
        option = self.winning_option or self.dispensed
        self.prize_display = self.config.prize_text or option.prize
        self.game_won = True
        self.dispensing = False
        return self.complete({"prize": self.prize_display, "color": option.color})
