"""Spin Wheel - backend-fixed or random winner, resolved from the final angle."""

import logging
import math
import random
from typing import Optional

from config.widget_schema import SpinWheelConfig
from reveal_engine.base import BaseWidget
from reveal_engine.events import EventTarget

logger = logging.getLogger("prizereveal.wheel")

MIN_RANDOM_DEGREES = 1800
MAX_RANDOM_DEGREES = 5760


class SpinWheel(BaseWidget):
    widget_type = "wheel"
    display_name = "Spin Wheel"
    config_model = SpinWheelConfig

    def __init__(self, parent: Optional[EventTarget] = None, rng: Optional[random.Random] = None):
        super().__init__(parent)
        self.rng = rng or random.Random()
        self._reset()

    def _reset(self) -> None:
        self.rotation = 0.0
        self.spinning = False
        self.finished = False
        self.result: Optional[dict] = None
        self.prize_display = ""

    def init(self, config: SpinWheelConfig) -> None:
        idx = config.winning_index
        if idx is not None and not 0 <= idx < len(config.options):
            logger.warning(f"winningIndex {idx} out of range for {len(config.options)} options; spinning randomly")
            config = config.model_copy(update={"winning_index": None})
            idx = None
        if not config.prize_text and idx is not None:
            config = config.model_copy(update={"prize_text": config.options[idx].prize})
        self.config = config
        self._reset()

    @property
    def option_angle(self) -> float:
        return 360 / len(self.config.options) if self.config.options else 0.0

    def spin(self) -> Optional[float]:
        """Start a spin and return the target rotation in degrees.

        None if the wheel is empty or has already been spun this round.
        """
        if not self.config.options or self.spinning or self.finished:
            return None
        if self.config.winning_index is not None:
            target_angle = self.config.winning_index * self.option_angle + self.option_angle / 2
            full_rotations = self.rng.randint(5, 7)
            self.rotation = full_rotations * 360 + (360 - target_angle)
        else:
            self.rotation = float(self.rng.randint(MIN_RANDOM_DEGREES, MAX_RANDOM_DEGREES))
        self.spinning = True
        return self.rotation

    @staticmethod
    def index_for_rotation(rotation: float, n_options: int) -> int:
        """Option under the top pointer after a clockwise turn of `rotation` degrees.

        Option i spans [i*a, (i+1)*a) clockwise from the top, a = 360/n.
        """
        option_angle = 360 / n_options
        under_pointer = 360 - rotation % 360
        return math.floor(under_pointer / option_angle) % n_options

    def finish_spin(self) -> Optional[dict]:
        """Resolve the landed option once the spin animation ends."""
        if not self.spinning:
            return None
        if self.config.winning_index is not None:
            index = self.config.winning_index
        else:
            index = self.index_for_rotation(self.rotation, len(self.config.options))
        prize = self.config.options[index].prize

        self.prize_display = self.config.prize_text or prize
        self.spinning = False
        self.finished = True
        self.result = {"prize": prize, "index": index}
        self.complete(dict(self.result))
        return self.result
