"""
PRIZEREVEAL - Reveal Surface

Logical state of one scratch round: dimensions, mask, win threshold and the
Covered → Scratching → Revealed state machine. A Surface is owned by exactly
one ScratchCard and replaced whenever a new configuration arrives.

Coverage is re-estimated once per scratch call (one pointer sample), not per
erased pixel, so win detection is exact at every interaction step but not
in between.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np
from PIL import Image

from reveal_engine.mask import blank_cover, coverage, erase, rasterize_cover
from reveal_engine.pointer import StrokePoint

logger = logging.getLogger("prizereveal.surface")


class RevealState(str, Enum):
    COVERED    = "covered"
    SCRATCHING = "scratching"
    REVEALED   = "revealed"


@dataclass
class Surface:
    width: int
    height: int
    coverage_threshold: float = 50.0
    brush_radius: float = 20.0
    state: RevealState = RevealState.COVERED
    mask: Optional[np.ndarray] = field(default=None, repr=False)
    cover_rgb: Optional[np.ndarray] = field(default=None, repr=False)
    last_coverage: float = 0.0
    strokes: int = 0

    @property
    def ready(self) -> bool:
        """Cover has been applied and the mask may be used."""
        return self.mask is not None

    @property
    def revealed(self) -> bool:
        return self.state is RevealState.REVEALED

    def apply_cover(self, texture: Optional[np.ndarray] = None) -> None:
        """(Re-)cover the whole surface. `None` gives a blank opaque cover.

        Calling this again with the same texture restores a fully covered
        mask and restarts the round.
        """
        if texture is None:
            self.cover_rgb, self.mask = blank_cover(self.width, self.height)
        else:
            self.cover_rgb, self.mask = rasterize_cover(self.width, self.height, texture)
        self.state = RevealState.COVERED
        self.last_coverage = coverage(self.mask)
        self.strokes = 0

    def begin_stroke(self) -> bool:
        """Enter Scratching on the first stroke. True if the state changed."""
        if self.state is RevealState.COVERED:
            self.state = RevealState.SCRATCHING
            return True
        return False

    def scratch(self, point: StrokePoint) -> bool:
        """Erase at `point` and re-check the threshold.

        Returns True only on the call that moves the surface to Revealed.
        """
        if not self.ready:
            logger.debug("Scratch ignored: cover not applied yet")
            return False
        erase(self.mask, point, self.brush_radius)
        self.strokes += 1
        return self.check_win()

    def check_win(self) -> bool:
        """Sample coverage; transition to Revealed if the threshold is met."""
        if not self.ready:
            return False
        self.last_coverage = coverage(self.mask)
        logger.debug(f"Coverage {self.last_coverage:.2f}% (threshold {self.coverage_threshold}%)")
        if self.state is RevealState.REVEALED:
            return False
        if self.last_coverage >= self.coverage_threshold:
            self.state = RevealState.REVEALED
            return True
        return False

    def snapshot(self, prize_rgb: Optional[np.ndarray] = None) -> Image.Image:
        """Composite the remaining cover over the prize (white if none)."""
        if not self.ready:
            raise RuntimeError("Surface has no cover yet")
        if prize_rgb is None:
            prize_rgb = np.full((self.height, self.width, 3), 255, dtype=np.uint8)
        alpha = (self.mask.astype(np.float32) / 255.0)[..., None]
        out = self.cover_rgb.astype(np.float32) * alpha + prize_rgb.astype(np.float32) * (1 - alpha)
        return Image.fromarray(np.clip(out, 0, 255).astype(np.uint8), "RGB")

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "coverage_threshold": self.coverage_threshold,
            "brush_radius": self.brush_radius,
            "state": self.state.value,
            "revealed": self.revealed,
            "coverage": round(self.last_coverage, 4),
            "strokes": self.strokes,
        }
