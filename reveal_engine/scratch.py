"""
PRIZEREVEAL - Scratch Card

Scratch-to-reveal controller. Owns one Surface per round and routes pointer
input through map_pointer → Surface.scratch, firing `game-completed` with
{"result": "won"} exactly once, on the stroke that crosses the configured
clear_percentage.

    card = ScratchCard(parent=document)
    card.connect(BoundingBox(0, 0, 250, 250))
    card.set_attribute("config", '{"clear_percentage": 60}')
    card.handle_event(PointerEvent.mouse("mousedown", 120, 90))
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from config.settings import RevealConfig
from config.widget_schema import ScratchCardConfig, parse_widget_config
from reveal_engine.base import BaseWidget
from reveal_engine.errors import TextureLoadError
from reveal_engine.events import EventTarget
from reveal_engine.mask import rasterize_cover
from reveal_engine.pointer import BoundingBox, PointerEvent, StrokePoint, map_pointer
from reveal_engine.surface import RevealState, Surface
from reveal_engine.texture import load_texture

logger = logging.getLogger("prizereveal.scratch")

DOWN_EVENTS = ("mousedown", "touchstart")
MOVE_EVENTS = ("mousemove", "touchmove")
UP_EVENTS = ("mouseup", "touchend", "touchcancel")


@dataclass
class CardView:
    """What the card currently shows."""
    pre_text: str = ""
    post_text: str = ""
    code_image: str = ""        # prize image under the cover
    code_text: str = ""         # shown instead of the image when there is no bg
    revealed_label: bool = False
    cover_visible: bool = True

    @property
    def label(self) -> str:
        return self.post_text if self.revealed_label else self.pre_text


class ScratchCard(BaseWidget):
    widget_type = "scratch"
    display_name = "Scratch Card"
    config_model = ScratchCardConfig

    def __init__(self, parent: Optional[EventTarget] = None,
                 texture_loader: Callable[[str], np.ndarray] = load_texture):
        super().__init__(parent)
        self.texture_loader = texture_loader
        self.box = BoundingBox()
        self.view = CardView()
        self.surface: Optional[Surface] = None
        self.scratching = False
        self.rendered = False
        self.cover_fallback = False

    # ── Lifecycle ──

    def parse_config(self, raw: str) -> ScratchCardConfig:
        # Payloads are merged over the current config
        return parse_widget_config(ScratchCardConfig, raw, base=self.config)

    def connect(self, box: Optional[BoundingBox] = None) -> None:
        super().connect()
        if box is not None:
            self.box = box
        if not self.rendered:
            self.rendered = True
            self._setup_round(self.config)

    def init(self, config: ScratchCardConfig) -> None:
        # Before the first connect() the round is set up on attach
        if self.rendered:
            self._setup_round(config)
        else:
            self.config = config

    def restart(self) -> None:
        """Re-cover the card with the current config."""
        if self.rendered:
            self._setup_round(self.config)

    def _ensure_canvas(self) -> tuple[int, int]:
        """Canvas size from the rendered box, falling back to the default size."""
        width = int(self.box.width) or RevealConfig.DEFAULT_SURFACE_SIZE
        height = int(self.box.height) or RevealConfig.DEFAULT_SURFACE_SIZE
        return width, height

    def _setup_round(self, cfg: ScratchCardConfig) -> None:
        """Build a fresh surface for `cfg`. Card state is only replaced once it is ready."""
        view = CardView(
            pre_text=cfg.pre_text,
            post_text=cfg.post_text,
            code_image=cfg.bg,
            code_text="" if cfg.bg else cfg.post_text,
        )

        width, height = self._ensure_canvas()
        surface = Surface(
            width=width,
            height=height,
            coverage_threshold=cfg.clear_percentage,
            brush_radius=RevealConfig.BRUSH_RADIUS,
        )

        ref = cfg.fg or RevealConfig.DEFAULT_COVER_URL
        try:
            texture = self.texture_loader(ref)
            fallback = False
        except TextureLoadError as e:
            logger.warning(f"Cover texture unavailable, using blank cover: {e}")
            texture = None
            fallback = True
        surface.apply_cover(texture)

        self.config = cfg
        self.view = view
        self.surface = surface
        self.cover_fallback = fallback
        self.scratching = False
        logger.info(f"Scratch round ready: {width}x{height}, clear at {cfg.clear_percentage}%")

    # ── Pointer input ──

    def handle_event(self, event: PointerEvent) -> None:
        if event.type in DOWN_EVENTS:
            self.pointer_down(event)
        elif event.type in MOVE_EVENTS:
            self.pointer_move(event)
        elif event.type in UP_EVENTS:
            self.pointer_up()

    def pointer_down(self, event: PointerEvent) -> None:
        if self.surface is None or not self.surface.ready:
            return
        point = map_pointer(event, self.box)
        if point is None:
            return
        if not (0 <= point.x < self.surface.width and 0 <= point.y < self.surface.height):
            return
        self.scratching = True
        if self.surface.begin_stroke():
            logger.debug("Scratching started")
        self._scratch(point)

    def pointer_move(self, event: PointerEvent) -> None:
        if not self.scratching or self.surface is None:
            return
        event.prevent_default()
        point = map_pointer(event, self.box)
        if point is not None:
            self._scratch(point)

    def pointer_up(self) -> None:
        self.scratching = False

    def _scratch(self, point: StrokePoint) -> None:
        if self.surface.scratch(point):
            self._trigger_win()

    def _trigger_win(self) -> None:
        self.view.cover_visible = False
        self.view.revealed_label = True
        self.complete({"result": "won"})

    # ── State ──

    @property
    def state(self) -> Optional[RevealState]:
        return self.surface.state if self.surface else None

    @property
    def has_won(self) -> bool:
        return bool(self.surface and self.surface.revealed)

    @property
    def coverage(self) -> float:
        return self.surface.last_coverage if self.surface else 0.0

    def snapshot(self):
        """Current card as a Pillow image (prize under the remaining cover)."""
        if self.surface is None:
            raise RuntimeError("Scratch card has not been set up yet")
        prize = None
        if self.config.bg:
            try:
                prize, _ = rasterize_cover(self.surface.width, self.surface.height,
                                           self.texture_loader(self.config.bg))
            except TextureLoadError as e:
                logger.warning(f"Prize image unavailable for snapshot: {e}")
        return self.surface.snapshot(prize)
