"""
PRIZEREVEAL - Widget Configuration Schema

Config payloads every prize widget reads when its `config` attribute changes.
The embedding page serialises one of these models to JSON; the widget parses
it back with `parse_widget_config()` and keeps its previous state on failure.

Usage:
    from config.widget_schema import ScratchCardConfig, parse_widget_config
    cfg = parse_widget_config(ScratchCardConfig, '{"clear_percentage": 60}')
    json_str = cfg.model_dump_json(indent=2)
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Optional, Type, TypeVar
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config.settings import RevealConfig


class ConfigError(ValueError):
    """Configuration payload could not be decoded or failed validation."""


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class WidgetType(str, Enum):
    SCRATCH = "scratch"
    WHEEL   = "wheel"
    GUMBALL = "gumball"


# ═══════════════════════════════════════════════════════════════
# Scratch Card
# ═══════════════════════════════════════════════════════════════

class ScratchCardConfig(BaseModel):
    """Scratch card: cover image scratched away to reveal the prize."""
    pre_text: str = "Scratch here"      # Label shown while covered
    post_text: str = "You won!"         # Label after reveal, also the fallback prize content
    bg: str = ""                        # Prize image under the cover (optional)
    fg: str = ""                        # Cover texture; empty = RevealConfig.DEFAULT_COVER_URL
    clear_percentage: float = Field(
        default_factory=lambda: RevealConfig.DEFAULT_CLEAR_PERCENTAGE, ge=0, le=100,
    )


# ═══════════════════════════════════════════════════════════════
# Spin Wheel
# ═══════════════════════════════════════════════════════════════

class WheelOption(BaseModel):
    prize: str
    icon: str = ""


class SpinWheelConfig(BaseModel):
    """Prize wheel: winner fixed by the backend or picked by a random spin."""
    model_config = ConfigDict(populate_by_name=True)

    options: list[WheelOption] = Field(default_factory=list)
    winning_index: Optional[int] = Field(None, alias="winningIndex")
    prize_text: str = ""


# ═══════════════════════════════════════════════════════════════
# Gumball Machine
# ═══════════════════════════════════════════════════════════════

class GumballOption(BaseModel):
    color: str
    prize: str


DEFAULT_GUMBALL_OPTIONS = [
    {"color": "#ff6b6b", "prize": "Red Prize!"},
    {"color": "#4ecdc4", "prize": "Teal Prize!"},
    {"color": "#45b7d1", "prize": "Blue Prize!"},
    {"color": "#f9ca24", "prize": "Yellow Prize!"},
    {"color": "#9b59b6", "prize": "Purple Prize!"},
    {"color": "#e67e22", "prize": "Orange Prize!"},
]


class GumballConfig(BaseModel):
    """Gumball dispenser: the winning option's ball is the one dispensed."""
    model_config = ConfigDict(populate_by_name=True)

    options: list[GumballOption] = Field(
        default_factory=lambda: [GumballOption(**o) for o in DEFAULT_GUMBALL_OPTIONS]
    )
    winning_index: int = Field(0, alias="winningIndex")
    prize_text: str = ""


# ═══════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════

M = TypeVar("M", bound=BaseModel)


def parse_widget_config(model: Type[M], raw: str, base: Optional[M] = None) -> M:
    """Decode a JSON config payload into `model`.

    When `base` is given the payload is merged over it, so a partial payload
    only changes the keys it names. Raises ConfigError for undecodable JSON,
    a non-object payload, or a validation failure.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid JSON config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a JSON object, got {type(data).__name__}")

    if base is not None:
        data = {**base.model_dump(by_alias=True), **data}

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid {model.__name__}: {e.error_count()} error(s)\n{e}") from e
