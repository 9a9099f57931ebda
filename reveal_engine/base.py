"""
PRIZEREVEAL - Base Widget

Abstract base for the prize widgets. Handles the `config` attribute contract
shared by every widget: parse the JSON payload, reject and log anything
malformed without touching current state, otherwise hand the validated model
to `init()`. Completion is reported with a bubbling, composed
`game-completed` event.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Type

from pydantic import BaseModel

from config.widget_schema import ConfigError, parse_widget_config
from reveal_engine.events import GAME_COMPLETED, EventTarget, WidgetEvent

logger = logging.getLogger("prizereveal.widget")


class BaseWidget(EventTarget, ABC):
    """Abstract base for all prize widgets."""

    widget_type: str = "base"
    display_name: str = "Base Widget"
    config_model: Type[BaseModel] = BaseModel
    observed_attributes: tuple = ("config",)

    def __init__(self, parent: Optional[EventTarget] = None):
        super().__init__(parent)
        self.config = self.config_model()
        self.attributes: dict[str, str] = {}
        self.connected = False
        self.completions = 0

    # ── Attribute lifecycle ──

    def set_attribute(self, name: str, value: str) -> None:
        old = self.attributes.get(name)
        self.attributes[name] = value
        if name in self.observed_attributes:
            self.attribute_changed(name, old, value)

    def attribute_changed(self, name: str, old_value: Optional[str], new_value: str) -> bool:
        """Apply a changed `config` attribute. Returns False if it was rejected."""
        if name != "config" or old_value == new_value:
            return False
        try:
            parsed = self.parse_config(new_value)
        except ConfigError as e:
            logger.error(f"{self.display_name}: invalid config, keeping previous state: {e}")
            return False
        self.init(parsed)
        return True

    def parse_config(self, raw: str) -> BaseModel:
        return parse_widget_config(self.config_model, raw)

    def connect(self) -> None:
        """Widget attached to a document."""
        self.connected = True

    @abstractmethod
    def init(self, config: BaseModel) -> None:
        """Start a new round from a validated config."""
        ...

    # ── Completion ──

    def complete(self, detail: dict) -> WidgetEvent:
        self.completions += 1
        event = WidgetEvent(GAME_COMPLETED, detail=detail, bubbles=True, composed=True)
        logger.info(f"{self.display_name} completed: {detail}")
        self.dispatch_event(event)
        return event

    def get_metadata(self) -> dict:
        """Widget type metadata for the CLI and reports."""
        return {
            "widget_type": self.widget_type,
            "display_name": self.display_name,
            "config_schema": self.config_model.model_json_schema(),
        }
