"""
PRIZEREVEAL - Widget Events

Minimal DOM-style event target. Widgets dispatch `game-completed` on
themselves; bubbling events continue to the parent target (the embedding
document), so a page can listen in one place for every widget it hosts.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger("prizereveal.events")

GAME_COMPLETED = "game-completed"


@dataclass
class WidgetEvent:
    """A dispatched event. `composed` marks events that cross shadow roots."""
    type: str
    detail: dict = field(default_factory=dict)
    bubbles: bool = False
    composed: bool = False
    target: object = None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "detail": dict(self.detail),
            "bubbles": self.bubbles,
            "composed": self.composed,
        }


class EventTarget:
    """Listener registry with optional parent for bubbling."""

    def __init__(self, parent: Optional["EventTarget"] = None):
        self.parent = parent
        self._listeners: dict[str, list[Callable]] = {}

    def add_event_listener(self, event_type: str, listener: Callable) -> None:
        handlers = self._listeners.setdefault(event_type, [])
        if listener not in handlers:
            handlers.append(listener)

    def remove_event_listener(self, event_type: str, listener: Callable) -> None:
        handlers = self._listeners.get(event_type, [])
        if listener in handlers:
            handlers.remove(listener)

    def dispatch_event(self, event: WidgetEvent) -> None:
        if event.target is None:
            event.target = self
        node = self
        while node is not None:
            for listener in list(node._listeners.get(event.type, [])):
                try:
                    listener(event)
                except Exception:
                    # Reported, not raised: remaining listeners and parents still run
                    logger.exception(f"Listener {listener!r} failed on {event.type}")
            if not event.bubbles:
                break
            node = node.parent
        logger.debug(f"Dispatched {event.type} from {type(event.target).__name__}: {event.detail}")
