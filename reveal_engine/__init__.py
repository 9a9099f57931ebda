"""
PRIZEREVEAL - Prize Widgets

Self-contained prize presentation widgets. Each widget reads a JSON `config`
attribute and dispatches a single `game-completed` event when its round ends.

Usage:
    from reveal_engine import get_widget
    card = get_widget("scratch")
    card.connect()
    card.set_attribute("config", '{"clear_percentage": 50}')
"""

from reveal_engine.scratch import ScratchCard
from reveal_engine.wheel import SpinWheel
from reveal_engine.gumball import GumballMachine

WIDGETS = {
    "scratch": ScratchCard,
    "wheel": SpinWheel,
    "gumball": GumballMachine,
}

WIDGET_TYPES = list(WIDGETS.keys())


def get_widget(widget_type: str, **kwargs):
    """Create a widget instance by type name."""
    cls = WIDGETS.get(widget_type.lower())
    if cls is None:
        raise ValueError(f"Unknown widget type: {widget_type}. Available: {WIDGET_TYPES}")
    return cls(**kwargs)
