#!/usr/bin/env python3
"""
Tests for the Spin Wheel and Gumball Machine widgets

Validates:
1.  Widget registry lookup
2.  Fixed-winner spins land on the winning segment
3.  Random spins resolve the segment under the pointer
4.  Wheel prize_text defaults and out-of-range winners
5.  Gumball jar composition and the single winning ball
6.  Crank/pop sequencing and the single completion event
7.  lighten_color channel clamping
"""

import json
import random
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from reveal_engine import WIDGET_TYPES, get_widget
from reveal_engine.events import GAME_COMPLETED, EventTarget
from reveal_engine.gumball import GumballMachine, lighten_color
from reveal_engine.wheel import MAX_RANDOM_DEGREES, MIN_RANDOM_DEGREES, SpinWheel

WHEEL_OPTIONS = [{"prize": p} for p in ["10 pts", "Mug", "T-shirt", "Nothing"]]


def _attached(widget_cls, config, seed=3):
    document = EventTarget()
    events = []
    document.add_event_listener(GAME_COMPLETED, events.append)
    widget = widget_cls(parent=document, rng=random.Random(seed))
    widget.connect()
    widget.set_attribute("config", json.dumps(config))
    return widget, events


# ============================================================
# Registry
# ============================================================

def test_registry():
    assert WIDGET_TYPES == ["scratch", "wheel", "gumball"]
    assert isinstance(get_widget("WHEEL"), SpinWheel)
    assert isinstance(get_widget("gumball"), GumballMachine)
    with pytest.raises(ValueError):
        get_widget("slot")
    print("✅ Widget registry resolves all 3 types")


def test_metadata_has_schema():
    meta = get_widget("wheel").get_metadata()
    assert meta["widget_type"] == "wheel"
    assert "options" in meta["config_schema"]["properties"]
    print("✅ Widget metadata exposes the config schema")


# ============================================================
# Spin Wheel
# ============================================================

def test_index_for_rotation():
    assert SpinWheel.index_for_rotation(0, 4) == 0
    assert SpinWheel.index_for_rotation(10, 4) == 3
    assert SpinWheel.index_for_rotation(315, 4) == 0
    assert SpinWheel.index_for_rotation(3 * 360 + 180, 4) == 2
    print("✅ Rotation → segment index")


@pytest.mark.parametrize("winner", range(4))
def test_fixed_winner_lands_on_segment(winner):
    wheel, events = _attached(SpinWheel, {"options": WHEEL_OPTIONS, "winningIndex": winner})
    rotation = wheel.spin()
    assert 5 * 360 <= rotation < 8 * 360
    assert SpinWheel.index_for_rotation(rotation, 4) == winner

    result = wheel.finish_spin()
    assert result == {"prize": WHEEL_OPTIONS[winner]["prize"], "index": winner}
    assert wheel.prize_display == WHEEL_OPTIONS[winner]["prize"]
    assert [e.detail for e in events] == [result]
    assert events[0].bubbles and events[0].composed


def test_random_spin_resolves_from_angle():
    wheel, events = _attached(SpinWheel, {"options": WHEEL_OPTIONS}, seed=11)
    rotation = wheel.spin()
    assert MIN_RANDOM_DEGREES <= rotation <= MAX_RANDOM_DEGREES
    result = wheel.finish_spin()
    assert result["index"] == SpinWheel.index_for_rotation(rotation, 4)
    assert result["prize"] == WHEEL_OPTIONS[result["index"]]["prize"]
    assert len(events) == 1
    print(f"✅ Random spin {rotation:.0f}° → #{result['index']}")


def test_wheel_spins_once_per_round():
    wheel, events = _attached(SpinWheel, {"options": WHEEL_OPTIONS, "winningIndex": 1})
    assert wheel.finish_spin() is None          # nothing spinning yet
    assert wheel.spin() is not None
    assert wheel.spin() is None                 # already spinning
    wheel.finish_spin()
    assert wheel.spin() is None                 # finished
    assert wheel.finish_spin() is None
    assert len(events) == 1

    wheel.set_attribute("config", json.dumps({"options": WHEEL_OPTIONS, "winningIndex": 2}))
    assert wheel.spin() is not None
    print("✅ One spin per config")


def test_wheel_prize_text():
    wheel, _ = _attached(SpinWheel, {"options": WHEEL_OPTIONS, "winningIndex": 2})
    assert wheel.config.prize_text == "T-shirt"

    wheel, _ = _attached(SpinWheel, {"options": WHEEL_OPTIONS, "winningIndex": 2, "prize_text": "Big win"})
    wheel.spin()
    result = wheel.finish_spin()
    assert result["prize"] == "T-shirt"
    assert wheel.prize_display == "Big win"
    print("✅ prize_text defaults to the winning option and overrides the display")


def test_wheel_out_of_range_winner_spins_randomly():
    wheel, _ = _attached(SpinWheel, {"options": WHEEL_OPTIONS, "winningIndex": 9})
    assert wheel.config.winning_index is None
    rotation = wheel.spin()
    assert MIN_RANDOM_DEGREES <= rotation <= MAX_RANDOM_DEGREES
    print("✅ Out-of-range winningIndex falls back to a random spin")


def test_empty_wheel_and_bad_config():
    wheel, events = _attached(SpinWheel, {"options": []})
    assert wheel.spin() is None
    wheel.set_attribute("config", json.dumps({"options": WHEEL_OPTIONS}))
    wheel.set_attribute("config", "{{broken")
    assert len(wheel.config.options) == 4
    assert events == []
    print("✅ Empty wheel is inert; bad config keeps previous options")


# ============================================================
# Gumball Machine
# ============================================================

def test_gumball_jar():
    machine, _ = _attached(GumballMachine, {})
    assert len(machine.gumballs) == 120
    winners = [g for g in machine.gumballs if g.is_winning]
    assert len(winners) == 1
    assert winners[0].color == "#ff6b6b"
    assert all(0 <= g.left < 88 and 0 <= g.top < 88 for g in machine.gumballs)
    assert all(0 <= g.z_index < 50 for g in machine.gumballs)
    # Colors cycle through the options
    assert machine.gumballs[1].color == "#4ecdc4" or machine.gumballs[1].is_winning
    print("✅ 120 gumballs, exactly one winner")


def test_gumball_crank_and_pop():
    machine, events = _attached(GumballMachine, {"winningIndex": 3})
    assert machine.pop() is None                # nothing dispensed yet
    ball = machine.turn_crank()
    assert ball.is_winning and ball.prize == "Yellow Prize!"
    assert machine.turn_crank() is None         # already dispensing

    event = machine.pop()
    assert event.detail == {"prize": "Yellow Prize!", "color": "#f9ca24"}
    assert machine.pop() is None
    assert machine.turn_crank() is None
    assert len(events) == 1
    print("✅ Crank → pop → one game-completed")


def test_gumball_prize_text_override():
    machine, events = _attached(GumballMachine, {"prize_text": "Free refill"})
    machine.turn_crank()
    machine.pop()
    assert events[0].detail["prize"] == "Free refill"
    assert events[0].detail["color"] == "#ff6b6b"


def test_gumball_bad_winner_and_empty_jar():
    machine, events = _attached(GumballMachine, {"winningIndex": 42})
    assert not any(g.is_winning for g in machine.gumballs)
    ball = machine.turn_crank()
    assert ball is machine.gumballs[0]
    machine.pop()
    assert events[0].detail == {"prize": ball.prize, "color": ball.color}

    empty, _ = _attached(GumballMachine, {"options": []})
    assert empty.gumballs == []
    assert empty.turn_crank() is None
    print("✅ Missing winner and empty jar handled")


def test_lighten_color():
    assert lighten_color("#000000", 100) == "#ffffff"
    assert lighten_color("#ff6b6b", 40) == "#ffd1d1"
    assert lighten_color("#123456", 0) == "#123456"
    assert lighten_color("#808080", -100) == "#000000"
