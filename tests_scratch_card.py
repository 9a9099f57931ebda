#!/usr/bin/env python3
"""
Tests for the Scratch Card widget

Validates:
1.  Round is only set up once the card is attached
2.  Five-stroke 100×100 scenario reveals exactly once
3.  Post-reveal scratching never notifies again
4.  Malformed config leaves mask and state untouched
5.  Config payloads merge over the current config
6.  New config starts a new round (fresh surface, new notification)
7.  Texture load failure falls back to a blank opaque cover
8.  Pointer session rules (down/move/up, touch, outside the card)
9.  View labels and cover visibility follow the reveal
10. Unloadable cover references never escape set_attribute or half-apply a config
11. A failing listener does not swallow the notification
12. Settings can be overridden per test with patch.object
"""

import base64
import io
import json
import logging
import sys
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.settings import RevealConfig
from reveal_engine.errors import TextureLoadError
from reveal_engine.events import GAME_COMPLETED, EventTarget
from reveal_engine.mask import OPAQUE
from reveal_engine.pointer import BoundingBox, PointerEvent
from reveal_engine.scratch import ScratchCard
from reveal_engine.surface import RevealState
from reveal_engine.texture import load_texture


# ── Helpers ──

def _opaque_loader(ref):
    return np.full((8, 8, 4), 255, dtype=np.uint8)


def _failing_loader(ref):
    raise TextureLoadError(ref, "host unreachable")


def _make_card(size=100, config=None, loader=_opaque_loader):
    """Attached card plus the list of events seen by the embedding document."""
    document = EventTarget()
    events = []
    document.add_event_listener(GAME_COMPLETED, events.append)
    card = ScratchCard(parent=document, texture_loader=loader)
    card.connect(BoundingBox(0, 0, size, size))
    if config is not None:
        card.set_attribute("config", json.dumps(config))
    return card, events


def _stroke(card, points):
    (x0, y0), rest = points[0], points[1:]
    card.handle_event(PointerEvent.mouse("mousedown", x0, y0))
    for x, y in rest:
        card.handle_event(PointerEvent.mouse("mousemove", x, y))
    card.handle_event(PointerEvent.mouse("mouseup", *points[-1]))


# Non-overlapping r=20 circles on a 100×100 card; the last one is clipped at the edge
FIVE_POINTS = [(20, 20), (60, 20), (40, 55), (80, 55), (20, 90)]


# ============================================================
# Tests
# ============================================================

def test_setup_waits_for_connect():
    """Config set before attach is stored; the surface appears on connect()."""
    card = ScratchCard(texture_loader=_opaque_loader)
    card.set_attribute("config", '{"clear_percentage": 65}')
    assert card.surface is None
    assert card.state is None
    card.handle_event(PointerEvent.mouse("mousedown", 10, 10))  # ignored, no error

    card.connect(BoundingBox(0, 0, 80, 60))
    assert card.surface.width == 80 and card.surface.height == 60
    assert card.surface.coverage_threshold == 65
    assert card.state is RevealState.COVERED
    print("✅ Surface created on connect with pre-attach config")


def test_zero_size_box_uses_default_size():
    card = ScratchCard(texture_loader=_opaque_loader)
    card.connect(BoundingBox(0, 0, 0, 0))
    assert (card.surface.width, card.surface.height) == (250, 250)
    print("✅ Zero-size box falls back to 250x250")


def test_five_strokes_reveal_exactly_once():
    card, events = _make_card(config={"clear_percentage": 50})

    card.handle_event(PointerEvent.mouse("mousedown", *FIVE_POINTS[0]))
    assert card.state is RevealState.SCRATCHING
    for point in FIVE_POINTS[1:3]:
        card.handle_event(PointerEvent.mouse("mousemove", *point))
    assert not card.has_won
    assert 30 < card.coverage < 50
    assert events == []

    for point in FIVE_POINTS[3:]:
        card.handle_event(PointerEvent.mouse("mousemove", *point))
    assert card.has_won
    assert card.coverage >= 50
    assert len(events) == 1
    assert events[0].detail == {"result": "won"}
    assert events[0].bubbles and events[0].composed
    assert events[0].target is card

    # Sixth erasure
    card.handle_event(PointerEvent.mouse("mousemove", 60, 90))
    assert len(events) == 1
    print(f"✅ Revealed once at {card.coverage:.1f}% coverage")


def test_long_post_reveal_session_single_notification():
    card, events = _make_card(config={"clear_percentage": 20})
    for row in range(0, 100, 10):
        _stroke(card, [(x, row) for x in range(0, 100, 5)])
    assert card.coverage == 100.0
    assert len(events) == 1
    assert card.completions == 1
    print("✅ 200 post-reveal samples, one notification")


def test_malformed_config_keeps_state(caplog):
    card, events = _make_card(config={"clear_percentage": 80})
    _stroke(card, [(30, 30), (50, 50)])
    surface = card.surface
    mask_before = surface.mask.copy()
    state_before = card.state
    config_before = card.config

    with caplog.at_level(logging.ERROR, logger="prizereveal.widget"):
        for raw in ["{not json", "[1, 2]", '{"clear_percentage": 400}']:
            card.set_attribute("config", raw)

    assert card.surface is surface
    assert np.array_equal(card.surface.mask, mask_before)
    assert card.state is state_before
    assert card.config == config_before
    assert events == []
    assert sum("invalid config" in r.getMessage() for r in caplog.records) == 3
    print("✅ Malformed configs logged and ignored")


def test_same_config_value_is_ignored():
    card, _ = _make_card(config={"clear_percentage": 80})
    surface = card.surface
    card.set_attribute("config", json.dumps({"clear_percentage": 80}))
    assert card.surface is surface
    print("✅ Unchanged attribute value does not restart the round")


def test_config_merges_over_previous():
    card, _ = _make_card(config={"clear_percentage": 70, "post_text": "Free coffee"})
    card.set_attribute("config", '{"pre_text": "Rub me"}')
    assert card.config.clear_percentage == 70
    assert card.config.post_text == "Free coffee"
    assert card.view.label == "Rub me"
    print("✅ Partial config merged over current config")


def test_new_config_starts_new_round():
    card, events = _make_card(config={"clear_percentage": 10})
    _stroke(card, [(20, 20), (60, 60)])
    assert card.has_won and len(events) == 1
    first_surface = card.surface

    card.set_attribute("config", '{"clear_percentage": 15}')
    assert card.surface is not first_surface
    assert card.state is RevealState.COVERED
    assert card.coverage == 0.0
    assert (card.surface.mask == OPAQUE).all()
    assert card.view.cover_visible

    _stroke(card, [(20, 20), (60, 60)])
    assert len(events) == 2
    print("✅ New config replaces the surface; one notification per round")


def test_restart_recovers_card():
    card, events = _make_card(config={"clear_percentage": 5})
    _stroke(card, [(50, 50)])
    card.restart()
    assert card.state is RevealState.COVERED
    assert (card.surface.mask == OPAQUE).all()
    print("✅ restart() re-covers the card")


def test_texture_failure_uses_blank_cover(caplog):
    with caplog.at_level(logging.WARNING, logger="prizereveal.scratch"):
        card, events = _make_card(config={"fg": "https://cdn.invalid/cover.png"}, loader=_failing_loader)
    assert card.cover_fallback
    assert card.surface.ready
    assert (card.surface.mask == OPAQUE).all()
    assert any("blank cover" in r.getMessage() for r in caplog.records)

    _stroke(card, FIVE_POINTS)
    assert card.has_won and len(events) == 1
    print("✅ Unreachable texture → blank opaque cover, still winnable")


def test_default_cover_used_without_fg():
    seen = []

    def loader(ref):
        seen.append(ref)
        return _opaque_loader(ref)

    _make_card(config={"fg": ""}, loader=loader)
    _make_card(config={"fg": "mine.png"}, loader=loader)
    assert seen[0].startswith("http")
    assert seen[-1] == "mine.png"
    print("✅ Empty fg falls back to the default cover texture")


def test_move_without_down_does_nothing():
    card, _ = _make_card()
    card.handle_event(PointerEvent.mouse("mousemove", 50, 50))
    assert card.coverage == 0.0
    assert card.state is RevealState.COVERED

    _stroke(card, [(50, 50)])
    after_up = card.coverage
    card.handle_event(PointerEvent.mouse("mousemove", 10, 10))
    assert card.coverage == after_up
    print("✅ Moves only scratch between down and up")


def test_down_outside_card_ignored():
    card, _ = _make_card(size=100)
    card.handle_event(PointerEvent.mouse("mousedown", 150, 150))
    assert not card.scratching
    assert card.state is RevealState.COVERED
    print("✅ Pointer-down outside the card does not start scratching")


def test_box_offset_and_touch_input():
    document = EventTarget()
    card = ScratchCard(parent=document, texture_loader=_opaque_loader)
    card.connect(BoundingBox(left=200, top=100, width=100, height=100))

    card.handle_event(PointerEvent.touch("touchstart", (250, 150)))
    assert card.surface.mask[50, 50] == 0
    move = PointerEvent.touch("touchmove", (210, 110), (0, 0))
    card.handle_event(move)
    assert move.default_prevented
    assert card.surface.mask[10, 10] == 0
    card.handle_event(PointerEvent.touch("touchend"))
    assert not card.scratching
    print("✅ Touch input mapped through the card's bounding box")


def test_view_follows_reveal():
    card, _ = _make_card(config={"pre_text": "Scratch!", "post_text": "10% off", "clear_percentage": 5})
    assert card.view.label == "Scratch!"
    assert card.view.code_text == "10% off"      # no bg image → text prize
    assert card.view.cover_visible

    _stroke(card, [(50, 50)])
    assert card.view.label == "10% off"
    assert not card.view.cover_visible

    card.set_attribute("config", '{"bg": "prize.png"}')
    assert card.view.code_image == "prize.png"
    assert card.view.code_text == ""
    assert card.view.label == "Scratch!"
    print("✅ Labels and cover visibility track the reveal")


def test_snapshot_shows_prize_under_scratches():
    def loader(ref):
        if ref == "prize.png":
            return np.zeros((4, 4, 4), dtype=np.uint8) + np.array([0, 200, 0, 255], dtype=np.uint8)
        return _opaque_loader(ref)

    card, _ = _make_card(size=60, config={"bg": "prize.png", "clear_percentage": 90}, loader=loader)
    _stroke(card, [(30, 30)])
    img = card.snapshot()
    assert img.size == (60, 60)
    assert img.getpixel((30, 30)) == (0, 200, 0)
    assert img.getpixel((1, 1)) == (255, 255, 255)
    print("✅ Snapshot composites prize and remaining cover")


def _png_data_uri(color=(90, 90, 90, 255)):
    buf = io.BytesIO()
    Image.new("RGBA", (4, 4), color).save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


@pytest.mark.parametrize("bad_ref", ["bad\u0000path.png", "http://[::1"])
def test_unloadable_cover_falls_back_with_real_loader(bad_ref, caplog):
    document = EventTarget()
    events = []
    document.add_event_listener(GAME_COMPLETED, events.append)
    card = ScratchCard(parent=document, texture_loader=load_texture)
    card.set_attribute("config", json.dumps({"fg": _png_data_uri(), "clear_percentage": 90}))
    card.connect(BoundingBox(0, 0, 100, 100))
    assert not card.cover_fallback
    _stroke(card, [(50, 50)])
    assert card.coverage > 0

    with caplog.at_level(logging.WARNING, logger="prizereveal.scratch"):
        card.set_attribute("config", json.dumps({"fg": bad_ref}))
    assert card.config.fg == bad_ref
    assert card.cover_fallback
    assert card.state is RevealState.COVERED
    assert (card.surface.mask == OPAQUE).all()
    assert any("blank cover" in r.getMessage() for r in caplog.records)
    print(f"✅ {bad_ref!r} → blank cover, no exception")


def test_failed_setup_keeps_previous_round():
    def loader(ref):
        if ref == "boom.png":
            raise RuntimeError("decoder crashed")
        return _opaque_loader(ref)

    card, events = _make_card(config={"fg": "cover.png", "clear_percentage": 90}, loader=loader)
    _stroke(card, [(50, 50)])
    surface, view = card.surface, card.view

    with pytest.raises(RuntimeError):
        card.set_attribute("config", json.dumps({"fg": "boom.png", "clear_percentage": 10}))
    assert card.surface is surface
    assert card.view is view
    assert card.config.fg == "cover.png"
    assert card.config.clear_percentage == 90
    assert card.surface.mask[50, 50] == 0
    print("✅ Setup failure leaves config, view and surface untouched")


def test_failing_listener_still_notifies_document(caplog):
    card, events = _make_card(size=10, config={"clear_percentage": 50})
    card.add_event_listener(GAME_COMPLETED, lambda e: 1 / 0)

    with caplog.at_level(logging.ERROR, logger="prizereveal.events"):
        card.handle_event(PointerEvent.mouse("mousedown", 5, 5))
    assert card.has_won
    assert len(events) == 1
    assert events[0].detail == {"result": "won"}
    assert any(r.exc_info and r.exc_info[0] is ZeroDivisionError for r in caplog.records)
    print("✅ Listener error logged, document still sees one game-completed")


def test_touch_without_points_is_ignored():
    card, _ = _make_card(size=100)
    card.handle_event(PointerEvent.touch("touchstart"))
    assert not card.scratching
    assert card.state is RevealState.COVERED

    card.handle_event(PointerEvent.touch("touchstart", (50, 50)))
    card.handle_event(PointerEvent.touch("touchmove"))
    assert card.surface.mask[0, 0] == OPAQUE
    assert card.surface.mask[5, 5] == OPAQUE
    print("✅ Touch events without touch points do not scratch")


def test_brush_radius_from_settings():
    with patch.object(RevealConfig, "BRUSH_RADIUS", 5):
        card, _ = _make_card(size=100)
    _stroke(card, [(50, 50)])
    assert card.surface.mask[50, 50] == 0
    assert card.surface.mask[50, 60] == OPAQUE
    print("✅ Brush radius follows RevealConfig.BRUSH_RADIUS")
