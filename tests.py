#!/usr/bin/env python3
"""
PRIZEREVEAL - Unit Test Suite

Run: python tests.py
     python tests.py -v              # verbose
     python tests.py TestEraseMask   # run specific class

Test categories:
  TestCoordinateMapper - mouse/touch → surface-local points
  TestMaskInit         - cover rasterization, blank fallback
  TestEraseMask        - brush geometry, clipping, idempotence
  TestCoverage         - percentage, monotonicity
  TestSurfaceStates    - Covered → Scratching → Revealed, threshold edges
  TestConfigParsing    - JSON decoding, merge, validation errors
  TestTextureLoader    - file/data-URI/http loading, failures
"""

import base64
import io
import random
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import httpx
import numpy as np
from PIL import Image

# ── Ensure project root is on sys.path ──
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

from config.widget_schema import (
    ConfigError, GumballConfig, ScratchCardConfig, SpinWheelConfig, parse_widget_config,
)
from reveal_engine.errors import TextureLoadError
from reveal_engine.mask import (
    OPAQUE, blank_cover, coverage, erase, new_mask, rasterize_cover,
)
from reveal_engine.pointer import BoundingBox, PointerEvent, StrokePoint, map_pointer
from reveal_engine.surface import RevealState, Surface
from reveal_engine.texture import decode_texture, load_texture


def _png_bytes(rgba: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(rgba, "RGBA").save(buf, format="PNG")
    return buf.getvalue()


# ============================================================
# Coordinate Mapper
# ============================================================

class TestCoordinateMapper(unittest.TestCase):

    def test_mouse_event_relative_to_box(self):
        box = BoundingBox(left=100, top=50, width=250, height=250)
        point = map_pointer(PointerEvent.mouse("mousemove", 110, 60), box)
        self.assertEqual(point, StrokePoint(10, 10))

    def test_touch_uses_first_touch_point(self):
        box = BoundingBox(left=20, top=30, width=250, height=250)
        event = PointerEvent.touch("touchmove", (50, 70), (200, 200))
        self.assertEqual(map_pointer(event, box), StrokePoint(30, 40))

    def test_touch_without_points_has_no_position(self):
        box = BoundingBox(left=20, top=30, width=250, height=250)
        self.assertIsNone(map_pointer(PointerEvent.touch("touchend"), box))

    def test_no_scaling_when_box_differs_from_buffer(self):
        """A 500px-wide box maps 1:1, coordinates are not rescaled."""
        box = BoundingBox(left=0, top=0, width=500, height=500)
        point = map_pointer(PointerEvent.mouse("mousedown", 400, 300), box)
        self.assertEqual((point.x, point.y), (400, 300))

    def test_points_outside_box_still_map(self):
        box = BoundingBox(left=10, top=10, width=100, height=100)
        point = map_pointer(PointerEvent.mouse("mousemove", 0, 500), box)
        self.assertEqual(point, StrokePoint(-10, 490))
        self.assertFalse(box.contains(point))


# ============================================================
# Mask initialization
# ============================================================

class TestMaskInit(unittest.TestCase):

    def test_new_mask_fully_covered(self):
        mask = new_mask(40, 30)
        self.assertEqual(mask.shape, (30, 40))
        self.assertEqual(mask.dtype, np.uint8)
        self.assertTrue((mask == OPAQUE).all())

    def test_texture_scaled_per_axis(self):
        """A 2×2 texture on a 4×4 surface covers 2×2 blocks."""
        texture = np.zeros((2, 2, 4), dtype=np.uint8)
        texture[..., 3] = 255
        texture[0, 0, :3] = (255, 0, 0)
        texture[1, 1, :3] = (0, 0, 255)
        rgb, mask = rasterize_cover(4, 4, texture)
        self.assertEqual(rgb.shape, (4, 4, 3))
        self.assertEqual(tuple(rgb[0, 0]), (255, 0, 0))
        self.assertEqual(tuple(rgb[1, 1]), (255, 0, 0))
        self.assertEqual(tuple(rgb[3, 3]), (0, 0, 255))
        self.assertTrue((mask == OPAQUE).all())

    def test_texture_fills_any_surface_size(self):
        texture = np.full((7, 3, 4), 255, dtype=np.uint8)
        rgb, mask = rasterize_cover(100, 61, texture)
        self.assertEqual(mask.shape, (61, 100))
        self.assertTrue((mask == OPAQUE).all())

    def test_texture_alpha_carried_into_mask(self):
        texture = np.full((2, 2, 4), 255, dtype=np.uint8)
        texture[0, 1, 3] = 0
        _, mask = rasterize_cover(2, 2, texture)
        self.assertEqual(mask[0, 1], 0)
        self.assertEqual(coverage(mask), 25.0)

    def test_empty_texture_rejected(self):
        with self.assertRaises(ValueError):
            rasterize_cover(10, 10, np.zeros((0, 0, 4), dtype=np.uint8))

    def test_blank_cover_is_opaque(self):
        rgb, mask = blank_cover(20, 10)
        self.assertEqual(rgb.shape, (10, 20, 3))
        self.assertTrue((mask == OPAQUE).all())


# ============================================================
# Erasure Operator
# ============================================================

class TestEraseMask(unittest.TestCase):

    def test_erase_clears_disc(self):
        mask = new_mask(100, 100)
        changed = erase(mask, StrokePoint(50, 50), 20)
        # π·20² ≈ 1257
        self.assertAlmostEqual(changed, 1257, delta=20)
        self.assertEqual(mask[50, 50], 0)
        self.assertEqual(mask[50, 75], OPAQUE)
        self.assertEqual(mask[5, 5], OPAQUE)

    def test_erase_only_lowers_values(self):
        mask = new_mask(60, 60)
        mask[:10, :] = 100
        before = mask.copy()
        erase(mask, StrokePoint(30, 5), 15)
        self.assertTrue((mask <= before).all())
        self.assertTrue(set(np.unique(mask).tolist()) <= {0, 100, OPAQUE})

    def test_idempotent_erase(self):
        mask = new_mask(100, 100)
        erase(mask, StrokePoint(40, 40), 20)
        after_first = coverage(mask)
        changed = erase(mask, StrokePoint(40, 40), 20)
        self.assertEqual(changed, 0)
        self.assertEqual(coverage(mask), after_first)

    def test_point_outside_buffer_is_noop(self):
        mask = new_mask(100, 100)
        for point in [StrokePoint(-100, -100), StrokePoint(500, 50), StrokePoint(50, 121)]:
            self.assertEqual(erase(mask, point, 20), 0)
        self.assertTrue((mask == OPAQUE).all())

    def test_partially_outside_is_clipped(self):
        mask = new_mask(100, 100)
        changed = erase(mask, StrokePoint(0, 0), 20)
        # Quarter disc ≈ 314
        self.assertAlmostEqual(changed, 314, delta=15)
        self.assertEqual(mask[0, 0], 0)

    def test_degenerate_inputs(self):
        mask = new_mask(10, 10)
        self.assertEqual(erase(mask, StrokePoint(5, 5), 0), 0)
        self.assertEqual(erase(mask, StrokePoint(float("nan"), 5), 3), 0)
        self.assertEqual(erase(mask, StrokePoint(float("inf"), 5), 3), 0)
        self.assertTrue((mask == OPAQUE).all())

    def test_cost_limited_to_brush_window(self):
        """Pixels outside the brush's bounding box are never written."""
        mask = new_mask(200, 200)
        mask[0:100, 0:100] = 7
        erase(mask, StrokePoint(150, 150), 10)
        self.assertTrue((mask[0:100, 0:100] == 7).all())


# ============================================================
# Coverage Estimator
# ============================================================

class TestCoverage(unittest.TestCase):

    def test_bounds(self):
        mask = new_mask(10, 10)
        self.assertEqual(coverage(mask), 0.0)
        mask[:] = 0
        self.assertEqual(coverage(mask), 100.0)

    def test_only_fully_transparent_counts(self):
        mask = new_mask(10, 10)
        mask[0, :] = 1
        mask[1, :] = 0
        self.assertEqual(coverage(mask), 10.0)

    def test_does_not_mutate(self):
        mask = new_mask(10, 10)
        mask[0, 0] = 0
        before = mask.copy()
        coverage(mask)
        self.assertTrue((mask == before).all())

    def test_monotonic_over_random_strokes(self):
        rng = random.Random(7)
        mask = new_mask(120, 80)
        last = coverage(mask)
        previous = mask.copy()
        for _ in range(300):
            erase(mask, StrokePoint(rng.uniform(-30, 150), rng.uniform(-30, 110)), rng.uniform(1, 25))
            current = coverage(mask)
            self.assertGreaterEqual(current, last)
            self.assertTrue((mask <= previous).all())
            last, previous = current, mask.copy()

    def test_empty_mask(self):
        self.assertEqual(coverage(np.zeros((0, 0), dtype=np.uint8)), 0.0)


# ============================================================
# Win State Machine
# ============================================================

class TestSurfaceStates(unittest.TestCase):

    def _surface(self, threshold=50.0):
        surface = Surface(width=100, height=100, coverage_threshold=threshold, brush_radius=20)
        surface.apply_cover(None)
        return surface

    def test_not_ready_before_cover(self):
        surface = Surface(width=10, height=10)
        self.assertFalse(surface.ready)
        self.assertFalse(surface.scratch(StrokePoint(5, 5)))
        self.assertFalse(surface.check_win())
        with self.assertRaises(RuntimeError):
            surface.snapshot()

    def test_begin_stroke_once(self):
        surface = self._surface()
        self.assertIs(surface.state, RevealState.COVERED)
        self.assertTrue(surface.begin_stroke())
        self.assertIs(surface.state, RevealState.SCRATCHING)
        self.assertFalse(surface.begin_stroke())

    def test_exact_threshold_reveals_once(self):
        surface = self._surface(50)
        surface.begin_stroke()
        surface.mask[:50, :] = 0          # exactly 5000 / 10000
        self.assertTrue(surface.check_win())
        self.assertTrue(surface.revealed)
        self.assertFalse(surface.check_win())
        self.assertIs(surface.state, RevealState.REVEALED)

    def test_one_pixel_below_threshold(self):
        surface = self._surface(50)
        surface.begin_stroke()
        surface.mask.reshape(-1)[:4999] = 0
        self.assertFalse(surface.check_win())
        self.assertIs(surface.state, RevealState.SCRATCHING)
        surface.mask.reshape(-1)[4999] = 0
        self.assertTrue(surface.check_win())

    def test_revealed_is_terminal(self):
        surface = self._surface(10)
        surface.begin_stroke()
        wins = [surface.scratch(StrokePoint(x, 50)) for x in range(10, 100, 10)]
        self.assertEqual(wins.count(True), 1)
        surface.begin_stroke()
        self.assertIs(surface.state, RevealState.REVEALED)

    def test_post_reveal_scratch_still_erases(self):
        surface = self._surface(1)
        surface.scratch(StrokePoint(20, 20))
        self.assertTrue(surface.revealed)
        before = surface.last_coverage
        self.assertFalse(surface.scratch(StrokePoint(80, 80)))
        self.assertGreater(surface.last_coverage, before)

    def test_apply_cover_restarts_round(self):
        texture = np.full((4, 4, 4), 255, dtype=np.uint8)
        surface = Surface(width=50, height=50, coverage_threshold=5)
        surface.apply_cover(texture)
        surface.scratch(StrokePoint(25, 25))
        self.assertTrue(surface.revealed)
        surface.apply_cover(texture)
        self.assertIs(surface.state, RevealState.COVERED)
        self.assertTrue((surface.mask == OPAQUE).all())
        self.assertEqual(surface.last_coverage, 0.0)
        self.assertEqual(surface.strokes, 0)

    def test_zero_threshold_reveals_on_first_scratch(self):
        surface = self._surface(0)
        self.assertTrue(surface.scratch(StrokePoint(-500, -500)))

    def test_snapshot_composites_prize(self):
        surface = Surface(width=40, height=40, brush_radius=10)
        surface.apply_cover(None)
        surface.scratch(StrokePoint(20, 20))
        prize = np.zeros((40, 40, 3), dtype=np.uint8)
        img = surface.snapshot(prize)
        self.assertEqual(img.size, (40, 40))
        self.assertEqual(img.getpixel((20, 20)), (0, 0, 0))
        self.assertEqual(img.getpixel((0, 0)), (192, 192, 192))

    def test_to_dict(self):
        data = self._surface().to_dict()
        self.assertEqual(data["state"], "covered")
        self.assertFalse(data["revealed"])
        self.assertEqual(data["coverage"], 0.0)


# ============================================================
# Config parsing
# ============================================================

class TestConfigParsing(unittest.TestCase):

    def test_defaults(self):
        cfg = parse_widget_config(ScratchCardConfig, "{}")
        self.assertEqual(cfg.pre_text, "Scratch here")
        self.assertEqual(cfg.post_text, "You won!")
        self.assertEqual(cfg.clear_percentage, 50)

    def test_malformed_json(self):
        for raw in ["{not json", "", None]:
            with self.assertRaises(ConfigError):
                parse_widget_config(ScratchCardConfig, raw)

    def test_non_object_payload(self):
        with self.assertRaises(ConfigError):
            parse_widget_config(ScratchCardConfig, "[1, 2, 3]")

    def test_threshold_bounds(self):
        for bad in [-1, 100.5, "lots"]:
            with self.assertRaises(ConfigError):
                parse_widget_config(ScratchCardConfig, f'{{"clear_percentage": {bad!r}}}'.replace("'", '"'))

    def test_merge_over_base(self):
        base = parse_widget_config(ScratchCardConfig, '{"clear_percentage": 70, "bg": "prize.png"}')
        cfg = parse_widget_config(ScratchCardConfig, '{"pre_text": "Go"}', base=base)
        self.assertEqual(cfg.clear_percentage, 70)
        self.assertEqual(cfg.bg, "prize.png")
        self.assertEqual(cfg.pre_text, "Go")

    def test_wheel_alias(self):
        cfg = parse_widget_config(SpinWheelConfig, '{"options": [{"prize": "A"}], "winningIndex": 0}')
        self.assertEqual(cfg.winning_index, 0)
        self.assertIn('"winningIndex"', cfg.model_dump_json(by_alias=True))

    def test_gumball_defaults(self):
        cfg = parse_widget_config(GumballConfig, "{}")
        self.assertEqual(len(cfg.options), 6)
        self.assertEqual(cfg.winning_index, 0)


# ============================================================
# Texture loading
# ============================================================

class TestTextureLoader(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.rgba = np.zeros((3, 5, 4), dtype=np.uint8)
        self.rgba[..., 0] = 200
        self.rgba[..., 3] = 255

    def test_decode_png(self):
        texture = decode_texture(_png_bytes(self.rgba))
        self.assertEqual(texture.shape, (3, 5, 4))
        self.assertEqual(texture[0, 0, 0], 200)

    def test_rgb_image_gets_opaque_alpha(self):
        buf = io.BytesIO()
        Image.new("RGB", (2, 2), (10, 20, 30)).save(buf, format="PNG")
        texture = decode_texture(buf.getvalue())
        self.assertTrue((texture[..., 3] == 255).all())

    def test_load_from_file(self):
        path = Path(self.tmpdir) / "cover.png"
        path.write_bytes(_png_bytes(self.rgba))
        self.assertEqual(load_texture(str(path)).shape, (3, 5, 4))

    def test_load_from_data_uri(self):
        ref = "data:image/png;base64," + base64.b64encode(_png_bytes(self.rgba)).decode()
        self.assertEqual(load_texture(ref).shape, (3, 5, 4))

    def test_missing_file(self):
        with self.assertRaises(TextureLoadError):
            load_texture(str(Path(self.tmpdir) / "nope.png"))

    def test_garbage_bytes(self):
        with self.assertRaises(TextureLoadError):
            decode_texture(b"definitely not an image")

    def test_empty_ref(self):
        with self.assertRaises(TextureLoadError):
            load_texture("")

    def test_http_failure(self):
        with patch("reveal_engine.texture.httpx.get", side_effect=httpx.ConnectError("offline")):
            with self.assertRaises(TextureLoadError) as ctx:
                load_texture("https://example.invalid/cover.png")
        self.assertIn("offline", str(ctx.exception))

    def test_malformed_url_and_nul_path(self):
        for ref in ("http://[::1", "cover\u0000.png"):
            with self.assertRaises(TextureLoadError):
                load_texture(ref)

    def test_oversized_image(self):
        big = np.full((10, 10, 4), 255, dtype=np.uint8)
        with patch.object(Image, "MAX_IMAGE_PIXELS", 10):
            with self.assertRaises(TextureLoadError):
                decode_texture(_png_bytes(big))


if __name__ == "__main__":
    unittest.main()
