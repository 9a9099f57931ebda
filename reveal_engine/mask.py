"""
PRIZEREVEAL - Scratch Mask Store

The covered area of a scratch card is an H×W uint8 opacity buffer:
255 = fully covered, 0 = scratched clear. The buffer is only ever lowered.

    mask = new_mask(100, 100)
    erase(mask, StrokePoint(50, 50), radius=20)
    coverage(mask)      # ≈ 12.6
"""

import math

import numpy as np

from reveal_engine.pointer import StrokePoint

OPAQUE = 255
CLEAR = 0
BLANK_COVER_RGB = (192, 192, 192)


def new_mask(width: int, height: int) -> np.ndarray:
    """Fully covered mask."""
    return np.full((height, width), OPAQUE, dtype=np.uint8)


def rasterize_cover(width: int, height: int, texture: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Fill a width×height surface with an RGBA texture.

    The texture is scaled per axis by surface/native size and repeated, so
    any native size fills the whole surface. Returns (rgb, mask) where mask
    is the rasterized alpha channel.
    """
    th, tw = texture.shape[:2]
    if th == 0 or tw == 0:
        raise ValueError("Cover texture has no pixels")
    # Nearest-neighbour sample at pixel centres
    rows = (((np.arange(height) + 0.5) * th / height).astype(np.intp)) % th
    cols = (((np.arange(width) + 0.5) * tw / width).astype(np.intp)) % tw
    sampled = texture[rows[:, None], cols[None, :]]
    rgb = np.ascontiguousarray(sampled[..., :3], dtype=np.uint8)
    mask = np.ascontiguousarray(sampled[..., 3], dtype=np.uint8)
    return rgb, mask


def blank_cover(width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    """Flat grey opaque cover, used when the texture can't be loaded."""
    rgb = np.empty((height, width, 3), dtype=np.uint8)
    rgb[...] = BLANK_COVER_RGB
    return rgb, new_mask(width, height)


def erase(mask: np.ndarray, point: StrokePoint, radius: float) -> int:
    """Clear every pixel whose centre is within `radius` of `point`.

    Only the brush's bounding window is touched, and pixels outside the
    buffer are skipped. Returns the number of pixels that changed.
    """
    if radius <= 0 or not (math.isfinite(point.x) and math.isfinite(point.y)):
        return 0
    h, w = mask.shape
    x0 = max(0, math.floor(point.x - radius))
    x1 = min(w, math.ceil(point.x + radius) + 1)
    y0 = max(0, math.floor(point.y - radius))
    y1 = min(h, math.ceil(point.y + radius) + 1)
    if x0 >= x1 or y0 >= y1:
        return 0

    window = mask[y0:y1, x0:x1]
    yy, xx = np.ogrid[y0:y1, x0:x1]
    brush = (xx + 0.5 - point.x) ** 2 + (yy + 0.5 - point.y) ** 2 <= radius * radius
    hit = brush & (window != CLEAR)
    changed = int(np.count_nonzero(hit))
    window[hit] = CLEAR
    return changed


def coverage(mask: np.ndarray) -> float:
    """Percentage of fully transparent pixels, in [0, 100]."""
    if mask.size == 0:
        return 0.0
    return np.count_nonzero(mask == CLEAR) / mask.size * 100
