"""
PRIZEREVEAL - Cover Texture Loader

Resolves an image reference (http(s) URL, data: URI, or local path) to an
RGBA numpy array. Any failure surfaces as TextureLoadError so the scratch
card can decide on a fallback.
"""

import base64
import io
import logging
from pathlib import Path
from typing import Optional

import httpx
import numpy as np
from PIL import Image, UnidentifiedImageError

from config.settings import RevealConfig
from reveal_engine.errors import TextureLoadError

logger = logging.getLogger("prizereveal.texture")


def _read_bytes(ref: str, timeout: float) -> bytes:
    if ref.startswith(("http://", "https://")):
        try:
            resp = httpx.get(ref, timeout=timeout, follow_redirects=True,
                             headers={"User-Agent": "PrizeReveal/1.0 texture-loader"})
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TextureLoadError(ref, str(e)) from e
        return resp.content

    if ref.startswith("data:"):
        header, _, payload = ref.partition(",")
        if ";base64" not in header:
            raise TextureLoadError(ref[:40], "only base64 data URIs are supported")
        try:
            return base64.b64decode(payload, validate=True)
        except ValueError as e:
            raise TextureLoadError(ref[:40], f"bad base64 payload: {e}") from e

    path = Path(ref)
    try:
        return path.read_bytes()
    except (OSError, ValueError) as e:  # ValueError: NUL byte in the path
        raise TextureLoadError(ref, str(e)) from e


def decode_texture(data: bytes, ref: str = "<bytes>") -> np.ndarray:
    """Decode image bytes to an (H, W, 4) uint8 array."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise TextureLoadError(ref, f"not a decodable image: {e}") from e
    return np.asarray(rgba, dtype=np.uint8).copy()


def load_texture(ref: str, timeout: Optional[float] = None) -> np.ndarray:
    """Load the image at `ref` as RGBA."""
    if not ref:
        raise TextureLoadError(ref, "empty reference")
    timeout = RevealConfig.TEXTURE_TIMEOUT_S if timeout is None else timeout
    data = _read_bytes(ref, timeout)
    texture = decode_texture(data, ref)
    logger.debug(f"Loaded texture {ref[:80]} ({texture.shape[1]}x{texture.shape[0]})")
    return texture
