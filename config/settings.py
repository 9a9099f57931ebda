"""
PRIZEREVEAL - Runtime Settings

Environment-driven defaults for the prize widgets. Values are read once at
import time (after .env is loaded) and exposed as class attributes so tests
and the CLI can override them with `patch.object`.
"""

import os
from dotenv import load_dotenv

load_dotenv()

class RevealConfig:

    # --- Cover texture ---
    # Grey scratch texture used when a scratch card config has no `fg`
    DEFAULT_COVER_URL = os.getenv("REVEAL_DEFAULT_COVER", "https://demo.moneythor.com/img/scratch.png")
    TEXTURE_TIMEOUT_S = float(os.getenv("REVEAL_TEXTURE_TIMEOUT", "10"))

    # --- Surface ---
    # Used when the rendered box reports a zero size
    DEFAULT_SURFACE_SIZE = int(os.getenv("REVEAL_SURFACE_SIZE", "250"))
    BRUSH_RADIUS = float(os.getenv("REVEAL_BRUSH_RADIUS", "20"))
    DEFAULT_CLEAR_PERCENTAGE = float(os.getenv("REVEAL_CLEAR_PERCENTAGE", "50"))

    # --- Gumball machine ---
    GUMBALL_COUNT = int(os.getenv("REVEAL_GUMBALL_COUNT", "120"))

    # --- Logging ---
    LOG_LEVEL = os.getenv("REVEAL_LOG_LEVEL", "INFO").upper()

