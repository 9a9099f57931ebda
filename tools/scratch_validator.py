"""
PRIZEREVEAL - Scratch Card Session Validator

Plays randomised scratch sessions against real ScratchCard instances and
checks the reveal guarantees on every one of them:
  • coverage never decreases between pointer samples
  • a revealed card notifies exactly once, an unrevealed card never
  • the notification arrives on the first sample at or above the threshold

Also reports how much scratching a given threshold/brush actually takes,
which is useful when tuning clear_percentage.

Usage:
    from tools.scratch_validator import ScratchValidator
    report = ScratchValidator().run({"clear_percentage": 60}, n_sessions=200)
    print(report.status, report.mean_samples_to_reveal)
"""

from __future__ import annotations

import json
import random
import statistics
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from reveal_engine.events import GAME_COMPLETED
from reveal_engine.pointer import BoundingBox, PointerEvent
from reveal_engine.scratch import ScratchCard


def solid_texture_loader(ref: str) -> np.ndarray:
    """Offline loader: every reference is a 1×1 opaque grey pixel."""
    return np.array([[[160, 160, 160, 255]]], dtype=np.uint8)


# ═══════════════════════════════════════════════════════════════
# Validation Report
# ═══════════════════════════════════════════════════════════════

@dataclass
class ScratchValidationReport:
    """Results of a batch of simulated scratch sessions."""
    n_sessions: int
    clear_percentage: float
    reveal_rate: float                 # fraction of sessions that revealed
    mean_samples_to_reveal: float      # pointer samples until the win fired
    max_samples_to_reveal: int
    mean_final_coverage: float
    min_reveal_coverage: float         # lowest coverage at which a win fired

    monotonic_violations: int = 0
    notification_violations: int = 0
    late_reveal_violations: int = 0

    duration_seconds: float = 0
    parameters: dict = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not (self.monotonic_violations or self.notification_violations
                    or self.late_reveal_violations)

    @property
    def status(self) -> str:
        return "✅ PASS" if self.passed else "❌ FAIL"

    def to_dict(self) -> dict:
        return {
            "report_type": "Scratch Session Validation",
            "status": self.status,
            "n_sessions": self.n_sessions,
            "clear_percentage": self.clear_percentage,
            "reveal_rate": round(self.reveal_rate, 4),
            "samples_to_reveal": {
                "mean": round(self.mean_samples_to_reveal, 2),
                "max": self.max_samples_to_reveal,
            },
            "mean_final_coverage_pct": round(self.mean_final_coverage, 2),
            "min_reveal_coverage_pct": round(self.min_reveal_coverage, 2),
            "violations": {
                "monotonic_coverage": self.monotonic_violations,
                "notification_count": self.notification_violations,
                "late_reveal": self.late_reveal_violations,
            },
            "duration_seconds": round(self.duration_seconds, 3),
            "parameters": self.parameters,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


# ═══════════════════════════════════════════════════════════════
# Validator
# ═══════════════════════════════════════════════════════════════

class ScratchValidator:
    """Random-stroke simulator for the scratch card reveal logic."""

    DEFAULT_SESSIONS = 100
    STROKES_PER_SESSION = 12
    MOVES_PER_STROKE = 15
    STEP_PX = 12.0

    def __init__(self, texture_loader: Callable[[str], np.ndarray] = solid_texture_loader):
        self.texture_loader = texture_loader

    def run(self, config: Optional[dict] = None, n_sessions: int = None,
            strokes: int = None, moves_per_stroke: int = None,
            width: int = 250, height: int = 250, seed: int = 42) -> ScratchValidationReport:
        n = n_sessions or self.DEFAULT_SESSIONS
        strokes = strokes or self.STROKES_PER_SESSION
        moves = moves_per_stroke or self.MOVES_PER_STROKE
        rng = random.Random(seed)
        payload = json.dumps(config or {})
        start = time.time()

        samples_to_reveal = []
        final_coverages = []
        reveal_coverages = []
        monotonic = notify = late = 0
        threshold = None

        for _ in range(n):
            result = self._play_session(payload, rng, strokes, moves, width, height)
            threshold = result["threshold"]
            final_coverages.append(result["coverages"][-1] if result["coverages"] else 0.0)
            monotonic += result["monotonic_violations"]

            expected = 1 if result["revealed"] else 0
            if result["notifications"] != expected:
                notify += 1
            if result["revealed"]:
                samples_to_reveal.append(result["reveal_sample"])
                reveal_coverages.append(result["coverages"][result["reveal_sample"] - 1])
                first_crossing = next(
                    i for i, c in enumerate(result["coverages"], 1) if c >= threshold
                )
                if first_crossing != result["reveal_sample"]:
                    late += 1

        return ScratchValidationReport(
            n_sessions=n,
            clear_percentage=threshold if threshold is not None else 0.0,
            reveal_rate=len(samples_to_reveal) / n,
            mean_samples_to_reveal=statistics.mean(samples_to_reveal) if samples_to_reveal else 0.0,
            max_samples_to_reveal=max(samples_to_reveal, default=0),
            mean_final_coverage=statistics.mean(final_coverages) if final_coverages else 0.0,
            min_reveal_coverage=min(reveal_coverages, default=0.0),
            monotonic_violations=monotonic,
            notification_violations=notify,
            late_reveal_violations=late,
            duration_seconds=time.time() - start,
            parameters={
                "config": config or {},
                "strokes": strokes,
                "moves_per_stroke": moves,
                "surface": [width, height],
                "seed": seed,
            },
        )

    def _play_session(self, payload: str, rng: random.Random, strokes: int,
                      moves: int, width: int, height: int) -> dict:
        card = ScratchCard(texture_loader=self.texture_loader)
        card.connect(BoundingBox(0, 0, width, height))
        if not card.attribute_changed("config", None, payload):
            raise ValueError(f"Validator config rejected: {payload}")

        notifications = []
        card.add_event_listener(GAME_COMPLETED, notifications.append)

        coverages: list[float] = []
        reveal_sample = None
        violations = 0

        def sample(event: PointerEvent) -> None:
            nonlocal reveal_sample, violations
            before = len(notifications)
            card.handle_event(event)
            if card.surface.strokes == len(coverages):
                return      # sample ignored (outside the card or not scratching)
            if coverages and card.coverage < coverages[-1]:
                violations += 1
            coverages.append(card.coverage)
            if len(notifications) > before and reveal_sample is None:
                reveal_sample = len(coverages)

        for _ in range(strokes):
            x, y = rng.uniform(0, width), rng.uniform(0, height)
            sample(PointerEvent.mouse("mousedown", x, y))
            for _ in range(moves):
                x = min(max(x + rng.uniform(-self.STEP_PX, self.STEP_PX), 0), width - 1)
                y = min(max(y + rng.uniform(-self.STEP_PX, self.STEP_PX), 0), height - 1)
                sample(PointerEvent.mouse("mousemove", x, y))
            card.handle_event(PointerEvent.mouse("mouseup", x, y))

        return {
            "threshold": card.surface.coverage_threshold,
            "revealed": card.has_won,
            "notifications": len(notifications),
            "reveal_sample": reveal_sample,
            "coverages": coverages,
            "monotonic_violations": violations,
        }
