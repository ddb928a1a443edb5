"""
Cosmetic animation state: the breathing pulse on the focused column and
the brief flash when a choice is locked in.

Driven by the animation tick, which is separate from the functional polls.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .domain import FocusColumn

# Green to blue-green gradient, brightest first
GRADIENT_COLORS = [
    "#90EE90", "#8BE88C", "#86E288", "#81DC88", "#7CD688",
    "#77D088", "#72CA88", "#6DC488", "#68BE88", "#63B888",
    "#5EB288", "#59AC88", "#54A688", "#4FA088", "#4A9A88",
    "#459488", "#408E88", "#3B8888", "#368288", "#317C88",
    "#2C7688", "#277088", "#226A88", "#1D6488", "#185E88",
    "#135888", "#0E5288", "#094C88", "#044688", "#004088",
]
GRADIENT_DARKEST_IDX = 27
GRADIENT_BRIGHTEST_IDX = 3

FLASH_COLOR = "#00FFFF"
FLASH_VISIBILITY_THRESHOLD = 0.3


def pulse_phase(elapsed: float, period: float) -> float:
    """Sine pulse normalised to 0 (valley) .. 1 (peak)."""
    if period <= 0:
        return 1.0
    return (math.sin(2 * math.pi * elapsed / period) + 1) / 2


def pulse_color(phase: float) -> str:
    span = GRADIENT_DARKEST_IDX - GRADIENT_BRIGHTEST_IDX
    idx = GRADIENT_DARKEST_IDX - int(phase * span)
    idx = max(GRADIENT_BRIGHTEST_IDX, min(GRADIENT_DARKEST_IDX, idx))
    return GRADIENT_COLORS[idx]


@dataclass
class AnimationState:
    started_at: float = 0.0
    period: float = 2.5
    flash_duration: float = 0.2
    phase: float = 0.5
    flash_column: Optional[FocusColumn] = None
    flash_started_at: float = 0.0
    flash_intensity: float = 0.0

    @property
    def flash_active(self) -> bool:
        return self.flash_column is not None

    def lock_in(self, column: FocusColumn, now: float) -> None:
        """Start a full-intensity flash on ``column``."""
        self.flash_column = column
        self.flash_started_at = now
        self.flash_intensity = 1.0

    def advance(self, now: float) -> None:
        """Recompute the pulse and decay the flash linearly."""
        self.phase = pulse_phase(now - self.started_at, self.period)
        if self.flash_column is None:
            return
        elapsed = now - self.flash_started_at
        if elapsed >= self.flash_duration or self.flash_duration <= 0:
            self.flash_column = None
            self.flash_intensity = 0.0
        else:
            self.flash_intensity = 1.0 - elapsed / self.flash_duration

    def shows_flash(self, column: FocusColumn) -> bool:
        return (
            self.flash_column == column
            and self.flash_intensity > FLASH_VISIBILITY_THRESHOLD
        )

    @property
    def color(self) -> str:
        return pulse_color(self.phase)
