"""
Trend smoothing and risk calibration.

The forest detects point anomalies; the EWMA of its output captures sustained
drift. Both are blended and squashed through a sigmoid onto a 0-100 risk
scale an operator can read at a glance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from src.core.config import CalibrationConfig, SmoothingConfig, config


@dataclass
class TrendSmoother:
    """
    Exponentially weighted moving average of forest scores.

    next = alpha * x + (1 - alpha) * prev, starting from `initial`.
    """

    alpha: float = 0.32
    initial: float = 0.5
    value: float = field(init=False)

    def __post_init__(self) -> None:
        if not 0.0 < self.alpha <= 1.0:
            raise ValueError("alpha must be in (0, 1]")
        self.value = self.initial

    @classmethod
    def from_config(cls, smoothing: Optional[SmoothingConfig] = None) -> "TrendSmoother":
        cfg = smoothing or config.smoothing
        return cls(alpha=cfg.alpha, initial=cfg.initial)

    def update(self, x: float) -> float:
        self.value = self.alpha * x + (1.0 - self.alpha) * self.value
        return self.value

    def reset(self) -> None:
        self.value = self.initial


@dataclass(frozen=True)
class RiskCalibrator:
    """
    Maps forest and EWMA scores onto the 0-100 risk index.

    combined = forest_weight * forest + ewma_weight * ewma
    risk = round(clamp(100 / (1 + exp(-steepness * (combined - center))), 0, 100))
    """

    forest_weight: float = 0.62
    ewma_weight: float = 0.38
    center: float = 0.61
    steepness: float = 13.0

    @classmethod
    def from_config(cls, calibration: Optional[CalibrationConfig] = None) -> "RiskCalibrator":
        cfg = calibration or config.calibration
        return cls(
            forest_weight=cfg.forest_weight,
            ewma_weight=cfg.ewma_weight,
            center=cfg.center,
            steepness=cfg.steepness,
        )

    def combine(self, forest_score: float, ewma_score: float) -> float:
        return self.forest_weight * forest_score + self.ewma_weight * ewma_score

    def calibrate(self, x: float) -> int:
        exponent = -self.steepness * (x - self.center)
        # exp overflows past ~709; the sigmoid is 0 there anyway
        risk = 0.0 if exponent > 700 else 100.0 / (1.0 + math.exp(exponent))
        risk = min(max(risk, 0.0), 100.0)
        # Half-up rounding
        return int(math.floor(risk + 0.5))
