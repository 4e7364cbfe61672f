"""
Schema definitions for risk scoring output.

Consumed by alerting, downstream explanation and any dashboard. Diagnostic
fields are only populated once the pipeline is scoring.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ScoringPhase(str, Enum):
    """Pipeline lifecycle phases."""

    IDLE = "IDLE"
    LEARNING = "LEARNING"
    SCORING = "SCORING"


class Trend(str, Enum):
    """Direction of the recent risk scores."""

    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class ScoringResult(BaseModel):
    """
    Result of one pipeline update.

    Fields:
    - score: calibrated risk index (0-100)
    - phase: LEARNING until the forest is trained, then SCORING
    - progress: baseline collection progress in [0, 1] (LEARNING only)
    - ticks_remaining: ticks left before training (LEARNING only)
    - if_score: raw forest score for this snapshot
    - ewma_score: smoothed forest score after this update
    - combined: weighted blend fed to the calibrator
    - trend: direction of the recent scores
    - skipped: True when an incomplete snapshot was not scored
    """

    score: int = Field(0, ge=0, le=100)
    phase: ScoringPhase
    progress: Optional[float] = Field(None, ge=0.0, le=1.0)
    ticks_remaining: Optional[int] = Field(None, ge=0)
    if_score: Optional[float] = None
    ewma_score: Optional[float] = None
    combined: Optional[float] = None
    trend: Optional[Trend] = None
    skipped: bool = False
