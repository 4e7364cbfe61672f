"""
Risk scoring pipeline.

Orchestrates the isolation forest, EWMA smoother and calibrator for one
monitored target. The pipeline is LEARNING until enough history exists to
train the forest on the session's first ticks, then SCORING on every call.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Sequence

from src.core.config import Config, config as default_config
from src.core.exceptions import DataValidationError
from src.data.schema import MetricSnapshot

from .forest import AnomalyForest
from .schema import ScoringPhase, ScoringResult, Trend
from .smoothing import RiskCalibrator, TrendSmoother

logger = logging.getLogger(__name__)

BASELINE_TICKS_NEEDED = 12  # 60s at a 5s cadence
SCORE_HISTORY_SIZE = 60
TREND_WINDOW = 6
TREND_DELTA = 8.0


class ScoringPipeline:
    """
    Per-session scoring state machine (LEARNING -> SCORING).

    The forest is trained once, on the oldest baseline_ticks_needed snapshots
    of the history, and never retrained while the session lasts.
    """

    def __init__(
        self,
        forest: Optional[AnomalyForest] = None,
        smoother: Optional[TrendSmoother] = None,
        calibrator: Optional[RiskCalibrator] = None,
        baseline_ticks_needed: Optional[int] = None,
        settings: Optional[Config] = None,
    ) -> None:
        settings = settings or default_config
        self.forest = forest or AnomalyForest(forest_config=settings.forest)
        self.smoother = smoother or TrendSmoother.from_config(settings.smoothing)
        self.calibrator = calibrator or RiskCalibrator.from_config(settings.calibration)
        self.baseline_ticks_needed = (
            baseline_ticks_needed
            if baseline_ticks_needed is not None
            else settings.session.baseline_ticks_needed
        )
        self.trained = False
        self.last_score = 0
        self.scores: Deque[int] = deque(maxlen=SCORE_HISTORY_SIZE)

    @property
    def ewma(self) -> float:
        return self.smoother.value

    @property
    def phase(self) -> ScoringPhase:
        return ScoringPhase.SCORING if self.trained else ScoringPhase.LEARNING

    def update(
        self, snapshot: Optional[MetricSnapshot], history: Sequence[MetricSnapshot]
    ) -> ScoringResult:
        """
        Score the latest snapshot against the learned baseline.

        Args:
            snapshot: Snapshot being scored (normally history[-1])
            history: Session history in arrival order

        Returns:
            ScoringResult; LEARNING with progress until the forest is trained
        """
        if snapshot is None:
            return ScoringResult(score=0, phase=ScoringPhase.IDLE)

        if not self.trained:
            if len(history) < self.baseline_ticks_needed:
                return ScoringResult(
                    score=0,
                    phase=ScoringPhase.LEARNING,
                    progress=len(history) / self.baseline_ticks_needed,
                    ticks_remaining=self.baseline_ticks_needed - len(history),
                )

            if not self.forest.train(list(history[: self.baseline_ticks_needed])):
                logger.warning("Baseline insufficient for training; staying in LEARNING")
                return ScoringResult(score=0, phase=ScoringPhase.LEARNING, progress=0.99, ticks_remaining=0)
            self.trained = True
            logger.info(f"Baseline captured after {len(history)} ticks; scoring started")

        try:
            if_score = self.forest.score(snapshot)
        except DataValidationError as e:
            logger.warning(f"Skipping tick: {e}")
            return ScoringResult(
                score=self.last_score,
                phase=ScoringPhase.SCORING,
                trend=self.trend(),
                skipped=True,
            )

        ewma = self.smoother.update(if_score)
        combined = self.calibrator.combine(if_score, ewma)
        score = self.calibrator.calibrate(combined)

        self.last_score = score
        self.scores.append(score)

        return ScoringResult(
            score=score,
            phase=ScoringPhase.SCORING,
            if_score=round(if_score, 4),
            ewma_score=round(ewma, 4),
            combined=round(combined, 4),
            trend=self.trend(),
        )

    def trend(self) -> Trend:
        """Compare the mean of the last six scores against the oldest of them."""
        if len(self.scores) < 3:
            return Trend.STABLE
        recent = list(self.scores)[-TREND_WINDOW:]
        delta = sum(recent) / len(recent) - recent[0]
        if delta > TREND_DELTA:
            return Trend.RISING
        if delta < -TREND_DELTA:
            return Trend.FALLING
        return Trend.STABLE

    def score_history(self) -> List[int]:
        return list(self.scores)

    def reset(self) -> None:
        self.forest.reset()
        self.smoother.reset()
        self.trained = False
        self.last_score = 0
        self.scores.clear()
