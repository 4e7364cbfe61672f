"""
Scoring module: Isolation forest, EWMA trend smoothing and risk calibration.

Turns each metric snapshot into a 0-100 risk index once a baseline has been
learned.
"""

from .forest import AnomalyForest, IsolationNode, IsolationTree, average_path_length
from .pipeline import BASELINE_TICKS_NEEDED, ScoringPipeline
from .schema import ScoringPhase, ScoringResult, Trend
from .smoothing import RiskCalibrator, TrendSmoother

__all__ = [
	"AnomalyForest",
	"IsolationTree",
	"IsolationNode",
	"average_path_length",
	"TrendSmoother",
	"RiskCalibrator",
	"ScoringPipeline",
	"ScoringPhase",
	"ScoringResult",
	"Trend",
	"BASELINE_TICKS_NEEDED",
]
