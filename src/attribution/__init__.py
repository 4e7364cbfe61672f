"""
Attribution module: per-metric Z-score ranking of anomaly drivers.
"""

from .engine import AttributionEngine, BaselineMoments, baseline_moments, summarise, to_prompt_context
from .schema import AttributionRecord, AttributionSeverity

__all__ = [
	"AttributionEngine",
	"AttributionRecord",
	"AttributionSeverity",
	"BaselineMoments",
	"baseline_moments",
	"summarise",
	"to_prompt_context",
]
