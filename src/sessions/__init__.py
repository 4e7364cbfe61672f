"""
Sessions module: per-target monitoring sessions and their registry.
"""

from .registry import SessionRegistry
from .session import AnalysisHook, MonitoringSession, SessionStatus, TickOutcome, replay

__all__ = [
	"SessionRegistry",
	"MonitoringSession",
	"SessionStatus",
	"TickOutcome",
	"AnalysisHook",
	"replay",
]
