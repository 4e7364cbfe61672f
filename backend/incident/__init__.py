"""
Auto-analyze context builder exports.
"""

from .builder import AnalysisContextBuilder
from .config import AnalysisContextConfig
from .schema import AnalysisContext, DriverSummary

__all__ = [
    "AnalysisContextBuilder",
    "AnalysisContextConfig",
    "AnalysisContext",
    "DriverSummary",
]
