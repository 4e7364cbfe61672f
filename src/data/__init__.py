"""
Data module: Metric snapshots, rolling history, and metric sources.

Responsible for turning raw telemetry into validated snapshots and keeping the
per-session rolling window the scoring engines read from:

    Metric source (probe / recorded file / simulator)
        ↓
    MetricSnapshot (src/data/schema.py)
        ↓
    HistoryBuffer (src/data/history.py)
        ↓
    Ready for scoring and attribution
"""

from src.data.history import DEFAULT_CAPACITY, HistoryBuffer
from src.data.ingestion import detect_format, load_snapshots, read_frame
from src.data.schema import METRIC_META, MetricKey, MetricMeta, MetricSnapshot
from src.data.simulator import (
    FAILURE_MODES,
    SERVICE_PROFILES,
    MetricSimulator,
    SimulatorMode,
)

__all__ = [
    # Schema
    "MetricKey",
    "MetricMeta",
    "METRIC_META",
    "MetricSnapshot",

    # History
    "HistoryBuffer",
    "DEFAULT_CAPACITY",

    # Ingestion
    "load_snapshots",
    "read_frame",
    "detect_format",

    # Simulation
    "MetricSimulator",
    "SimulatorMode",
    "SERVICE_PROFILES",
    "FAILURE_MODES",
]
