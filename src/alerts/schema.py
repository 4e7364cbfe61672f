"""
Schema definitions for tiered alerts.

Alert records are immutable once created and carry everything a notifier or
the auto-analyze collaborator needs without calling back into the engines.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.attribution.schema import AttributionRecord
from src.data.schema import MetricKey


class AlertSeverity(str, Enum):
    """Alert tiers, lowest first."""

    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    EMERGENCY = "EMERGENCY"


class AlertRecord(BaseModel):
    """
    One fired alert.

    Fields:
    - alert_id: unique identifier
    - severity: alert tier
    - score: risk index that fired it (0-100)
    - session_id: monitoring session / deployment identifier
    - timestamp: UTC fire time
    - primary_driver/primary_key: label and key of the top attributed metric
    - pct/z: percent deviation and |Z| of the primary driver
    - attribution: top three attribution records at fire time
    - message: human-readable summary
    - action: recommended operator action
    - auto_analyze: True when downstream analysis should start
    """

    model_config = ConfigDict(frozen=True)

    alert_id: str = Field(default_factory=lambda: f"alert-{uuid4().hex[:12]}")
    severity: AlertSeverity
    score: int = Field(ge=0, le=100)
    session_id: str
    timestamp: datetime
    primary_driver: str = "Unknown"
    primary_key: Optional[MetricKey] = None
    pct: float = 0.0
    z: float = 0.0
    attribution: List[AttributionRecord] = Field(default_factory=list)
    message: str
    action: str
    auto_analyze: bool = False
