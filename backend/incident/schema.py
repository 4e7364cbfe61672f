"""
Schema for the auto-analyze analysis context.

An AnalysisContext contains only factual, observable data: the alert, its
attribution, and the snapshots leading up to it. It is what the explanation
collaborator receives when a CRITICAL or EMERGENCY alert fires.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from src.alerts.schema import AlertSeverity


class DriverSummary(BaseModel):
    """
    Compact view of one attributed metric.

    Fields:
    - key/label/unit: metric identity
    - current/baseline: observed value and baseline mean
    - pct: percent deviation from baseline
    - z: |Z| used for ranking
    - severity: attribution tier
    """

    key: str
    label: str
    unit: str
    current: float
    baseline: float
    pct: float
    z: float = Field(ge=0.0)
    severity: str


class AnalysisContext(BaseModel):
    """
    Context handed to the explanation collaborator.

    Required fields:
    - context_id: unique identifier
    - session_id/service: where the alert fired
    - alert_id/severity/score: the alert being explained
    - created_at: when the context was built
    - summary: one-line primary driver description
    - prompt_context: multi-line driver payload for prompt injection
    - drivers: bounded list of driver summaries
    - recent_snapshots: bounded list of recent snapshots (wire format)
    """

    context_id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    service: Optional[str] = None
    alert_id: str
    severity: AlertSeverity
    score: int = Field(ge=0, le=100)
    created_at: datetime
    summary: str
    prompt_context: str
    drivers: List[DriverSummary]
    recent_snapshots: List[Dict[str, object]]
