"""
Schema definitions for per-metric attribution.

Each record explains how far one metric sits from its baseline, in baseline
standard deviations, so the metric driving an anomaly can be named.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.data.schema import MetricKey


class AttributionSeverity(str, Enum):
    """Deviation tiers by |Z|."""

    NORMAL = "normal"
    ELEVATED = "elevated"
    WARNING = "warning"
    CRITICAL = "critical"


class AttributionRecord(BaseModel):
    """
    Deviation of a single metric from its baseline.

    Fields:
    - key/label/unit: metric identity and display metadata
    - current: value in the scored snapshot
    - mean/std: baseline statistics (std is 1.0 for a flat baseline)
    - z_score: signed (current - mean) / std
    - inverse: True when a drop is the anomalous direction
    - directional_z: z_score, negated for inverse metrics
    - abs_z: |directional_z|, used for ranking
    - pct: percent deviation from the baseline mean
    - severity: tier assigned from abs_z
    """

    model_config = ConfigDict(frozen=True)

    key: MetricKey
    label: str
    unit: str
    current: float
    mean: float
    std: float = Field(gt=0.0)
    z_score: float
    inverse: bool
    directional_z: float
    abs_z: float = Field(ge=0.0)
    pct: float
    severity: AttributionSeverity

    @property
    def direction(self) -> str:
        return "above" if self.pct > 0 else "below"
