"""
Canonical metric snapshot schema for the risk scoring pipeline.

A snapshot is one tick of service-health telemetry: request rate, error
rate, p99 latency and saturation. Every metric source (live probe, recorded
file, simulator) produces this representation before anything is scored.

Design rationale:
- The metric set is a fixed enum; engines loop over MetricKey instead of
  indexing by free-form strings.
- Snapshots are frozen once built; the history buffer owns them.
- Metric fields are optional so that a partially failed probe still yields a
  snapshot. NaN is normalized to missing at construction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetricKey(str, Enum):
    """
    The four monitored service-health metrics.

    Values match the wire names used by metric sources.
    """
    RATE = "rate"
    ERROR_RATE = "errorRate"
    P99 = "p99"
    SATURATION = "saturation"

    @property
    def meta(self) -> "MetricMeta":
        return METRIC_META[self]


@dataclass(frozen=True)
class MetricMeta:
    """
    Display metadata for a metric.

    inverse is True where a decrease is the anomaly (request rate drop).
    """
    label: str
    unit: str
    inverse: bool = False


METRIC_META: Dict[MetricKey, MetricMeta] = {
    MetricKey.RATE: MetricMeta(label="Request Rate", unit="req/s", inverse=True),
    MetricKey.ERROR_RATE: MetricMeta(label="Error Rate", unit="%"),
    MetricKey.P99: MetricMeta(label="P99 Latency", unit="ms"),
    MetricKey.SATURATION: MetricMeta(label="Saturation", unit="%"),
}

_FIELD_BY_KEY: Dict[MetricKey, str] = {
    MetricKey.RATE: "rate",
    MetricKey.ERROR_RATE: "error_rate",
    MetricKey.P99: "p99",
    MetricKey.SATURATION: "saturation",
}


class MetricSnapshot(BaseModel):
    """
    One tick of service-health metrics.

    Attributes:
        rate: Requests per second
        error_rate: Error percentage (sources cap it at 50)
        p99: 99th percentile latency in milliseconds
        saturation: Resource saturation percentage (sources cap it at 100)
        timestamp: UTC time the tick was collected
        tick_index: Monotonically increasing tick counter within a session

    Notes:
        - Wire aliases (errorRate, tickIndex) and field names are both accepted
        - Missing or NaN metrics are stored as None
        - Instances are immutable
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rate: Optional[float] = Field(None, ge=0.0, description="Requests per second")
    error_rate: Optional[float] = Field(
        None, ge=0.0, alias="errorRate", description="Error percentage"
    )
    p99: Optional[float] = Field(None, ge=0.0, description="P99 latency (ms)")
    saturation: Optional[float] = Field(None, ge=0.0, description="Saturation percentage")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC collection time",
    )
    tick_index: int = Field(..., ge=0, alias="tickIndex", description="Tick counter")

    @field_validator("rate", "error_rate", "p99", "saturation", mode="before")
    @classmethod
    def _nan_to_missing(cls, value: object) -> object:
        if isinstance(value, float) and math.isnan(value):
            return None
        return value

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def value(self, key: MetricKey) -> Optional[float]:
        """Return the value of one metric, or None if it is missing."""
        return getattr(self, _FIELD_BY_KEY[key])

    @property
    def is_complete(self) -> bool:
        return all(self.value(key) is not None and math.isfinite(self.value(key)) for key in MetricKey)

    def vector(self) -> Tuple[float, ...]:
        """Return the metric values in MetricKey order (missing -> NaN)."""
        return tuple(
            float("nan") if self.value(key) is None else float(self.value(key))
            for key in MetricKey
        )

    def to_wire(self) -> Dict[str, object]:
        """Serialize with wire aliases, as consumed by dashboards and hooks."""
        return self.model_dump(mode="json", by_alias=True)
