"""
Z-score attribution engine.

Identifies which metric is driving an anomaly score. For each metric,
Z = (current - baseline_mean) / baseline_std; the metric with the highest
|Z| is the primary driver handed to alerting and downstream explanation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.core.config import AttributionConfig, config
from src.data.schema import MetricKey, MetricSnapshot

from .schema import AttributionRecord, AttributionSeverity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BaselineMoments:
    mean: float
    std: float
    count: int


def baseline_moments(values: Sequence[float]) -> Optional[BaselineMoments]:
    """
    Population mean/std of the usable values.

    Missing and NaN values are filtered out; a zero std is replaced by 1.0.
    """
    usable = [float(v) for v in values if v is not None and not math.isnan(v)]
    if not usable:
        return None
    mean = sum(usable) / len(usable)
    variance = sum((v - mean) ** 2 for v in usable) / len(usable)
    std = math.sqrt(variance) or 1.0
    return BaselineMoments(mean=mean, std=std, count=len(usable))


class AttributionEngine:
    """
    Ranks metrics by deviation from a baseline window.

    Notes:
    - Stateless: every call recomputes from the given baseline.
    - Returns [] until the baseline holds min_baseline snapshots.
    - Metrics missing from the scored snapshot are left out of the ranking.
    """

    def __init__(self, attribution_config: Optional[AttributionConfig] = None) -> None:
        self.config = attribution_config or config.attribution

    def severity_for(self, abs_z: float) -> AttributionSeverity:
        if abs_z > self.config.critical_z:
            return AttributionSeverity.CRITICAL
        if abs_z > self.config.warning_z:
            return AttributionSeverity.WARNING
        if abs_z > self.config.elevated_z:
            return AttributionSeverity.ELEVATED
        return AttributionSeverity.NORMAL

    def compute(
        self,
        snapshot: Optional[MetricSnapshot],
        baseline: Sequence[MetricSnapshot],
    ) -> List[AttributionRecord]:
        """
        Compute attribution records, highest |Z| first.

        Args:
            snapshot: Snapshot being explained
            baseline: Baseline window of "normal" snapshots

        Returns:
            Ordered list of AttributionRecord (empty if baseline too short)
        """
        if snapshot is None or len(baseline) < self.config.min_baseline:
            return []

        records: List[AttributionRecord] = []
        for key in MetricKey:
            record = self._attribute(key, snapshot, baseline)
            if record is not None:
                records.append(record)

        records.sort(key=lambda r: r.abs_z, reverse=True)
        return records

    def _attribute(
        self, key: MetricKey, snapshot: MetricSnapshot, baseline: Sequence[MetricSnapshot]
    ) -> Optional[AttributionRecord]:
        current = snapshot.value(key)
        if current is None or math.isnan(current):
            logger.debug(f"No current value for {key.value}; left out of attribution")
            return None

        moments = baseline_moments([s.value(key) for s in baseline])
        if moments is None:
            return None

        meta = key.meta
        z_score = (current - moments.mean) / moments.std
        directional_z = -z_score if meta.inverse else z_score
        abs_z = abs(directional_z)
        pct = (current - moments.mean) / abs(moments.mean or 1.0) * 100.0

        return AttributionRecord(
            key=key,
            label=meta.label,
            unit=meta.unit,
            current=current,
            mean=moments.mean,
            std=moments.std,
            z_score=z_score,
            inverse=meta.inverse,
            directional_z=directional_z,
            abs_z=abs_z,
            pct=pct,
            severity=self.severity_for(abs_z),
        )


def summarise(records: Sequence[AttributionRecord]) -> str:
    """One-line description of the primary driver."""
    if not records:
        return "No attribution data"
    top = records[0]
    return f"{top.label} is {abs(top.pct):.0f}% {top.direction} baseline (Z={top.abs_z:.2f})"


def to_prompt_context(records: Sequence[AttributionRecord], limit: int = 3) -> str:
    """Compact multi-line payload for explanation prompts."""
    lines = []
    for r in records[:limit]:
        sign = "+" if r.pct > 0 else ""
        lines.append(
            f"{r.label}: {r.current:.2f}{r.unit} (baseline {r.mean:.2f}{r.unit}, "
            f"{sign}{r.pct:.1f}%, Z={r.abs_z:.3f})"
        )
    return "\n".join(lines)
