"""
Analysis context builder.

Turns an auto-analyze alert and the snapshots leading up to it into a
stable, machine-consumable AnalysisContext for the explanation collaborator.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from src.alerts.schema import AlertRecord
from src.attribution.engine import summarise, to_prompt_context
from src.attribution.schema import AttributionRecord
from src.data.schema import MetricSnapshot

from .config import AnalysisContextConfig
from .schema import AnalysisContext, DriverSummary

logger = logging.getLogger(__name__)


class AnalysisContextBuilder:
    """
    Deterministic analysis context builder.

    Rules:
    - Only auto-analyze alerts at or above min_score produce a context.
    - Drivers keep the alert's attribution order (highest |Z| first).
    - Snapshots are the most recent max_snapshots, oldest first.
    """

    def __init__(self, config: Optional[AnalysisContextConfig] = None) -> None:
        self.config = config or AnalysisContextConfig()

    def build(
        self,
        alert: AlertRecord,
        recent: Sequence[MetricSnapshot],
        service: Optional[str] = None,
    ) -> Optional[AnalysisContext]:
        """
        Build the context for one alert.

        Args:
            alert: Fired alert
            recent: Snapshots leading up to the alert, oldest first
            service: Optional service name

        Returns:
            AnalysisContext, or None when the alert should not be analyzed
        """
        if not alert.auto_analyze or alert.score < self.config.min_score:
            return None

        drivers = alert.attribution[: self.config.max_drivers]
        snapshots = list(recent)[-self.config.max_snapshots:] if self.config.max_snapshots else []

        return AnalysisContext(
            session_id=alert.session_id,
            service=service,
            alert_id=alert.alert_id,
            severity=alert.severity,
            score=alert.score,
            created_at=datetime.now(timezone.utc),
            summary=summarise(drivers),
            prompt_context=to_prompt_context(drivers, limit=self.config.max_drivers),
            drivers=[self._driver(record) for record in drivers],
            recent_snapshots=[s.to_wire() for s in snapshots],
        )

    def _driver(self, record: AttributionRecord) -> DriverSummary:
        return DriverSummary(
            key=record.key.value,
            label=record.label,
            unit=record.unit,
            current=record.current,
            baseline=record.mean,
            pct=record.pct,
            z=record.abs_z,
            severity=record.severity.value,
        )

    def hook(
        self,
        sink: Callable[[AnalysisContext], None],
        service: Optional[str] = None,
    ) -> Callable[[AlertRecord, List[MetricSnapshot]], None]:
        """Wrap a context consumer as a session analysis hook."""

        def _analysis_hook(alert: AlertRecord, recent: List[MetricSnapshot]) -> None:
            context = self.build(alert, recent, service=service)
            if context is None:
                return
            logger.info(f"Auto-analysis context {context.context_id} for {alert.alert_id}")
            sink(context)

        return _analysis_hook
