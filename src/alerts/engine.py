"""
Alert engine: threshold detection with hysteresis.

Three severity tiers:
- WARNING: score >= 50 for 3 consecutive scoring ticks (sustained concern)
- CRITICAL: score >= 72 (immediate attention)
- EMERGENCY: score >= 86 (rollback territory)

Hysteresis prevents alert spam: a severity that already fired this session
only fires again once the score has risen by hysteresis_delta over the score
it last fired at. Each severity keeps its own gate, so escalating to a
higher tier fires immediately.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional, Sequence, Set

from src.attribution.schema import AttributionRecord
from src.core.config import AlertConfig, config

from .schema import AlertRecord, AlertSeverity

logger = logging.getLogger(__name__)

RECOMMENDED_ACTIONS: Dict[AlertSeverity, str] = {
    AlertSeverity.EMERGENCY: "Consider immediate rollback.",
    AlertSeverity.CRITICAL: "Page on-call SRE. Review recent commits for {label}.",
    AlertSeverity.WARNING: "Monitor closely. Prepare rollback runbook.",
}

AUTO_ANALYZE_SEVERITIES = {AlertSeverity.CRITICAL, AlertSeverity.EMERGENCY}


class AlertEngine:
    """
    Per-session alert state machine.

    evaluate() is called once per scoring tick and returns at most one alert.
    There is no clearing event; silence is the recovery signal.
    """

    def __init__(self, alert_config: Optional[AlertConfig] = None) -> None:
        self.config = alert_config or config.alerts
        self.reset()

    def reset(self) -> None:
        self.consecutive_high = 0
        self.last_fired_score: Dict[AlertSeverity, int] = {}
        self.fired_severities: Set[AlertSeverity] = set()
        self._alerts: Deque[AlertRecord] = deque(maxlen=self.config.max_alerts)

    def select_severity(self, score: int) -> Optional[AlertSeverity]:
        """Highest tier whose condition holds, given the current counter."""
        if score >= self.config.emergency_score:
            return AlertSeverity.EMERGENCY
        if score >= self.config.critical_score:
            return AlertSeverity.CRITICAL
        if self.consecutive_high >= self.config.warning_consecutive_ticks:
            return AlertSeverity.WARNING
        return None

    def evaluate(
        self,
        score: float,
        attribution: Sequence[AttributionRecord],
        session_id: str,
    ) -> Optional[AlertRecord]:
        """
        Evaluate one scoring tick.

        Args:
            score: Calibrated risk index (clamped to 0-100)
            attribution: Ranked attribution records, primary driver first
            session_id: Session / deployment identifier

        Returns:
            The new AlertRecord, or None if nothing fires
        """
        score = _clamp_score(score)

        if score >= self.config.warning_score:
            self.consecutive_high += 1
        else:
            self.consecutive_high = 0

        severity = self.select_severity(score)
        if severity is None:
            return None

        if severity in self.fired_severities:
            delta = score - self.last_fired_score[severity]
            if delta < self.config.hysteresis_delta:
                logger.debug(
                    f"{severity.value} suppressed for {session_id}: "
                    f"score {score} is {delta} above last fire"
                )
                return None

        alert = self._build_alert(severity, score, list(attribution), session_id)
        self._alerts.appendleft(alert)
        self.last_fired_score[severity] = score
        self.fired_severities.add(severity)

        logger.info(f"{severity.value} fired for {session_id} (score {score})")
        return alert

    def _build_alert(
        self,
        severity: AlertSeverity,
        score: int,
        attribution: List[AttributionRecord],
        session_id: str,
    ) -> AlertRecord:
        top = attribution[0] if attribution else None
        return AlertRecord(
            severity=severity,
            score=score,
            session_id=session_id,
            timestamp=datetime.now(timezone.utc),
            primary_driver=top.label if top else "Unknown",
            primary_key=top.key if top else None,
            pct=top.pct if top else 0.0,
            z=top.abs_z if top else 0.0,
            attribution=attribution[:3],
            message=build_message(severity, score, top),
            action=recommend_action(severity, top),
            auto_analyze=severity in AUTO_ANALYZE_SEVERITIES,
        )

    def alerts(self) -> List[AlertRecord]:
        """Fired alerts, most recent first."""
        return list(self._alerts)

    @property
    def count(self) -> int:
        return len(self._alerts)

    def highest(self) -> Optional[AlertRecord]:
        """Most recently fired alert."""
        return self._alerts[0] if self._alerts else None

    def has_emergency(self) -> bool:
        return AlertSeverity.EMERGENCY in self.fired_severities


def _clamp_score(score: float) -> int:
    return int(math.floor(min(max(float(score), 0.0), 100.0) + 0.5))


def build_message(severity: AlertSeverity, score: int, top: Optional[AttributionRecord]) -> str:
    pct = top.pct if top else 0.0
    arrow = "↑" if pct > 0 else "↓"
    label = top.label if top else "metrics"
    z = top.abs_z if top else 0.0
    return (
        f"{severity.value}: Risk {score}/100 — {label} {arrow}{abs(pct):.0f}% "
        f"from baseline (Z={z:.2f})"
    )


def recommend_action(severity: AlertSeverity, top: Optional[AttributionRecord]) -> str:
    template = RECOMMENDED_ACTIONS.get(severity, "Monitor situation.")
    return template.format(label=top.label if top else "affected service")
