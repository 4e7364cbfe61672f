"""
Monitoring session: one scoring pipeline per monitored target.

A session owns its rolling history, scoring pipeline, attribution engine and
alert engine; nothing is shared between sessions. Every tick is appended to
the history, while scoring, attribution and alert evaluation run on every
scoring_interval-th tick.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from src.alerts.engine import AlertEngine
from src.alerts.notifiers import AlertDispatcher
from src.alerts.schema import AlertRecord
from src.attribution.engine import AttributionEngine
from src.attribution.schema import AttributionRecord
from src.core.config import Config, config as default_config
from src.core.exceptions import ConfigurationError, SessionClosedError
from src.data.history import HistoryBuffer
from src.data.schema import MetricSnapshot
from src.scoring.forest import AnomalyForest
from src.scoring.pipeline import ScoringPipeline
from src.scoring.schema import ScoringPhase, ScoringResult

logger = logging.getLogger(__name__)

# Receives the alert and the most recent snapshots (oldest first)
AnalysisHook = Callable[[AlertRecord, List[MetricSnapshot]], None]


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class TickOutcome(BaseModel):
    """
    Result of processing one tick.

    scoring, attribution and alert are only populated on scoring ticks.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    snapshot: MetricSnapshot
    scored: bool = False
    scoring: Optional[ScoringResult] = None
    attribution: List[AttributionRecord] = Field(default_factory=list)
    alert: Optional[AlertRecord] = None


class MonitoringSession:
    """
    Processes the tick stream of one monitored target.

    Ticks are processed one at a time under a lock; close() takes the same
    lock, so no tick can be mid-flight once it returns.
    """

    def __init__(
        self,
        session_id: str,
        service: str = "unknown",
        environment: str = "production",
        settings: Optional[Config] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        analysis_hook: Optional[AnalysisHook] = None,
    ) -> None:
        self.session_id = session_id
        self.service = service
        self.environment = environment
        self.settings = settings or default_config
        self.dispatcher = dispatcher or AlertDispatcher()
        self.analysis_hook = analysis_hook

        cadence = self.settings.session
        if cadence.history_capacity < max(cadence.baseline_ticks_needed, cadence.attribution_baseline_ticks):
            raise ConfigurationError(
                f"history_capacity {cadence.history_capacity} cannot hold the baseline windows "
                f"({cadence.baseline_ticks_needed} scoring, {cadence.attribution_baseline_ticks} attribution)"
            )
        self.scoring_interval = cadence.scoring_interval
        self.attribution_baseline_ticks = cadence.attribution_baseline_ticks
        self.analysis_history_ticks = cadence.analysis_history_ticks

        self.history = HistoryBuffer(cadence.history_capacity)
        self.pipeline = ScoringPipeline(
            forest=AnomalyForest(forest_config=self.settings.forest),
            settings=self.settings,
        )
        self.attribution_engine = AttributionEngine(self.settings.attribution)
        self.alert_engine = AlertEngine(self.settings.alerts)

        self.status = SessionStatus.ACTIVE
        self.ticks_seen = 0
        self.last_result: Optional[ScoringResult] = None
        self._attribution_baseline: Optional[List[MetricSnapshot]] = None
        self._lock = threading.Lock()

        logger.info(f"Session {session_id} started for {service} [{environment}]")

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def attribution_baseline(self) -> List[MetricSnapshot]:
        """
        Oldest snapshots used as the attribution baseline.

        Frozen once attribution_baseline_ticks snapshots have been seen, so
        history eviction never moves the "normal" window.
        """
        if self._attribution_baseline is not None:
            return self._attribution_baseline
        window = self.history.oldest(self.attribution_baseline_ticks)
        if len(window) >= self.attribution_baseline_ticks:
            self._attribution_baseline = window
        return window

    def process(self, snapshot: MetricSnapshot) -> TickOutcome:
        """
        Append one tick and score it if it falls on the scoring cadence.

        Raises:
            SessionClosedError: If the session has ended
            OutOfOrderTickError: If the tick index does not advance
        """
        with self._lock:
            if not self.is_active:
                raise SessionClosedError(f"Session {self.session_id} has ended")

            self.history.append(snapshot)
            self.ticks_seen += 1

            if self.ticks_seen % self.scoring_interval != 0:
                return TickOutcome(session_id=self.session_id, snapshot=snapshot)

            return self._score(snapshot)

    def _score(self, snapshot: MetricSnapshot) -> TickOutcome:
        previous_phase = self.pipeline.phase
        result = self.pipeline.update(snapshot, self.history)
        if result.phase != previous_phase:
            logger.info(
                f"Session {self.session_id} phase {previous_phase.value} -> {result.phase.value}"
            )
        self.last_result = result

        attribution = self.attribution_engine.compute(snapshot, self.attribution_baseline())

        alert = None
        if result.phase == ScoringPhase.SCORING and not result.skipped:
            alert = self.alert_engine.evaluate(result.score, attribution, self.session_id)
        if alert is not None:
            self._deliver(alert)

        logger.debug(
            f"Session {self.session_id} tick={snapshot.tick_index} "
            f"phase={result.phase.value} score={result.score}"
        )
        return TickOutcome(
            session_id=self.session_id,
            snapshot=snapshot,
            scored=True,
            scoring=result,
            attribution=attribution,
            alert=alert,
        )

    def _deliver(self, alert: AlertRecord) -> None:
        self.dispatcher.dispatch(alert)
        if alert.auto_analyze and self.analysis_hook is not None:
            recent = self.history.latest(self.analysis_history_ticks)
            self.dispatcher.submit(self.analysis_hook, alert, recent)

    def alerts(self) -> List[AlertRecord]:
        return self.alert_engine.alerts()

    def close(self) -> None:
        """End the session and discard its scoring state."""
        with self._lock:
            if not self.is_active:
                return
            self.status = SessionStatus.COMPLETED
            self.pipeline.reset()
            self.alert_engine.reset()
            self.history.clear()
            self._attribution_baseline = None
            self.last_result = None
        logger.info(f"Session {self.session_id} ended after {self.ticks_seen} ticks")

    def summary(self) -> Dict[str, object]:
        return {
            "id": self.session_id,
            "service": self.service,
            "environment": self.environment,
            "status": self.status.value,
            "phase": self.pipeline.phase.value,
            "score": self.pipeline.last_score,
            "ticks": self.ticks_seen,
            "alert_count": self.alert_engine.count,
        }


def replay(session: MonitoringSession, snapshots: Sequence[MetricSnapshot]) -> List[TickOutcome]:
    """Feed recorded snapshots through a session in order."""
    return [session.process(snapshot) for snapshot in snapshots]
