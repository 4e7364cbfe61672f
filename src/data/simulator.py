"""
Synthetic metric source for demos, replays and tests.

Generates an autoregressive AR(1) stream around a service profile: each value
is pulled toward its target with phi=0.82 plus Gaussian noise, so changes are
gradual like real telemetry. DEGRADED mode ramps a failure-mode shift in over
18 ticks (90 seconds at a 5s cadence).
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional

from .schema import MetricKey, MetricSnapshot

logger = logging.getLogger(__name__)


class SimulatorMode(str, Enum):
    IDLE = "IDLE"
    NORMAL = "NORMAL"
    DEGRADED = "DEGRADED"


# Service baselines; different services have different normals
SERVICE_PROFILES: Dict[str, Dict[MetricKey, float]] = {
    "api-gateway": {MetricKey.RATE: 1240, MetricKey.ERROR_RATE: 0.75, MetricKey.P99: 172, MetricKey.SATURATION: 40},
    "payment-svc": {MetricKey.RATE: 340, MetricKey.ERROR_RATE: 0.42, MetricKey.P99: 89, MetricKey.SATURATION: 28},
    "auth-svc": {MetricKey.RATE: 890, MetricKey.ERROR_RATE: 0.31, MetricKey.P99: 54, MetricKey.SATURATION: 35},
    "order-processor": {MetricKey.RATE: 180, MetricKey.ERROR_RATE: 1.1, MetricKey.P99: 340, MetricKey.SATURATION: 55},
}

# Per-metric noise level
METRIC_DEVIATIONS: Dict[MetricKey, float] = {
    MetricKey.RATE: 55,
    MetricKey.ERROR_RATE: 0.18,
    MetricKey.P99: 9,
    MetricKey.SATURATION: 3.2,
}

# Full-ramp shift per failure mode
FAILURE_MODES: Dict[str, Dict[MetricKey, float]] = {
    "db_timeout": {MetricKey.RATE: -220, MetricKey.ERROR_RATE: 8.4, MetricKey.P99: 680, MetricKey.SATURATION: 22},
    "memory_leak": {MetricKey.RATE: -80, MetricKey.ERROR_RATE: 2.1, MetricKey.P99: 220, MetricKey.SATURATION: 58},
    "cpu_spike": {MetricKey.RATE: -400, MetricKey.ERROR_RATE: 5.2, MetricKey.P99: 440, MetricKey.SATURATION: 52},
    "downstream_fail": {MetricKey.RATE: -640, MetricKey.ERROR_RATE: 12.4, MetricKey.P99: 710, MetricKey.SATURATION: 14},
}

# Source-side caps
METRIC_CAPS: Dict[MetricKey, float] = {
    MetricKey.ERROR_RATE: 50.0,
    MetricKey.SATURATION: 100.0,
}

_SNAPSHOT_FIELDS = {
    MetricKey.RATE: "rate",
    MetricKey.ERROR_RATE: "error_rate",
    MetricKey.P99: "p99",
    MetricKey.SATURATION: "saturation",
}


class MetricSimulator:
    """
    AR(1) metric generator with injectable failure modes.

    Usage::

        sim = MetricSimulator("payment-svc", seed=7)
        baseline = sim.run(12)
        sim.inject_fault("db_timeout")
        degraded = sim.run(20)
    """

    phi = 0.82
    noise_scale = 0.25
    ramp_ticks = 18

    def __init__(
        self,
        profile: str = "api-gateway",
        seed: Optional[int] = None,
        tick_interval_seconds: float = 5.0,
        start: Optional[datetime] = None,
        mode: SimulatorMode = SimulatorMode.NORMAL,
    ) -> None:
        if profile not in SERVICE_PROFILES:
            raise ValueError(f"Unknown service profile: {profile}")
        self.profile = profile
        self.tick_interval = timedelta(seconds=tick_interval_seconds)
        self.start = start or datetime.now(timezone.utc)
        self._rng = random.Random(seed)
        self.mode = mode
        self.failure_mode = "downstream_fail"
        self.ramp = 0.0
        self.tick_count = 0
        self.base = dict(SERVICE_PROFILES[profile])
        self.current = dict(self.base)

    def _shift(self, key: MetricKey) -> float:
        shifts = FAILURE_MODES.get(self.failure_mode, FAILURE_MODES["downstream_fail"])
        return shifts.get(key, 0.0) * self.ramp

    def tick(self) -> Optional[MetricSnapshot]:
        """Produce the next snapshot, or None while idle."""
        if self.mode == SimulatorMode.IDLE:
            return None
        if self.mode == SimulatorMode.DEGRADED:
            self.ramp = min(1.0, self.ramp + 1.0 / self.ramp_ticks)

        self.tick_count += 1
        values: Dict[MetricKey, float] = {}
        for key in MetricKey:
            shift = self._shift(key) if self.mode == SimulatorMode.DEGRADED else 0.0
            noise = self._rng.gauss(0.0, 1.0) * METRIC_DEVIATIONS[key] * self.noise_scale
            target = self.base[key] + shift
            nxt = self.phi * self.current[key] + (1 - self.phi) * target + noise
            if key in METRIC_CAPS:
                nxt = min(METRIC_CAPS[key], nxt)
            values[key] = max(0.0, nxt)

        self.current = values
        return MetricSnapshot(
            timestamp=self.start + self.tick_interval * self.tick_count,
            tick_index=self.tick_count,
            **{_SNAPSHOT_FIELDS[key]: value for key, value in values.items()},
        )

    def run(self, n: int) -> List[MetricSnapshot]:
        """Produce n consecutive snapshots (skipping none while idle)."""
        snapshots = []
        for _ in range(n):
            snapshot = self.tick()
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    def set_mode(self, mode: SimulatorMode, failure_mode: str = "downstream_fail") -> None:
        self.mode = SimulatorMode(mode)
        self.failure_mode = failure_mode
        self.ramp = 0.0
        if self.mode != SimulatorMode.DEGRADED:
            self.current = dict(self.base)

    def inject_fault(self, failure_mode: str = "downstream_fail") -> None:
        """Start ramping toward a failure mode without resetting the tick counter."""
        if failure_mode not in FAILURE_MODES:
            raise ValueError(f"Unknown failure mode: {failure_mode}")
        logger.info(f"Injecting {failure_mode} into simulated {self.profile}")
        self.mode = SimulatorMode.DEGRADED
        self.failure_mode = failure_mode
        self.ramp = 0.0

    def recover(self) -> None:
        self.mode = SimulatorMode.NORMAL
        self.ramp = 0.0
