"""
Unit tests for the synthetic metric source.
"""

from datetime import datetime, timezone

import pytest

from src.data.schema import MetricKey
from src.data.simulator import FAILURE_MODES, SERVICE_PROFILES, MetricSimulator, SimulatorMode

START = datetime(2025, 2, 7, 10, 0, tzinfo=timezone.utc)


def test_seeded_simulators_are_reproducible():
    a = MetricSimulator("payment-svc", seed=7, start=START).run(20)
    b = MetricSimulator("payment-svc", seed=7, start=START).run(20)
    assert [s.vector() for s in a] == [s.vector() for s in b]


def test_ticks_are_numbered_and_spaced():
    snapshots = MetricSimulator(seed=1, start=START, tick_interval_seconds=5.0).run(3)
    assert [s.tick_index for s in snapshots] == [1, 2, 3]
    assert (snapshots[1].timestamp - snapshots[0].timestamp).total_seconds() == 5.0
    assert all(s.is_complete for s in snapshots)


def test_normal_mode_stays_near_profile():
    snapshots = MetricSimulator("auth-svc", seed=3, start=START).run(60)
    base = SERVICE_PROFILES["auth-svc"]
    mean_p99 = sum(s.p99 for s in snapshots) / len(snapshots)
    assert abs(mean_p99 - base[MetricKey.P99]) < 10


def test_idle_mode_produces_nothing():
    sim = MetricSimulator(seed=1, mode=SimulatorMode.IDLE)
    assert sim.tick() is None
    assert sim.run(5) == []
    assert sim.tick_count == 0


def test_fault_ramps_toward_failure_mode():
    sim = MetricSimulator("api-gateway", seed=5, start=START)
    sim.run(12)
    sim.inject_fault("db_timeout")
    degraded = sim.run(40)

    assert sim.ramp == pytest.approx(1.0)
    assert sim.mode == SimulatorMode.DEGRADED
    tail = degraded[-10:]
    base_p99 = SERVICE_PROFILES["api-gateway"][MetricKey.P99]
    shift = FAILURE_MODES["db_timeout"][MetricKey.P99]
    assert min(s.p99 for s in tail) > base_p99 + shift / 2
    # Tick numbering continues through the fault
    assert degraded[0].tick_index == 13


def test_caps_and_floor_are_applied():
    sim = MetricSimulator("order-processor", seed=2, start=START)
    sim.inject_fault("downstream_fail")
    for snapshot in sim.run(80):
        assert snapshot.error_rate <= 50.0
        assert snapshot.saturation <= 100.0
        assert snapshot.rate >= 0.0


def test_recover_returns_to_normal():
    sim = MetricSimulator(seed=4, start=START)
    sim.inject_fault("cpu_spike")
    sim.run(5)
    sim.recover()
    assert sim.mode == SimulatorMode.NORMAL
    assert sim.ramp == 0.0


def test_set_mode_resets_state():
    sim = MetricSimulator(seed=4, start=START)
    sim.set_mode(SimulatorMode.DEGRADED, "memory_leak")
    sim.run(5)
    sim.set_mode(SimulatorMode.NORMAL)
    assert sim.current == sim.base


def test_unknown_profile_and_fault():
    with pytest.raises(ValueError):
        MetricSimulator("billing")
    with pytest.raises(ValueError):
        MetricSimulator().inject_fault("meteor_strike")
