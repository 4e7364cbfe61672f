"""
Unit tests for monitoring sessions and the session registry.
"""

import pytest

from src.alerts.notifiers import AlertDispatcher, CallbackNotifier
from src.core.config import AlertConfig, Config, ForestConfig, SessionConfig
from src.core.exceptions import (
    ConfigurationError,
    OutOfOrderTickError,
    SessionClosedError,
    SessionNotFoundError,
)
from src.scoring.schema import ScoringPhase
from src.sessions import MonitoringSession, SessionRegistry, SessionStatus
from src.sessions.session import replay
from tests.factories import DOWNSTREAM_FAILURE, jittered_baseline, make_snapshot


@pytest.fixture
def hair_trigger_config():
    """Every scored tick after the baseline fires at least a WARNING."""
    return Config(
        log_level="WARNING",
        forest=ForestConfig(seed=99),
        alerts=AlertConfig(
            warning_score=0,
            critical_score=0,
            emergency_score=100,
            warning_consecutive_ticks=1,
            hysteresis_delta=0.0,
        ),
    )


def _session(settings, **kwargs):
    return MonitoringSession("s-1", service="checkout", settings=settings, **kwargs)


def test_only_every_third_tick_is_scored(seeded_config):
    session = _session(seeded_config)
    outcomes = replay(session, jittered_baseline(6))

    assert [o.scored for o in outcomes] == [False, False, True, False, False, True]
    assert outcomes[0].scoring is None
    assert len(session.history) == 6


def test_learning_then_scoring(seeded_config):
    session = _session(seeded_config)
    outcomes = replay(session, jittered_baseline(12))
    scored = [o for o in outcomes if o.scored]

    assert [o.scoring.phase for o in scored] == [
        ScoringPhase.LEARNING,
        ScoringPhase.LEARNING,
        ScoringPhase.LEARNING,
        ScoringPhase.SCORING,
    ]
    assert scored[0].scoring.progress == pytest.approx(0.25)
    assert scored[0].attribution == []
    assert scored[-1].attribution
    assert session.summary()["phase"] == "SCORING"


def test_scoring_interval_from_config():
    settings = Config(forest=ForestConfig(seed=1), session=SessionConfig(scoring_interval=1))
    session = _session(settings)
    outcomes = replay(session, jittered_baseline(4))
    assert all(o.scored for o in outcomes)


def test_out_of_order_tick_is_rejected(seeded_config):
    session = _session(seeded_config)
    replay(session, jittered_baseline(3))
    with pytest.raises(OutOfOrderTickError):
        session.process(make_snapshot(2))
    assert session.ticks_seen == 3


def test_attribution_baseline_freezes():
    settings = Config(
        forest=ForestConfig(seed=1),
        session=SessionConfig(history_capacity=20, attribution_baseline_ticks=12),
    )
    session = _session(settings)
    replay(session, jittered_baseline(12))
    frozen = session.attribution_baseline()
    assert [s.tick_index for s in frozen] == list(range(1, 13))

    for tick in range(13, 40):
        session.process(make_snapshot(tick))

    assert session.history[0].tick_index > 1
    assert session.attribution_baseline() is frozen


def test_alerts_are_dispatched_with_analysis_context(hair_trigger_config):
    received = []
    analyses = []
    session = _session(
        hair_trigger_config,
        dispatcher=AlertDispatcher([CallbackNotifier(received.append)]),
        analysis_hook=lambda alert, recent: analyses.append((alert, recent)),
    )

    outcomes = replay(session, jittered_baseline(12) + [make_snapshot(t, **DOWNSTREAM_FAILURE) for t in (13, 14, 15)])
    fired = [o.alert for o in outcomes if o.alert is not None]

    assert fired
    assert received == fired
    assert session.alerts()[0] == fired[-1]
    # CRITICAL and above trigger analysis with the six latest ticks
    alert, recent = analyses[-1]
    assert alert.auto_analyze is True
    assert [s.tick_index for s in recent] == [10, 11, 12, 13, 14, 15]


def test_no_alerts_while_learning(hair_trigger_config):
    session = _session(hair_trigger_config)
    outcomes = replay(session, jittered_baseline(11))
    assert all(o.alert is None for o in outcomes)


def test_skipped_tick_does_not_alert(hair_trigger_config):
    session = _session(hair_trigger_config)
    replay(session, jittered_baseline(12))
    count = session.alert_engine.count

    replay(session, [make_snapshot(13), make_snapshot(14), make_snapshot(15, p99=None)])

    assert session.last_result.skipped is True
    assert session.alert_engine.count == count


def test_close_resets_and_rejects_ticks(seeded_config):
    session = _session(seeded_config)
    replay(session, jittered_baseline(12))
    session.close()

    assert session.status == SessionStatus.COMPLETED
    assert len(session.history) == 0
    assert session.pipeline.phase == ScoringPhase.LEARNING
    assert session.alerts() == []
    with pytest.raises(SessionClosedError):
        session.process(make_snapshot(13))
    # Closing twice is harmless
    session.close()


def test_summary(seeded_config):
    session = _session(seeded_config, environment="staging")
    replay(session, jittered_baseline(3))
    summary = session.summary()
    assert summary == {
        "id": "s-1",
        "service": "checkout",
        "environment": "staging",
        "status": "ACTIVE",
        "phase": "LEARNING",
        "score": 0,
        "ticks": 3,
        "alert_count": 0,
    }


def test_registry_lifecycle(seeded_config):
    registry = SessionRegistry(settings=seeded_config, async_dispatch=False)
    session = registry.create("checkout", session_id="deploy-1")

    assert "deploy-1" in registry
    assert len(registry) == 1
    assert registry.get("deploy-1") is session
    assert registry.list()[0]["id"] == "deploy-1"

    with pytest.raises(ValueError):
        registry.create("checkout", session_id="deploy-1")

    assert registry.end("deploy-1") is True
    assert session.status == SessionStatus.COMPLETED
    assert registry.end("deploy-1") is False
    with pytest.raises(SessionNotFoundError):
        registry.get("deploy-1")


def test_registry_generates_ids_and_isolates_sessions(seeded_config):
    registry = SessionRegistry(settings=seeded_config, async_dispatch=False)
    a = registry.create("checkout")
    b = registry.create("search")

    assert a.session_id != b.session_id
    assert a.session_id.startswith("session-")
    replay(a, jittered_baseline(12))
    assert a.pipeline.phase == ScoringPhase.SCORING
    assert b.pipeline.phase == ScoringPhase.LEARNING
    assert a.history is not b.history

    registry.close_all()
    assert len(registry) == 0


def test_registry_default_notifiers_are_attached(hair_trigger_config):
    received = []
    registry = SessionRegistry(
        settings=hair_trigger_config,
        notifiers=[CallbackNotifier(received.append)],
        async_dispatch=False,
    )
    session = registry.create("checkout")
    replay(session, jittered_baseline(12))

    assert received
    assert received[0].session_id == session.session_id


def test_history_must_hold_the_attribution_baseline():
    settings = Config(log_level="WARNING", session=SessionConfig(history_capacity=20))
    with pytest.raises(ConfigurationError):
        _session(settings)

    roomy = Config(
        log_level="WARNING",
        session=SessionConfig(history_capacity=48, attribution_baseline_ticks=48),
    )
    assert _session(roomy).history.capacity == 48
