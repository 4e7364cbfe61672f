"""
Unit tests for the LEARNING -> SCORING pipeline.
"""

import pytest

from src.attribution import AttributionEngine, AttributionSeverity
from src.data.schema import MetricKey
from src.scoring.forest import AnomalyForest
from src.scoring.pipeline import ScoringPipeline
from src.scoring.schema import ScoringPhase, Trend
from tests.factories import DOWNSTREAM_FAILURE, jittered_baseline, make_snapshot


@pytest.fixture
def pipeline(seeded_config):
    return ScoringPipeline(settings=seeded_config)


def _warm_up(pipeline, baseline):
    history = []
    result = None
    for snapshot in baseline:
        history.append(snapshot)
        result = pipeline.update(snapshot, history)
    return history, result


def test_no_snapshot_is_idle(pipeline):
    result = pipeline.update(None, [])
    assert result.phase == ScoringPhase.IDLE
    assert result.score == 0


def test_learning_reports_progress(pipeline, baseline_snapshots):
    history = baseline_snapshots[:6]
    result = pipeline.update(history[-1], history)

    assert result.phase == ScoringPhase.LEARNING
    assert result.score == 0
    assert result.progress == pytest.approx(0.5)
    assert result.ticks_remaining == 6
    assert result.if_score is None


def test_first_scoring_tick_is_the_baseline_closer(pipeline, baseline_snapshots):
    history = []
    for snapshot in baseline_snapshots[:11]:
        history.append(snapshot)
        assert pipeline.update(snapshot, history).phase == ScoringPhase.LEARNING

    history.append(baseline_snapshots[11])
    result = pipeline.update(baseline_snapshots[11], history)

    assert result.phase == ScoringPhase.SCORING
    assert pipeline.forest.trained
    # Without drift the closer stays below the CRITICAL tier
    assert result.score < 72
    assert result.combined == pytest.approx(0.62 * result.if_score + 0.38 * result.ewma_score, abs=1e-3)


def test_downstream_failure_scores_critical(pipeline, baseline_snapshots):
    history, normal = _warm_up(pipeline, baseline_snapshots)

    failing = make_snapshot(13, **DOWNSTREAM_FAILURE)
    history.append(failing)
    result = pipeline.update(failing, history)

    assert result.phase == ScoringPhase.SCORING
    assert result.if_score > normal.if_score
    assert result.score >= normal.score + 10
    assert result.score >= 72

    drivers = AttributionEngine().compute(failing, baseline_snapshots)
    assert drivers[0].severity == AttributionSeverity.CRITICAL
    assert drivers[0].key in {MetricKey.P99, MetricKey.ERROR_RATE, MetricKey.RATE}


def test_forest_is_trained_once(pipeline, baseline_snapshots):
    history, _ = _warm_up(pipeline, baseline_snapshots)
    trees = pipeline.forest.trees

    for tick in range(13, 20):
        snapshot = make_snapshot(tick)
        history.append(snapshot)
        pipeline.update(snapshot, history)

    assert pipeline.forest.trees is trees


def test_incomplete_snapshot_is_skipped(pipeline, baseline_snapshots):
    history, result = _warm_up(pipeline, baseline_snapshots)
    ewma_before = pipeline.ewma
    scores_before = pipeline.score_history()

    gap = make_snapshot(13, p99=None)
    history.append(gap)
    skipped = pipeline.update(gap, history)

    assert skipped.skipped is True
    assert skipped.phase == ScoringPhase.SCORING
    assert skipped.score == result.score
    assert pipeline.ewma == ewma_before
    assert pipeline.score_history() == scores_before


def test_insufficient_baseline_stays_learning(pipeline):
    baseline = jittered_baseline(12)
    for i in (0, 3, 6):
        baseline[i] = make_snapshot(i + 1, rate=None)

    history, result = _warm_up(pipeline, baseline)

    assert result.phase == ScoringPhase.LEARNING
    assert result.progress == pytest.approx(0.99)
    assert result.ticks_remaining == 0
    assert pipeline.forest.trained is False


def test_trend_directions(pipeline):
    assert pipeline.trend() == Trend.STABLE

    pipeline.scores.extend([10, 10])
    assert pipeline.trend() == Trend.STABLE

    pipeline.scores.extend([10, 40, 40, 40])
    assert pipeline.trend() == Trend.RISING

    pipeline.scores.clear()
    pipeline.scores.extend([60, 60, 20, 20, 20, 20])
    assert pipeline.trend() == Trend.FALLING

    pipeline.scores.clear()
    pipeline.scores.extend([30, 31, 29, 30, 32, 30])
    assert pipeline.trend() == Trend.STABLE


def test_reset_returns_to_learning(pipeline, baseline_snapshots):
    _warm_up(pipeline, baseline_snapshots)
    pipeline.reset()

    assert pipeline.phase == ScoringPhase.LEARNING
    assert pipeline.forest.trained is False
    assert pipeline.ewma == 0.5
    assert pipeline.score_history() == []


def test_custom_forest_is_used(baseline_snapshots, seeded_config):
    forest = AnomalyForest(n_trees=10, subsample_size=16, seed=7)
    pipeline = ScoringPipeline(forest=forest, settings=seeded_config)
    _warm_up(pipeline, baseline_snapshots)

    assert pipeline.forest is forest
    assert forest.n_trees == 10
    assert len(forest.trees) == 10
