"""
Unit tests for the metric snapshot schema.
"""

import math
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from src.data.schema import METRIC_META, MetricKey, MetricSnapshot
from tests.factories import make_snapshot


def test_wire_aliases_are_accepted():
    snapshot = MetricSnapshot.model_validate(
        {"rate": 1000, "errorRate": 1.5, "p99": 120, "saturation": 30, "tickIndex": 4}
    )
    assert snapshot.error_rate == 1.5
    assert snapshot.tick_index == 4


def test_field_names_are_accepted():
    snapshot = MetricSnapshot(rate=1.0, error_rate=2.0, p99=3.0, saturation=4.0, tick_index=0)
    assert snapshot.value(MetricKey.ERROR_RATE) == 2.0


def test_tick_index_is_required():
    with pytest.raises(ValidationError):
        MetricSnapshot(rate=1.0, error_rate=2.0, p99=3.0, saturation=4.0)


def test_negative_metrics_are_rejected():
    with pytest.raises(ValidationError):
        make_snapshot(1, p99=-1.0)


def test_nan_is_stored_as_missing():
    snapshot = make_snapshot(1, saturation=float("nan"))
    assert snapshot.saturation is None
    assert snapshot.is_complete is False


def test_infinite_values_are_incomplete():
    assert make_snapshot(1, p99=float("inf")).is_complete is False


def test_vector_order_and_missing_values():
    snapshot = make_snapshot(1, rate=10.0, error_rate=None, p99=30.0, saturation=40.0)
    vector = snapshot.vector()
    assert vector[0] == 10.0
    assert math.isnan(vector[1])
    assert vector[2:] == (30.0, 40.0)


def test_naive_timestamp_is_utc():
    snapshot = MetricSnapshot(rate=1.0, tick_index=1, timestamp=datetime(2025, 1, 1, 12, 0))
    assert snapshot.timestamp.tzinfo == timezone.utc
    assert snapshot.timestamp.hour == 12


def test_default_timestamp_is_now_utc():
    snapshot = MetricSnapshot(rate=1.0, tick_index=1)
    assert snapshot.timestamp.tzinfo is not None


def test_snapshots_are_frozen():
    snapshot = make_snapshot(1)
    with pytest.raises(ValidationError):
        snapshot.p99 = 5.0


def test_to_wire_uses_aliases():
    wire = make_snapshot(3).to_wire()
    assert wire["errorRate"] == 1.0
    assert wire["tickIndex"] == 3
    assert "error_rate" not in wire


def test_metric_metadata():
    assert METRIC_META[MetricKey.RATE].inverse is True
    assert MetricKey.P99.meta.label == "P99 Latency"
    assert MetricKey.P99.meta.unit == "ms"
    assert not any(MetricKey(k).meta.inverse for k in ("errorRate", "p99", "saturation"))
