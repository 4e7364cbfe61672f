"""
Pytest configuration and shared fixtures.

Provides seeded configuration instances and deterministic metric streams for
unit and integration tests.
"""

from datetime import timedelta
from typing import Callable, List

import pandas as pd
import pytest

from src.core.config import Config, ForestConfig
from src.data.schema import MetricSnapshot
from tests.factories import BASE_TIME, jittered_baseline, make_snapshot


@pytest.fixture
def snapshot_factory() -> Callable[..., MetricSnapshot]:
    return make_snapshot


@pytest.fixture
def baseline_snapshots() -> List[MetricSnapshot]:
    """Twelve jittered snapshots of a healthy service."""
    return jittered_baseline()


@pytest.fixture
def seeded_config() -> Config:
    """
    Test configuration with a seeded forest.

    Built explicitly so tests don't depend on .env or SENTINEL_* variables.
    """
    return Config(log_level="WARNING", forest=ForestConfig(seed=1234))


@pytest.fixture
def recorded_frame() -> pd.DataFrame:
    """Recorded telemetry as exported by a metrics backend."""
    rows = []
    for tick in range(1, 21):
        rows.append(
            {
                "tickIndex": tick,
                "timestamp": (BASE_TIME + timedelta(seconds=5 * tick)).isoformat(),
                "rate": 1000 + (tick % 3) * 5,
                "errorRate": 1.0 + (tick % 2) * 0.1,
                "p99": 100 + (tick % 4),
                "saturation": 20 + (tick % 5) * 0.5,
            }
        )
    return pd.DataFrame(rows)


def pytest_configure(config):
    """
    Pytest hook for custom configuration.

    Registers custom markers used throughout tests.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (deferred CI)"
    )
