"""
Unit tests for EWMA smoothing and risk calibration.
"""

import pytest

from src.core.config import CalibrationConfig, SmoothingConfig
from src.scoring.smoothing import RiskCalibrator, TrendSmoother


def test_smoother_starts_at_initial_value():
    smoother = TrendSmoother()
    assert smoother.value == 0.5


def test_smoother_update_formula():
    smoother = TrendSmoother(alpha=0.32, initial=0.5)
    assert smoother.update(1.0) == pytest.approx(0.66)
    assert smoother.update(1.0) == pytest.approx(0.32 + 0.68 * 0.66)


def test_smoother_converges_to_constant_input():
    smoother = TrendSmoother()
    for _ in range(60):
        smoother.update(0.9)
    assert smoother.value == pytest.approx(0.9, abs=1e-6)


def test_smoother_rejects_invalid_alpha():
    with pytest.raises(ValueError):
        TrendSmoother(alpha=0.0)
    with pytest.raises(ValueError):
        TrendSmoother(alpha=1.5)


def test_smoother_reset():
    smoother = TrendSmoother.from_config(SmoothingConfig(alpha=0.5, initial=0.2))
    smoother.update(1.0)
    smoother.reset()
    assert smoother.value == 0.2


def test_combine_weights():
    calibrator = RiskCalibrator()
    assert calibrator.combine(1.0, 0.0) == pytest.approx(0.62)
    assert calibrator.combine(0.0, 1.0) == pytest.approx(0.38)
    assert calibrator.combine(0.5, 0.5) == pytest.approx(0.5)


@pytest.mark.parametrize(
    "combined,expected",
    [
        (0.5, 19),
        (0.61, 50),
        (0.0, 0),
    ],
)
def test_calibrate_known_points(combined, expected):
    assert RiskCalibrator().calibrate(combined) == expected


def test_calibrate_high_values():
    calibrator = RiskCalibrator()
    assert calibrator.calibrate(0.85) >= 80
    assert calibrator.calibrate(1.0) == 99


def test_calibrate_is_monotonic_and_bounded():
    calibrator = RiskCalibrator()
    scores = [calibrator.calibrate(i / 100) for i in range(0, 101)]
    assert scores == sorted(scores)
    assert all(0 <= s <= 100 for s in scores)


def test_calibrate_extreme_inputs_do_not_overflow():
    calibrator = RiskCalibrator()
    assert calibrator.calibrate(-1000.0) == 0
    assert calibrator.calibrate(1000.0) == 100


def test_calibrator_from_config():
    calibrator = RiskCalibrator.from_config(CalibrationConfig(center=0.5, steepness=10.0))
    assert calibrator.calibrate(0.5) == 50
