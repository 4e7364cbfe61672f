"""
Application configuration for the Service Risk Sentinel.

Provides environment-aware settings with conservative defaults. All scoring
constants and alert thresholds are configurable to avoid hard-coded
"magic numbers" in the engines.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ForestConfig(BaseModel):
	"""
	Isolation forest configuration.

	Notes:
	- n_trees: number of independently built isolation trees.
	- subsample_size: points drawn per tree (capped by baseline length).
	- min_baseline: smallest baseline the forest will train on.
	- seed: optional seed for reproducible forests (None in production).
	- normalize_by_sample: normalize path lengths by the realized subsample
	  size instead of subsample_size (small baselines score lower).
	"""

	n_trees: int = Field(80, ge=1)
	subsample_size: int = Field(128, ge=2)
	min_baseline: int = Field(10, ge=2)
	seed: Optional[int] = None
	normalize_by_sample: bool = False


class SmoothingConfig(BaseModel):
	"""
	EWMA trend smoother configuration.

	Rationale:
	- alpha 0.32 is reactive without following single-tick noise.
	- initial 0.5 is the forest's neutral score.
	"""

	alpha: float = Field(0.32, gt=0.0, le=1.0)
	initial: float = Field(0.5, ge=0.0, le=1.0)


class CalibrationConfig(BaseModel):
	"""
	Sigmoid calibration onto the 0-100 risk scale.

	The weights and sigmoid shape are empirically tuned; keep them stable so
	that recorded scores remain comparable.
	"""

	forest_weight: float = Field(0.62, ge=0.0, le=1.0)
	ewma_weight: float = Field(0.38, ge=0.0, le=1.0)
	center: float = Field(0.61, ge=0.0, le=1.0)
	steepness: float = Field(13.0, gt=0.0)


class AttributionConfig(BaseModel):
	"""
	Per-metric Z-score attribution configuration.

	Severity tiers are assigned on |Z| with strict comparisons.
	"""

	min_baseline: int = Field(10, ge=2)
	elevated_z: float = Field(1.0, ge=0.0)
	warning_z: float = Field(2.0, ge=0.0)
	critical_z: float = Field(3.5, ge=0.0)

	@model_validator(mode="after")
	def _check_order(self) -> "AttributionConfig":
		if not (self.elevated_z <= self.warning_z <= self.critical_z):
			raise ValueError("Attribution thresholds must be ordered elevated <= warning <= critical")
		return self


class AlertConfig(BaseModel):
	"""
	Alert tier thresholds and hysteresis.

	Notes:
	- warning_score requires warning_consecutive_ticks qualifying ticks.
	- critical_score and emergency_score fire immediately.
	- hysteresis_delta: rise over a severity's last fired score needed to re-fire it.
	- max_alerts: cap on the per-session alert log.
	"""

	warning_score: int = Field(50, ge=0, le=100)
	critical_score: int = Field(72, ge=0, le=100)
	emergency_score: int = Field(86, ge=0, le=100)
	warning_consecutive_ticks: int = Field(3, ge=1)
	hysteresis_delta: float = Field(10.0, ge=0.0)
	max_alerts: int = Field(200, ge=1)

	@model_validator(mode="after")
	def _check_order(self) -> "AlertConfig":
		if not (self.warning_score <= self.critical_score <= self.emergency_score):
			raise ValueError("Alert thresholds must be ordered warning <= critical <= emergency")
		return self


class SessionConfig(BaseModel):
	"""
	Per-session cadence and buffer sizes.

	Notes:
	- tick_interval_seconds: metric collection cadence (5s by default).
	- scoring_interval: score every Nth tick (3 -> every 15s).
	- baseline_ticks_needed: ticks collected before the forest trains.
	- history_capacity: rolling history length (144 ticks ~ 12 minutes).
	- attribution_baseline_ticks: oldest ticks used as attribution baseline.
	- analysis_history_ticks: recent ticks handed to the auto-analyze hook.
	"""

	tick_interval_seconds: float = Field(5.0, gt=0.0)
	scoring_interval: int = Field(3, ge=1)
	baseline_ticks_needed: int = Field(12, ge=1)
	history_capacity: int = Field(144, ge=1)
	attribution_baseline_ticks: int = Field(48, ge=1)
	analysis_history_ticks: int = Field(6, ge=1)
	dispatch_workers: int = Field(4, ge=1)


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.

	Nested values are overridden with a double underscore, e.g.
	SENTINEL_ALERTS__CRITICAL_SCORE=70.
	"""

	model_config = SettingsConfigDict(
		env_prefix="SENTINEL_",
		env_file=".env",
		env_nested_delimiter="__",
		extra="ignore",
	)

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")
	forest: ForestConfig = ForestConfig()
	smoothing: SmoothingConfig = SmoothingConfig()
	calibration: CalibrationConfig = CalibrationConfig()
	attribution: AttributionConfig = AttributionConfig()
	alerts: AlertConfig = AlertConfig()
	session: SessionConfig = SessionConfig()

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)


config = Config()
