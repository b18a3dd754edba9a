"""
Centralized configuration for the strength model, projections and features.

Every tunable constant that is not an intensity lookup table lives here.
Intensity tables are pure data and live in ``ingrain.intensity``.
"""

from dataclasses import dataclass, field

import pandas as pd


# ---------------------------------------------------------------------------
# Strength model parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelParams:
    """Base rates of the habit strength model (before intensity scaling)."""

    # k: growth per completed scheduled day
    base_growth_rate: float = 0.08
    # lambda: decay per missed scheduled day
    base_decay_rate: float = 0.03
    # Fraction of peak control a bad habit never falls below
    residual_memory_factor: float = 0.15
    max_strength: float = 1.0

    # Used for the reported intensity weight only
    intensity_penalty_per_level: float = 0.1

    # lambda_soft for long non-scheduled gaps (good habits)
    soft_drift_rate: float = 0.002
    # Non-scheduled days tolerated before soft drift kicks in
    soft_drift_grace_days: int = 3

    def __post_init__(self):
        if self.max_strength <= 0:
            raise ValueError(f"max_strength must be positive, got {self.max_strength}")
        if self.base_growth_rate <= 0 or self.base_decay_rate <= 0:
            raise ValueError("Growth and decay rates must be positive")
        if not 0.0 <= self.residual_memory_factor <= 1.0:
            raise ValueError(
                f"residual_memory_factor must be in [0, 1], got {self.residual_memory_factor}"
            )


# ---------------------------------------------------------------------------
# Forward projection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectionParams:
    """Horizons and milestones used by the prediction projector."""

    one_week_days: int = 7
    two_week_days: int = 14
    one_month_days: int = 30

    near_target: float = 0.95
    full_target: float = 1.0

    # Hard cap on day-by-day milestone simulation
    max_iterations: int = 254


# ---------------------------------------------------------------------------
# Completion trend classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrendParams:
    """Window and threshold for the recent-vs-prior completion trend."""

    window_days: int = 7
    # Ratio delta (percentage points / 100) separating improving/declining
    threshold: float = 0.10


# ---------------------------------------------------------------------------
# Optional capabilities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeatureFlags:
    """
    Opt-in model extensions. All disabled reproduces the baseline model.

    - partial_credit:      growth scaled by the day's completion ratio
    - personalization:     user-specific growth/decay multipliers
    - context_consistency: growth bonus/penalty from context stability
    """

    partial_credit: bool = False
    personalization: bool = False
    context_consistency: bool = False


@dataclass(frozen=True)
class PersonalizationParams:
    """Per-user rate multipliers (1.0 = population average)."""

    growth_multiplier: float = 1.0
    decay_multiplier: float = 1.0

    def __post_init__(self):
        if self.growth_multiplier <= 0 or self.decay_multiplier <= 0:
            raise ValueError("Personalization multipliers must be positive")


@dataclass(frozen=True)
class ContextParams:
    """
    Context stability adjustments.

    consistency > high_consistency  → growth * (1 + stability_bonus)
    consistency < low_consistency   → growth * (1 - variability_penalty)
    """

    stability_bonus: float = 0.15
    variability_penalty: float = 0.10
    high_consistency: float = 0.7
    low_consistency: float = 0.3
    # How many previous contexts a day is compared against
    lookback: int = 7
    # Time-of-day difference (seconds) at which similarity reaches 0
    time_tolerance_seconds: float = 1800.0


# ---------------------------------------------------------------------------
# Top-level config aggregate
# ---------------------------------------------------------------------------

def _now_utc() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration. One instance per invocation."""

    timezone: str = "UTC"
    # 4 AM avoids attributing late-night activity to the next day
    day_start_hour: int = 4
    analysis_end: pd.Timestamp = field(default_factory=_now_utc)

    model: ModelParams = field(default_factory=ModelParams)
    projection: ProjectionParams = field(default_factory=ProjectionParams)
    trend: TrendParams = field(default_factory=TrendParams)
    features: FeatureFlags = field(default_factory=FeatureFlags)
    personalization: PersonalizationParams = field(default_factory=PersonalizationParams)
    context: ContextParams = field(default_factory=ContextParams)

    def __post_init__(self):
        if not 0 <= self.day_start_hour <= 23:
            raise ValueError(f"day_start_hour must be in [0, 23], got {self.day_start_hour}")
        try:
            pd.Timestamp("2000-01-01").tz_localize(self.timezone)
        except (KeyError, ValueError, TypeError) as err:
            raise ValueError(f"Unknown timezone: {self.timezone!r}") from err
        if pd.isna(pd.Timestamp(self.analysis_end)):
            raise ValueError("analysis_end must be a valid instant")
