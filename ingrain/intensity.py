"""
Intensity parameter mapping: level 1 (light) … 4 (extreme) → model multipliers.

All functions are pure lookups. Levels outside [1, 4] are clamped.
Derived rates are clamped into safe ranges so exponents never degenerate.
"""

from typing import NamedTuple

import numpy as np

from ingrain.config import EngineConfig


MIN_LEVEL = 1
MAX_LEVEL = 4

GROWTH_RATE_RANGE = (0.005, 0.20)
DECAY_RATE_RANGE = (0.001, 0.25)
EXTINCTION_RATE_RANGE = (0.01, 0.20)
REINSTATEMENT_RATE_RANGE = (0.03, 0.25)

# Decay scaling from the third consecutive miss onward
REPEATED_MISS_FACTOR = 1.25


# ---------------------------------------------------------------------------
# Lookup tables (index = level - 1)
# ---------------------------------------------------------------------------

RESIDUAL_FLOOR_FRACTIONS = (0.20, 0.17, 0.15, 0.12)
EXPERIENCE_FLOOR_SLOPES = (0.0025, 0.0020, 0.0015, 0.0010)
FIRST_MISS_LENIENCY = (0.40, 0.50, 0.60, 0.70)


class BadHabitParams(NamedTuple):
    """Self-control model parameters for one intensity level."""

    k_ext: float           # control growth per avoided scheduled day
    lambda_reinst: float   # control drop per lapse
    floor_min: float       # baseline control, never undercut
    soft_drift: float      # drift per day of a long non-scheduled gap


BAD_HABIT_PARAMS = (
    BadHabitParams(k_ext=0.09, lambda_reinst=0.06, floor_min=0.25, soft_drift=0.002),
    BadHabitParams(k_ext=0.07, lambda_reinst=0.08, floor_min=0.20, soft_drift=0.002),
    BadHabitParams(k_ext=0.05, lambda_reinst=0.10, floor_min=0.15, soft_drift=0.003),
    BadHabitParams(k_ext=0.035, lambda_reinst=0.12, floor_min=0.10, soft_drift=0.003),
)


def clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


def _clip(value: float, bounds) -> float:
    return float(np.clip(value, bounds[0], bounds[1]))


# ---------------------------------------------------------------------------
# Multipliers
# ---------------------------------------------------------------------------

def growth_multiplier(level: int) -> float:
    """Higher intensity grows slower: 0.88^(L-1)."""
    return 0.88 ** (clamp_level(level) - 1)


def decay_multiplier(level: int) -> float:
    """Higher intensity decays faster: 1 + 0.12(L-1)."""
    return 1.0 + 0.12 * (clamp_level(level) - 1)


def soft_drift_multiplier(level: int) -> float:
    return 1.0 + 0.10 * (clamp_level(level) - 1)


def residual_floor_fraction(level: int) -> float:
    """Fraction of peak strength retained as muscle memory."""
    return RESIDUAL_FLOOR_FRACTIONS[clamp_level(level) - 1]


def experience_floor_slope(level: int) -> float:
    return EXPERIENCE_FLOOR_SLOPES[clamp_level(level) - 1]


def first_miss_leniency(level: int) -> float:
    """Decay scaling on the first miss after a streak."""
    return FIRST_MISS_LENIENCY[clamp_level(level) - 1]


def bad_habit_params(level: int) -> BadHabitParams:
    return BAD_HABIT_PARAMS[clamp_level(level) - 1]


# ---------------------------------------------------------------------------
# Effective (clamped) rates
# ---------------------------------------------------------------------------

def growth_rate(level: int, cfg: EngineConfig) -> float:
    """Per-completion growth rate for good habits."""
    base = cfg.model.base_growth_rate
    if cfg.features.personalization:
        base *= cfg.personalization.growth_multiplier
    return _clip(base * growth_multiplier(level), GROWTH_RATE_RANGE)


def decay_rate(level: int, cfg: EngineConfig) -> float:
    """Base per-miss decay rate for good habits."""
    base = cfg.model.base_decay_rate
    if cfg.features.personalization:
        base *= cfg.personalization.decay_multiplier
    return _clip(base * decay_multiplier(level), DECAY_RATE_RANGE)


def miss_decay_rate(level: int, consecutive_misses: int, cfg: EngineConfig) -> float:
    """
    Decay rate for the n-th consecutive miss.

    Miss 1 is lenient, miss 2 uses the base rate, later misses are harsher.
    """
    base = decay_rate(level, cfg)
    if consecutive_misses <= 1:
        return _clip(base * first_miss_leniency(level), DECAY_RATE_RANGE)
    if consecutive_misses == 2:
        return base
    return _clip(base * REPEATED_MISS_FACTOR, DECAY_RATE_RANGE)


def extinction_rate(level: int) -> float:
    """Bad habits: effective control growth per avoided day."""
    return _clip(bad_habit_params(level).k_ext * growth_multiplier(level), EXTINCTION_RATE_RANGE)


def reinstatement_rate(level: int) -> float:
    """Bad habits: effective control loss per lapse."""
    return _clip(
        bad_habit_params(level).lambda_reinst * decay_multiplier(level),
        REINSTATEMENT_RATE_RANGE,
    )


def soft_drift_rate(level: int, is_bad_habit: bool, cfg: EngineConfig) -> float:
    if is_bad_habit:
        return bad_habit_params(level).soft_drift * soft_drift_multiplier(level)
    return cfg.model.soft_drift_rate * soft_drift_multiplier(level)


def intensity_weight(level: int, cfg: EngineConfig) -> float:
    """Reported weight in [0.2, 1.0]; 1.0 for the lightest intensity."""
    penalty = cfg.model.intensity_penalty_per_level * max(0, int(level) - 1)
    return float(np.clip(1.0 - penalty, 0.2, 1.0))
