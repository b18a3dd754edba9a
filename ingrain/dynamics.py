"""
Per-event strength updates shared by the simulation engine and the projector.

Good habits approach max_strength asymptotically on completion and decay
exponentially on misses, never below a floor that rises with practice and
with personal peak. Bad habits mirror this with "control": each avoided day
pulls control toward 1.0, each lapse pulls it down toward an
intensity-dependent baseline.

The projector must call exactly these functions so that projecting N days
and replaying the same synthetic days through the engine agree bit for bit.
"""

import numpy as np

from ingrain import intensity


BASE_EXPERIENCE_FLOOR = 0.05
MAX_EXPERIENCE_FLOOR = 0.50
# Bad habits use a single experience-floor slope for every intensity
BAD_HABIT_EXPERIENCE_SLOPE = 0.002

MIN_TAU_DAYS = 5.0
MIN_GROWTH_CONSTANT = 0.01


# ---------------------------------------------------------------------------
# Good habits
# ---------------------------------------------------------------------------

def growth_constant(rate: float) -> float:
    """
    Map a growth rate to the per-event exponent k.

    tau = max(5, 1 / rate) days; k = max(1 / tau, 0.01).
    """
    tau = max(MIN_TAU_DAYS, 1.0 / max(rate, intensity.GROWTH_RATE_RANGE[0]))
    return max(1.0 / tau, MIN_GROWTH_CONSTANT)


def grow(strength: float, rate: float, max_strength: float) -> float:
    """One completed scheduled day: s += (max - s)(1 - e^-k)."""
    k = growth_constant(rate)
    increment = (max_strength - strength) * (1.0 - np.exp(-k))
    return float(np.clip(strength + increment, 0.0, max_strength))


def decay(strength: float, rate: float, floor: float) -> float:
    """One missed scheduled day, bounded below by ``floor``."""
    return max(floor, float(strength * np.exp(-rate)))


def experience_floor(level: int, streak_days: int) -> float:
    """Minimum strength earned by cumulative practice, capped at 0.50."""
    raw = BASE_EXPERIENCE_FLOOR + intensity.experience_floor_slope(level) * streak_days
    return float(np.clip(raw, BASE_EXPERIENCE_FLOOR, MAX_EXPERIENCE_FLOOR))


def good_habit_floor(level: int, peak: float, streak_days: int) -> float:
    residual = intensity.residual_floor_fraction(level) * peak
    return max(residual, experience_floor(level, streak_days))


# ---------------------------------------------------------------------------
# Bad habits (control strength C)
# ---------------------------------------------------------------------------

def avoid(control: float, k_ext: float) -> float:
    """One avoided scheduled day: C = 1 - (1 - C) e^-k_ext."""
    return float(np.clip(1.0 - (1.0 - control) * np.exp(-k_ext), 0.0, 1.0))


def lapse(control: float, lambda_reinst: float, floor: float) -> float:
    """One lapse: C = max(floor, C e^-lambda), kept within [floor, 1]."""
    return float(np.clip(max(floor, control * np.exp(-lambda_reinst)), floor, 1.0))


def bad_habit_experience_floor(avoided_days: int) -> float:
    return min(MAX_EXPERIENCE_FLOOR, BASE_EXPERIENCE_FLOOR + BAD_HABIT_EXPERIENCE_SLOPE * avoided_days)


def bad_habit_floor(
    level: int,
    avoided_days: int,
    peak: float,
    residual_memory_factor: float,
) -> float:
    """
    Control floor. The experience component only applies once at least one
    day has been avoided; before that the intensity baseline rules.
    """
    floor = max(intensity.bad_habit_params(level).floor_min, peak * residual_memory_factor)
    if avoided_days > 0:
        floor = max(floor, bad_habit_experience_floor(avoided_days))
    return floor


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

def soft_drift(strength: float, rate: float, gap_days: int, floor: float) -> float:
    """Slow decay over a long non-scheduled gap of ``gap_days`` days."""
    return max(floor, float(strength * np.exp(-rate * gap_days)))
