"""
Prediction projector: forward simulation from the engine's final state.

Projections assume every future scheduled day is a success and continue
the engine's own day-by-day state machine (``engine.step_day``), so
unscheduled gaps drift exactly as they would in a replayed history.
Nothing here mutates the history analysis it reads.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ingrain import intensity
from ingrain.config import EngineConfig
from ingrain.days import iter_custom_days, next_custom_day, shift_days, start_of_custom_day
from ingrain.engine import resume_state, scheduled_stats, step_day
from ingrain.models import CompletionTrend, HabitProfile, HistoryAnalysis, PredictionSet
from ingrain.oracles import CompletionOracle, ScheduleOracle

logger = logging.getLogger(__name__)

# Absorbs float noise when a ratio delta sits exactly on the threshold
_TREND_EPSILON = 1e-9


class _AlwaysSucceeds:
    """Completion oracle for projected days: completed (good) or avoided (bad)."""

    def __init__(self, is_bad_habit: bool):
        self.completed = not is_bad_habit

    def is_completed(self, day) -> bool:
        return self.completed


def success_rate(habit: HabitProfile, cfg: EngineConfig) -> float:
    """Per-event rate used for projections (growth or extinction)."""
    if habit.is_bad_habit:
        return intensity.extinction_rate(habit.intensity_level)
    return intensity.growth_rate(habit.intensity_level, cfg)


def _ratio(actual: int, expected: int) -> float:
    return actual / expected if expected > 0 else 0.0


# ---------------------------------------------------------------------------
# Horizon projection
# ---------------------------------------------------------------------------

def project_future_strength(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    current: float,
    days_ahead: int,
    cfg: EngineConfig,
    analysis: Optional[HistoryAnalysis] = None,
) -> float:
    """
    Strength after succeeding on every scheduled day in [now, now + days_ahead).

    Pass the ``analysis`` that produced ``current`` to continue its floors and
    its trailing unscheduled gap; without it the projection starts fresh.
    """
    tz, hour = cfg.timezone, cfg.day_start_hour
    start = start_of_custom_day(cfg.analysis_end, tz, hour)
    end = shift_days(start, days_ahead, tz, hour)

    state = resume_state(current, analysis, cfg)
    oracle = _AlwaysSucceeds(habit.is_bad_habit)
    for day in iter_custom_days(start, end, tz, hour):
        step_day(habit, day, schedule, oracle, None, state, cfg)
    return float(np.clip(state.strength, 0.0, cfg.model.max_strength))


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------

def estimate_days_and_completions_to_target(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    current: float,
    target: float,
    cfg: EngineConfig,
    analysis: Optional[HistoryAnalysis] = None,
) -> Tuple[Optional[int], Optional[int]]:
    """
    Calendar days and scheduled successes needed to reach ``target``,
    counting the analysis day as day 1.

    Returns (None, None) when already at/above target or when the iteration
    cap is used up.
    """
    if current >= target:
        return None, None

    tz, hour = cfg.timezone, cfg.day_start_hour
    cap = cfg.projection.max_iterations
    state = resume_state(current, analysis, cfg)
    oracle = _AlwaysSucceeds(habit.is_bad_habit)

    days = 0
    completions = 0
    day = start_of_custom_day(cfg.analysis_end, tz, hour)

    while state.strength < target and days < cap:
        days += 1
        if step_day(habit, day, schedule, oracle, None, state, cfg) is not None:
            completions += 1
        following = next_custom_day(day, tz, hour)
        if following is None:
            logger.warning("Milestone projection stopped at %s: next day unresolvable", day)
            break
        day = following

    if days >= cap or state.strength < target:
        return None, None
    return days, completions


# ---------------------------------------------------------------------------
# Completion trend
# ---------------------------------------------------------------------------

def _window_stats(habit, schedule, completions, lo, hi, floor, cfg) -> Tuple[int, int]:
    lo = max(lo, floor)
    if lo >= hi:
        return 0, 0
    return scheduled_stats(habit, schedule, completions, lo, hi, cfg)


def analyze_completion_trend(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    completions: CompletionOracle,
    cfg: EngineConfig,
) -> CompletionTrend:
    """
    Compare the success ratio of the trailing window with the one before.

    Days before the habit's start are excluded from both windows; a habit
    without a start date has no history and is stable.
    """
    if habit.start_date is None:
        return CompletionTrend.STABLE

    tz, hour = cfg.timezone, cfg.day_start_hour
    window = cfg.trend.window_days
    today = start_of_custom_day(cfg.analysis_end, tz, hour)
    recent_start = shift_days(today, -window, tz, hour)
    prior_start = shift_days(today, -2 * window, tz, hour)
    floor = start_of_custom_day(habit.start_date, tz, hour)

    recent = _window_stats(habit, schedule, completions, recent_start, today, floor, cfg)
    prior = _window_stats(habit, schedule, completions, prior_start, recent_start, floor, cfg)

    delta = _ratio(recent[1], recent[0]) - _ratio(prior[1], prior[0])
    threshold = cfg.trend.threshold
    if delta >= threshold - _TREND_EPSILON:
        return CompletionTrend.IMPROVING
    if delta <= -threshold + _TREND_EPSILON:
        return CompletionTrend.DECLINING
    return CompletionTrend.STABLE


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def compute_predictions(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    completions: CompletionOracle,
    analysis: HistoryAnalysis,
    cfg: EngineConfig,
) -> PredictionSet:
    p = cfg.projection
    current = analysis.current_strength

    def automation(days_ahead: int) -> float:
        strength = project_future_strength(habit, schedule, current, days_ahead, cfg, analysis)
        return min(100.0, strength * 100.0)

    days_95, completions_95 = estimate_days_and_completions_to_target(
        habit, schedule, current, p.near_target, cfg, analysis
    )
    days_100, completions_100 = estimate_days_and_completions_to_target(
        habit, schedule, current, p.full_target, cfg, analysis
    )

    return PredictionSet(
        one_week_automation=automation(p.one_week_days),
        two_week_automation=automation(p.two_week_days),
        one_month_automation=automation(p.one_month_days),
        days_to_95=days_95,
        days_to_100=days_100,
        completions_to_95=completions_95,
        completions_to_100=completions_100,
        trend=analyze_completion_trend(habit, schedule, completions, cfg),
        trend_factor=success_rate(habit, cfg),
    )
