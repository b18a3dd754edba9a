"""
Strength simulation: replay a habit's scheduled days into a strength series.

One pass over the habit days in [day(start_date), day(analysis_end)).
Per day the habit is either not scheduled, or scheduled and then completed /
missed (good habits) or avoided / lapsed (bad habits). A StrengthPoint is
appended for every scheduled day; nothing is rewritten.

The pass is a pure function of (profile, oracle answers, config). All
running state lives in a per-call ``RunState`` and is discarded afterwards.
Streak facts reported to callers come from the host's StreakLedger; the
simulation's own streak counters only drive the model.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Tuple

import numpy as np

from ingrain import dynamics, intensity
from ingrain.config import EngineConfig
from ingrain.context import HabitContext, context_consistency, context_growth_factor
from ingrain.days import check_range, iter_custom_days, next_custom_day, start_of_custom_day
from ingrain.models import HabitProfile, HistoryAnalysis, StrengthPoint
from ingrain.oracles import (
    CompletionOracle,
    ContextOracle,
    PartialCompletionOracle,
    ScheduleOracle,
    StreakLedger,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Counting (single source of truth for expected / actual)
# ---------------------------------------------------------------------------

def is_success(habit: HabitProfile, completed: bool) -> bool:
    """Completed for good habits; not lapsed for bad habits."""
    return completed != habit.is_bad_habit


def scheduled_stats(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    completions: CompletionOracle,
    start,
    end,
    cfg: EngineConfig,
) -> Tuple[int, int]:
    """
    (expected, successful) scheduled days over the half-open day range
    [day(start), day(end)).
    """
    tz, hour = cfg.timezone, cfg.day_start_hour
    first = start_of_custom_day(start, tz, hour)
    last = start_of_custom_day(end, tz, hour)
    check_range(first, last)

    expected = 0
    actual = 0
    for day in iter_custom_days(first, last, tz, hour):
        if schedule.is_active(day):
            expected += 1
            if is_success(habit, completions.is_completed(day)):
                actual += 1
    return expected, actual


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------

@dataclass
class RunState:
    strength: float
    peak: float
    streak_days: int = 0
    gap_days: int = 0
    streak_count: int = 0
    streak_lengths_total: int = 0
    streak_length: int = 0
    in_streak: bool = False
    consecutive_misses: int = 0
    non_scheduled_run: int = 0
    contexts_seen: Deque[HabitContext] = field(default_factory=deque)
    consistency_scores: List[float] = field(default_factory=list)

    def open_streak(self) -> None:
        if not self.in_streak:
            self.in_streak = True
            self.streak_length = 0
            self.streak_count += 1

    def close_streak(self) -> None:
        if self.in_streak:
            self.in_streak = False
            self.streak_lengths_total += self.streak_length
            self.streak_length = 0


# ---------------------------------------------------------------------------
# Day transitions
# ---------------------------------------------------------------------------

def _bad_floor(habit: HabitProfile, state: RunState, cfg: EngineConfig) -> float:
    return dynamics.bad_habit_floor(
        habit.intensity_level,
        state.streak_days,
        state.peak,
        cfg.model.residual_memory_factor,
    )


def _apply_soft_drift(habit: HabitProfile, state: RunState, cfg: EngineConfig) -> None:
    level = habit.intensity_level
    rate = intensity.soft_drift_rate(level, habit.is_bad_habit, cfg)
    if habit.is_bad_habit:
        floor = _bad_floor(habit, state, cfg)
        drifted = dynamics.soft_drift(state.strength, rate, state.non_scheduled_run, floor)
        state.strength = float(np.clip(drifted, floor, cfg.model.max_strength))
    else:
        floor = dynamics.good_habit_floor(level, state.peak, state.streak_days)
        state.strength = dynamics.soft_drift(state.strength, rate, state.non_scheduled_run, floor)


def _effective_growth_rate(
    habit: HabitProfile,
    day,
    completions: CompletionOracle,
    contexts: Optional[ContextOracle],
    state: RunState,
    cfg: EngineConfig,
) -> Tuple[bool, float]:
    """Whether the good habit counts as completed and the growth rate to use."""
    rate = intensity.growth_rate(habit.intensity_level, cfg)
    features = cfg.features

    if features.partial_credit and isinstance(completions, PartialCompletionOracle):
        ratio = float(np.clip(completions.completion_ratio(day), 0.0, 1.0))
        completed = ratio > 0.0
        rate *= ratio
    else:
        completed = completions.is_completed(day)

    if features.context_consistency and contexts is not None:
        current = contexts.context_for(day)
        consistency = context_consistency(current, state.contexts_seen, cfg.context)
        if current is not None:
            state.contexts_seen.append(current)
        if consistency is not None:
            state.consistency_scores.append(consistency)
        rate *= context_growth_factor(consistency, cfg.context)

    return completed, rate


def _good_day(habit, day, completions, contexts, state: RunState, cfg: EngineConfig) -> None:
    level = habit.intensity_level
    max_strength = cfg.model.max_strength
    completed, rate = _effective_growth_rate(habit, day, completions, contexts, state, cfg)

    if completed:
        state.open_streak()
        state.streak_length += 1
        state.streak_days += 1
        state.consecutive_misses = 0
        state.strength = dynamics.grow(state.strength, rate, max_strength)
        state.peak = max(state.peak, state.strength)
        return

    state.close_streak()
    state.consecutive_misses += 1
    state.gap_days += 1
    decay = intensity.miss_decay_rate(level, state.consecutive_misses, cfg)
    floor = dynamics.good_habit_floor(level, state.peak, state.streak_days)
    decayed = dynamics.decay(state.strength, decay, floor)
    state.strength = float(np.clip(decayed, 0.0, max_strength))


def _bad_day(habit, day, completions, state: RunState, cfg: EngineConfig) -> None:
    level = habit.intensity_level
    floor = _bad_floor(habit, state, cfg)
    lapsed = completions.is_completed(day)

    if not lapsed:
        state.strength = dynamics.avoid(state.strength, intensity.extinction_rate(level))
        state.streak_days += 1
        state.streak_length += 1
        if not state.in_streak:
            state.in_streak = True
            state.streak_count += 1
    else:
        state.strength = dynamics.lapse(state.strength, intensity.reinstatement_rate(level), floor)
        state.gap_days += 1
        state.close_streak()

    state.strength = float(np.clip(state.strength, floor, cfg.model.max_strength))
    state.peak = max(state.peak, state.strength)


def step_day(
    habit: HabitProfile,
    day,
    schedule: ScheduleOracle,
    completions: CompletionOracle,
    contexts: Optional[ContextOracle],
    state: RunState,
    cfg: EngineConfig,
) -> Optional[StrengthPoint]:
    """
    Advance ``state`` by one habit day.

    Returns the day's StrengthPoint, or None when the day is not scheduled.
    """
    grace = cfg.model.soft_drift_grace_days

    if not schedule.is_active(day):
        state.non_scheduled_run += 1
        if habit.is_bad_habit and state.non_scheduled_run > grace:
            _apply_soft_drift(habit, state, cfg)
        return None

    if state.non_scheduled_run > grace:
        _apply_soft_drift(habit, state, cfg)
    state.non_scheduled_run = 0

    if habit.is_bad_habit:
        _bad_day(habit, day, completions, state, cfg)
    else:
        _good_day(habit, day, completions, contexts, state, cfg)

    return StrengthPoint(
        date=day,
        strength=state.strength,
        is_in_streak=state.in_streak,
        streak_length=state.streak_length,
    )


def resume_state(
    current: float,
    analysis: Optional[HistoryAnalysis],
    cfg: EngineConfig,
) -> RunState:
    """Model state at the end of ``analysis``, for continuing the history forward."""
    if analysis is None:
        return RunState(strength=current, peak=current)
    return RunState(
        strength=current,
        peak=max(analysis.peak_strength, current),
        streak_days=analysis.total_streak_days,
        non_scheduled_run=analysis.trailing_gap_days,
        contexts_seen=deque(maxlen=cfg.context.lookback),
    )


# ---------------------------------------------------------------------------
# Full history
# ---------------------------------------------------------------------------

def _empty_analysis(streaks: StreakLedger) -> HistoryAnalysis:
    return HistoryAnalysis(
        strength_history=(),
        current_strength=0.0,
        peak_strength=0.0,
        total_streak_days=0,
        total_gap_days=0,
        current_streak=0,
        best_streak_ever=streaks.best_streak_ever(),
        longest_streak=0,
        average_streak_length=0.0,
        recovery_potential=0.0,
        experience_floor=dynamics.BASE_EXPERIENCE_FLOOR,
    )


def _final_experience_floor(habit: HabitProfile, streak_days: int) -> float:
    level = habit.intensity_level
    if not habit.is_bad_habit:
        return dynamics.experience_floor(level, streak_days)
    floor_min = intensity.bad_habit_params(level).floor_min
    if streak_days > 0:
        return max(floor_min, dynamics.bad_habit_experience_floor(streak_days))
    return floor_min


def simulate_history(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    completions: CompletionOracle,
    streaks: StreakLedger,
    cfg: EngineConfig,
    contexts: Optional[ContextOracle] = None,
) -> HistoryAnalysis:
    """
    Run the day-by-day state machine and summarise it.

    Raises:
        InvalidRangeError: analysis_end falls on a habit day before start_date.
    """
    if habit.start_date is None:
        return _empty_analysis(streaks)

    tz, hour = cfg.timezone, cfg.day_start_hour
    first = start_of_custom_day(habit.start_date, tz, hour)
    last = start_of_custom_day(cfg.analysis_end, tz, hour)
    check_range(first, last)

    level = habit.intensity_level
    current_streak = streaks.current_streak(cfg.analysis_end)
    longest_streak = streaks.longest_streak()
    best_streak_ever = streaks.best_streak_ever()

    if habit.is_bad_habit:
        baseline = intensity.bad_habit_params(level).floor_min
        if first == last:
            # Created on the analysis day: nothing to replay yet
            return HistoryAnalysis(
                strength_history=(StrengthPoint(first, baseline, False, 0),),
                current_strength=baseline,
                peak_strength=baseline,
                total_streak_days=0,
                total_gap_days=0,
                current_streak=current_streak,
                best_streak_ever=best_streak_ever,
                longest_streak=longest_streak,
                average_streak_length=0.0,
                recovery_potential=0.0,
                experience_floor=baseline,
            )
        initial = baseline
    else:
        initial = 0.0
    state = RunState(
        strength=initial,
        peak=initial,
        contexts_seen=deque(maxlen=cfg.context.lookback),
    )

    # Same-day creation still processes that day
    end = last
    if first == last:
        end = next_custom_day(last, tz, hour) or last

    history: List[StrengthPoint] = []
    for day in iter_custom_days(first, end, tz, hour):
        point = step_day(habit, day, schedule, completions, contexts, state, cfg)
        if point is not None:
            history.append(point)

    if state.in_streak:
        state.streak_lengths_total += state.streak_length

    average_streak = (
        state.streak_lengths_total / state.streak_count if state.streak_count > 0 else 0.0
    )
    consistency = (
        float(np.mean(state.consistency_scores)) if state.consistency_scores else None
    )

    logger.debug(
        "Simulated %d scheduled days for %r: strength=%.4f peak=%.4f",
        len(history), habit.name, state.strength, state.peak,
    )

    return HistoryAnalysis(
        strength_history=tuple(history),
        current_strength=state.strength,
        peak_strength=state.peak,
        total_streak_days=state.streak_days,
        total_gap_days=state.gap_days,
        current_streak=current_streak,
        best_streak_ever=best_streak_ever,
        longest_streak=longest_streak,
        average_streak_length=average_streak,
        recovery_potential=state.peak - state.strength,
        experience_floor=_final_experience_floor(habit, state.streak_days),
        context_consistency=consistency,
        trailing_gap_days=state.non_scheduled_run,
    )
