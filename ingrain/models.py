"""
Result records produced by the engine and projector.

All records are frozen: the engine builds them once per invocation and
nothing downstream mutates them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import pandas as pd


@dataclass(frozen=True)
class HabitProfile:
    """Read-only habit description owned by the host."""

    start_date: Optional[pd.Timestamp]
    intensity_level: int = 1
    is_bad_habit: bool = False
    name: str = "Unnamed Habit"


@dataclass(frozen=True)
class StrengthPoint:
    """Strength after one scheduled habit day."""

    date: pd.Timestamp
    strength: float
    is_in_streak: bool
    streak_length: int


@dataclass(frozen=True)
class HistoryAnalysis:
    strength_history: Tuple[StrengthPoint, ...]
    current_strength: float
    peak_strength: float
    # Avoided days for bad habits
    total_streak_days: int
    total_gap_days: int
    # Ledger facts, not derived from the simulation
    current_streak: int
    best_streak_ever: int
    longest_streak: int
    average_streak_length: float
    recovery_potential: float
    experience_floor: float
    # Only populated when the context feature is enabled
    context_consistency: Optional[float] = None
    # Unscheduled days since the last scheduled day
    trailing_gap_days: int = 0

    @property
    def total_avoided_days(self) -> int:
        return self.total_streak_days


class CompletionTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True)
class PredictionSet:
    """Forward-looking derivations. Automation values are percentages."""

    one_week_automation: float
    two_week_automation: float
    one_month_automation: float
    days_to_95: Optional[int]
    days_to_100: Optional[int]
    completions_to_95: Optional[int]
    completions_to_100: Optional[int]
    trend: CompletionTrend
    # Effective per-event growth (or extinction) rate
    trend_factor: float


@dataclass(frozen=True)
class Insight:
    automation_percentage: float
    current_streak: int
    best_streak_ever: int
    expected_completions: int
    actual_completions: int
    raw_completion_rate: float
    intensity_weight: float
    history_analysis: HistoryAnalysis
    predictions: PredictionSet
    habit_name: str = "Unnamed Habit"
    analysis_date: Optional[pd.Timestamp] = None
    # Human-readable schedule, e.g. "3 times per week"
    repeat_pattern: Optional[str] = None
