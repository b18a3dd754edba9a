"""
Oracle interfaces the engine consumes, plus reference host implementations.

The engine never owns schedules, completion records or streak facts. A host
passes one oracle per concern, bound to a single habit, into every call.
The concrete classes below back the CLI and test suite; a real application
supplies its own.
"""

import datetime as dt
from collections import Counter
from typing import Iterable, Mapping, Optional, Protocol, runtime_checkable

import pandas as pd

from ingrain.context import HabitContext
from ingrain.days import day_key, iter_custom_days, next_custom_day, start_of_custom_day


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

@runtime_checkable
class ScheduleOracle(Protocol):
    def is_active(self, day: pd.Timestamp) -> bool:
        """Whether the habit is scheduled on the habit day starting at ``day``."""


@runtime_checkable
class CompletionOracle(Protocol):
    def is_completed(self, day: pd.Timestamp) -> bool:
        """Whether the tracked event occurred (for bad habits: the lapse)."""


@runtime_checkable
class PartialCompletionOracle(Protocol):
    def is_completed(self, day: pd.Timestamp) -> bool: ...

    def completion_ratio(self, day: pd.Timestamp) -> float:
        """Fraction of the day's target reached, in [0, 1]."""


@runtime_checkable
class StreakLedger(Protocol):
    def current_streak(self, as_of: pd.Timestamp) -> int: ...

    def longest_streak(self) -> int: ...

    def best_streak_ever(self) -> int: ...


@runtime_checkable
class ContextOracle(Protocol):
    def context_for(self, day: pd.Timestamp) -> Optional[HabitContext]: ...


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------

WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


class DailySchedule:
    def is_active(self, day: pd.Timestamp) -> bool:
        return True

    def describe(self) -> str:
        return "daily"


class WeekdaySchedule:
    """Active on fixed weekdays (0 = Monday … 6 = Sunday)."""

    def __init__(self, weekdays: Iterable[int]):
        self.weekdays = frozenset(int(d) for d in weekdays)
        if not self.weekdays or not self.weekdays <= set(range(7)):
            raise ValueError(f"Weekdays must be a non-empty subset of 0..6, got {sorted(self.weekdays)}")

    def is_active(self, day: pd.Timestamp) -> bool:
        return day.weekday() in self.weekdays

    def describe(self) -> str:
        count = len(self.weekdays)
        if count == 7:
            return "daily"
        if count == 1:
            return "weekly"
        return f"{count} times per week"


class IntervalSchedule:
    """Active every ``every_days`` days counted from ``anchor``."""

    def __init__(self, every_days: int, anchor: dt.date):
        if every_days < 1:
            raise ValueError(f"every_days must be >= 1, got {every_days}")
        self.every_days = int(every_days)
        self.anchor = anchor

    def is_active(self, day: pd.Timestamp) -> bool:
        offset = (day.date() - self.anchor).days
        return offset >= 0 and offset % self.every_days == 0

    def describe(self) -> str:
        if self.every_days == 1:
            return "daily"
        if self.every_days == 7:
            return "weekly"
        if self.every_days == 14:
            return "bi-weekly"
        return f"every {self.every_days} days"


def describe_schedule(schedule: ScheduleOracle) -> str:
    """Human-readable repeat pattern, or "scheduled" for unknown oracles."""
    describe = getattr(schedule, "describe", None)
    if describe is None:
        return "scheduled"
    return describe()


# ---------------------------------------------------------------------------
# Completion records
# ---------------------------------------------------------------------------

class CompletionLog:
    """
    Per-habit-day event counts.

    A day counts as completed once its count reaches ``daily_target``. For
    bad habits the counted events are the undesired acts.
    """

    def __init__(self, counts: Mapping[dt.date, int], daily_target: int = 1):
        if daily_target < 1:
            raise ValueError(f"daily_target must be >= 1, got {daily_target}")
        self.counts = Counter({d: int(n) for d, n in counts.items() if n > 0})
        self.daily_target = int(daily_target)

    @classmethod
    def from_instants(
        cls,
        instants: Iterable,
        tz: str,
        start_hour: int,
        daily_target: int = 1,
    ) -> "CompletionLog":
        """Attribute each event instant to its habit day."""
        return cls(Counter(day_key(i, tz, start_hour) for i in instants), daily_target)

    def count(self, day: pd.Timestamp) -> int:
        return self.counts.get(day.date(), 0)

    def is_completed(self, day: pd.Timestamp) -> bool:
        return self.count(day) >= self.daily_target

    def completion_ratio(self, day: pd.Timestamp) -> float:
        return min(1.0, self.count(day) / self.daily_target)


class StaticContexts:
    """Contexts keyed by habit-day date."""

    def __init__(self, contexts: Mapping[dt.date, HabitContext]):
        self.contexts = dict(contexts)

    def context_for(self, day: pd.Timestamp) -> Optional[HabitContext]:
        return self.contexts.get(day.date())


# ---------------------------------------------------------------------------
# Streak ledger
# ---------------------------------------------------------------------------

class LedgerStreaks:
    """
    Calendar streaks over scheduled days, derived from a schedule and log.

    A scheduled day is a success when completed (good habits) or when no
    lapse was logged (bad habits). An unfinished ``as_of`` day never breaks
    the current streak.
    """

    def __init__(
        self,
        schedule: ScheduleOracle,
        completions: CompletionOracle,
        start_date,
        until,
        tz: str,
        start_hour: int,
        is_bad_habit: bool = False,
        recorded_best: int = 0,
    ):
        self.schedule = schedule
        self.completions = completions
        self.start_date = start_date
        self.until = until
        self.tz = tz
        self.start_hour = start_hour
        self.is_bad_habit = is_bad_habit
        self.recorded_best = int(recorded_best)

    def _succeeded(self, day: pd.Timestamp) -> bool:
        return self.completions.is_completed(day) != self.is_bad_habit

    def _outcomes(self, as_of) -> list:
        if self.start_date is None:
            return []
        start = start_of_custom_day(self.start_date, self.tz, self.start_hour)
        last = start_of_custom_day(as_of, self.tz, self.start_hour)
        if last < start:
            return []
        end = next_custom_day(last, self.tz, self.start_hour) or last
        return [
            (day, self._succeeded(day))
            for day in iter_custom_days(start, end, self.tz, self.start_hour)
            if self.schedule.is_active(day)
        ]

    def current_streak(self, as_of) -> int:
        outcomes = self._outcomes(as_of)
        today = start_of_custom_day(as_of, self.tz, self.start_hour)
        if outcomes and outcomes[-1][0] == today and not outcomes[-1][1]:
            outcomes = outcomes[:-1]
        streak = 0
        for _, ok in reversed(outcomes):
            if not ok:
                break
            streak += 1
        return streak

    def longest_streak(self) -> int:
        longest = run = 0
        for _, ok in self._outcomes(self.until):
            run = run + 1 if ok else 0
            longest = max(longest, run)
        return longest

    def best_streak_ever(self) -> int:
        return max(self.recorded_best, self.longest_streak())
