"""
Day-boundary resolution: instants → canonical "habit day" buckets.

A habit day runs [H:00, next H:00) in the configured timezone, so an action
at 1 a.m. with H = 4 belongs to the previous habit day. Days are represented
by the tz-aware ``pandas.Timestamp`` at which they start.

Advancing between days uses calendar arithmetic on local dates. A local
midnight skipped by a DST transition resolves to the first instant after
the gap; a repeated one resolves to its first occurrence. ``next_custom_day``
returns None only when the calendar cannot step (out-of-range dates) or the
result would not advance, and iteration stops there.
"""

import datetime as dt
import logging
from typing import Iterator, Optional

import pandas as pd

logger = logging.getLogger(__name__)


class InvalidRangeError(ValueError):
    """Raised when a caller supplies a range whose end precedes its start."""


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def to_local(instant, tz: str) -> pd.Timestamp:
    """Interpret ``instant`` in ``tz``. Naive values are local wall time."""
    ts = pd.Timestamp(instant)
    if ts.tzinfo is None:
        return ts.tz_localize(tz, ambiguous=True, nonexistent="shift_forward")
    return ts.tz_convert(tz)


def _local_midnight(date: dt.date, tz: str) -> pd.Timestamp:
    return pd.Timestamp(date).tz_localize(tz, ambiguous=True, nonexistent="shift_forward")


def _habit_date(instant, tz: str, start_hour: int) -> dt.date:
    local = to_local(instant, tz)
    return (local - pd.Timedelta(hours=start_hour)).date()


# ---------------------------------------------------------------------------
# Public resolver
# ---------------------------------------------------------------------------

def start_of_custom_day(instant, tz: str, start_hour: int) -> pd.Timestamp:
    """
    Start of the habit day containing ``instant``.

    Shift back H hours, take the local calendar midnight, add H hours back.
    """
    midnight = _local_midnight(_habit_date(instant, tz, start_hour), tz)
    return midnight + pd.Timedelta(hours=start_hour)


def day_key(instant, tz: str, start_hour: int) -> dt.date:
    """Calendar date label of the habit day containing ``instant``."""
    return _habit_date(instant, tz, start_hour)


def next_custom_day(day: pd.Timestamp, tz: str, start_hour: int) -> Optional[pd.Timestamp]:
    """Start of the following habit day, or None if it cannot be resolved."""
    try:
        following = _habit_date(day, tz, start_hour) + dt.timedelta(days=1)
        start = _local_midnight(following, tz) + pd.Timedelta(hours=start_hour)
    except (OverflowError, pd.errors.OutOfBoundsDatetime):
        return None
    if start <= day:
        return None
    return start


def shift_days(day: pd.Timestamp, days: int, tz: str, start_hour: int) -> pd.Timestamp:
    """Habit day ``days`` calendar days away from ``day`` (negative = past)."""
    target = _habit_date(day, tz, start_hour) + dt.timedelta(days=days)
    return _local_midnight(target, tz) + pd.Timedelta(hours=start_hour)


def check_range(start: pd.Timestamp, end: pd.Timestamp) -> None:
    if end < start:
        raise InvalidRangeError(f"Range end {end} precedes start {start}")


def iter_custom_days(
    start: pd.Timestamp,
    end: pd.Timestamp,
    tz: str,
    start_hour: int,
) -> Iterator[pd.Timestamp]:
    """
    Yield habit-day starts over the half-open range [start, end).

    Both bounds must already be day starts. Iteration terminates early,
    keeping everything yielded so far, if a next day cannot be resolved.
    """
    check_range(start, end)
    day = start
    while day < end:
        yield day
        following = next_custom_day(day, tz, start_hour)
        if following is None:
            logger.warning(
                "Cannot advance past habit day %s in %s; stopping iteration early",
                day, tz,
            )
            return
        day = following
