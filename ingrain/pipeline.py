"""
Pipeline orchestration: oracles → simulate → project → insight → report.

This is the only module with I/O (ledger file loading, report formatting).
All modelling is delegated to engine, projector, dynamics and intensity.

Entry points:
    compute_insight(...)   → host integration with its own oracles
    analyze_data(data)     → dict ledger, reference oracles
    analyze(filepath)      → JSON ledger file (CLI mode)
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from ingrain import intensity
from ingrain.config import EngineConfig
from ingrain.context import HabitContext
from ingrain.days import day_key
from ingrain.engine import scheduled_stats, simulate_history
from ingrain.models import HabitProfile, HistoryAnalysis, Insight
from ingrain.oracles import (
    WEEKDAY_NAMES,
    CompletionLog,
    CompletionOracle,
    ContextOracle,
    DailySchedule,
    IntervalSchedule,
    LedgerStreaks,
    ScheduleOracle,
    StaticContexts,
    StreakLedger,
    WeekdaySchedule,
    describe_schedule,
)
from ingrain.projector import compute_predictions

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Core entry point (pure, no I/O)
# ---------------------------------------------------------------------------

def compute_insight(
    habit: HabitProfile,
    schedule: ScheduleOracle,
    completions: CompletionOracle,
    streaks: StreakLedger,
    cfg: EngineConfig | None = None,
    contexts: Optional[ContextOracle] = None,
) -> Insight:
    """
    Full automation insight for one habit.

    Stateless: identical inputs always give identical results. A habit
    without a start date yields a zero-value insight whose predictions
    project forward from strength 0.
    """
    if cfg is None:
        cfg = EngineConfig()

    analysis = simulate_history(habit, schedule, completions, streaks, cfg, contexts)
    weight = intensity.intensity_weight(habit.intensity_level, cfg)
    predictions = compute_predictions(habit, schedule, completions, analysis, cfg)
    pattern = describe_schedule(schedule)

    if habit.start_date is None:
        return Insight(
            automation_percentage=0.0,
            current_streak=analysis.current_streak,
            best_streak_ever=analysis.best_streak_ever,
            expected_completions=0,
            actual_completions=0,
            raw_completion_rate=0.0,
            intensity_weight=weight,
            history_analysis=analysis,
            predictions=predictions,
            habit_name=habit.name,
            analysis_date=pd.Timestamp(cfg.analysis_end),
            repeat_pattern=pattern,
        )

    expected, actual = scheduled_stats(
        habit, schedule, completions, habit.start_date, cfg.analysis_end, cfg
    )

    logger.info(
        "Insight for %r: automation=%.1f%% trend=%s",
        habit.name, analysis.current_strength * 100.0, predictions.trend.value,
    )

    return Insight(
        automation_percentage=min(100.0, analysis.current_strength * 100.0),
        current_streak=analysis.current_streak,
        best_streak_ever=analysis.best_streak_ever,
        expected_completions=expected,
        actual_completions=actual,
        raw_completion_rate=actual / expected if expected > 0 else 0.0,
        intensity_weight=weight,
        history_analysis=analysis,
        predictions=predictions,
        habit_name=habit.name,
        analysis_date=pd.Timestamp(cfg.analysis_end),
        repeat_pattern=pattern,
    )


# ---------------------------------------------------------------------------
# Ledger parsing (reference oracles)
# ---------------------------------------------------------------------------

REQUIRED_KEYS = {"start_date", "completions"}


def _parse_schedule(raw: Optional[Dict], start: Optional[pd.Timestamp], cfg: EngineConfig) -> ScheduleOracle:
    raw = raw or {"type": "daily"}
    kind = raw.get("type", "daily")

    if kind == "daily":
        return DailySchedule()

    if kind == "weekdays":
        days = []
        for d in raw.get("days", []):
            if isinstance(d, str):
                name = d.strip().lower()[:3]
                if name not in WEEKDAY_NAMES:
                    raise ValueError(f"Unknown weekday: {d!r}")
                days.append(WEEKDAY_NAMES.index(name))
            else:
                days.append(int(d))
        return WeekdaySchedule(days)

    if kind == "interval":
        anchor = raw.get("anchor")
        if anchor is not None:
            anchor_date = pd.Timestamp(anchor).date()
        elif start is not None:
            anchor_date = day_key(start, cfg.timezone, cfg.day_start_hour)
        else:
            raise ValueError("Interval schedule needs an anchor or a start_date")
        return IntervalSchedule(int(raw["every_days"]), anchor_date)

    raise ValueError(f"Unknown schedule type: {kind!r}")


def _is_date_only(raw) -> bool:
    return isinstance(raw, str) and len(raw.strip()) == 10


def _parse_completions(entries, cfg: EngineConfig, daily_target: int) -> CompletionLog:
    """
    Date-only entries ("2026-01-05") name the habit day directly; full
    timestamps are attributed through the day boundary.
    """
    counts: Dict = {}
    for raw in entries:
        if _is_date_only(raw):
            key = pd.Timestamp(raw).date()
        else:
            key = day_key(raw, cfg.timezone, cfg.day_start_hour)
        counts[key] = counts.get(key, 0) + 1
    return CompletionLog(counts, daily_target)


def _parse_contexts(raw: Optional[Dict]) -> Optional[StaticContexts]:
    if not raw:
        return None
    return StaticContexts({
        pd.Timestamp(date).date(): HabitContext(
            time_of_day=ctx.get("time_of_day"),
            location=ctx.get("location"),
            trigger=ctx.get("trigger"),
        )
        for date, ctx in raw.items()
    })


def build_oracles(
    data: Dict,
    cfg: EngineConfig,
) -> Tuple[HabitProfile, ScheduleOracle, CompletionLog, LedgerStreaks, Optional[StaticContexts]]:
    """Turn a ledger dict into a profile and reference oracles."""
    missing = REQUIRED_KEYS - set(data)
    if missing:
        raise ValueError(f"Missing required keys: {missing}")

    start = data["start_date"]
    start_ts = pd.Timestamp(start) if start is not None else None
    is_bad = bool(data.get("is_bad_habit", False))

    habit = HabitProfile(
        start_date=start_ts,
        intensity_level=int(data.get("intensity_level", 1)),
        is_bad_habit=is_bad,
        name=data.get("name", "Unnamed Habit"),
    )
    schedule = _parse_schedule(data.get("schedule"), start_ts, cfg)
    completions = _parse_completions(data["completions"], cfg, int(data.get("daily_target", 1)))
    streaks = LedgerStreaks(
        schedule,
        completions,
        start_date=start_ts,
        until=cfg.analysis_end,
        tz=cfg.timezone,
        start_hour=cfg.day_start_hour,
        is_bad_habit=is_bad,
        recorded_best=int(data.get("best_streak_ever", 0)),
    )
    return habit, schedule, completions, streaks, _parse_contexts(data.get("contexts"))


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def load_ledger(filepath: Union[str, Path]) -> Dict:
    """Load a habit ledger from a JSON file."""
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Ledger file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    if not data:
        raise ValueError("Ledger file is empty")
    return data


def analyze_data(data: Dict, cfg: EngineConfig | None = None) -> Insight:
    """
    Backend / UI integration entry point.

    Accepts a ledger dict directly. No file system usage.
    """
    if cfg is None:
        cfg = EngineConfig()
    if not data:
        raise ValueError("Input data cannot be empty")

    habit, schedule, completions, streaks, contexts = build_oracles(data, cfg)
    return compute_insight(habit, schedule, completions, streaks, cfg, contexts)


def analyze(filepath: Union[str, Path], cfg: EngineConfig | None = None) -> Insight:
    """CLI-compatible entry point: read a JSON ledger and analyze it."""
    return analyze_data(load_ledger(filepath), cfg)


# ---------------------------------------------------------------------------
# Tabular view and report
# ---------------------------------------------------------------------------

def history_frame(analysis: HistoryAnalysis) -> pd.DataFrame:
    """Strength history as a DataFrame, one row per scheduled day."""
    columns = ["date", "strength", "is_in_streak", "streak_length"]
    if not analysis.strength_history:
        return pd.DataFrame(columns=columns + ["automation"])

    df = pd.DataFrame(
        [(p.date, p.strength, p.is_in_streak, p.streak_length) for p in analysis.strength_history],
        columns=columns,
    )
    df["automation"] = (df["strength"] * 100.0).clip(upper=100.0)
    return df


def _fmt_optional(value: Optional[int], unit: str) -> str:
    return "not within horizon" if value is None else f"{value} {unit}"


def generate_report(insight: Insight, schedule: Optional[ScheduleOracle] = None) -> str:
    """Format an insight as a human-readable text report."""
    a = insight.history_analysis
    frame = history_frame(a)

    lines = [
        "INGRAIN HABIT REPORT",
        f"  Habit               : {insight.habit_name}",
        "=" * 58,
        "",
        f"  Automation          : {insight.automation_percentage:.1f}%",
        f"  Peak Strength       : {a.peak_strength * 100:.1f}%",
        f"  Experience Floor    : {a.experience_floor * 100:.1f}%",
        f"  Recovery Potential  : {a.recovery_potential * 100:.1f}%",
        f"  Current Streak      : {insight.current_streak}",
        f"  Best Streak Ever    : {insight.best_streak_ever}",
        f"  Completions         : {insight.actual_completions}/{insight.expected_completions}"
        f" ({insight.raw_completion_rate:.0%})",
        f"  Intensity Weight    : {insight.intensity_weight:.2f}",
        f"  Scheduled Days      : {len(frame)}",
    ]

    pattern = describe_schedule(schedule) if schedule is not None else insight.repeat_pattern
    if pattern is not None:
        lines.append(f"  Repeat Pattern      : {pattern}")

    if a.context_consistency is not None:
        lines.append(f"  Context Consistency : {a.context_consistency:.2f}")

    p = insight.predictions
    lines += [
        "",
        "  Projection (all scheduled days succeeded):",
        f"    1 week            : {p.one_week_automation:.1f}%",
        f"    2 weeks           : {p.two_week_automation:.1f}%",
        f"    1 month           : {p.one_month_automation:.1f}%",
        f"    95% in            : {_fmt_optional(p.days_to_95, 'days')}"
        f" ({_fmt_optional(p.completions_to_95, 'completions')})",
        f"    100% in           : {_fmt_optional(p.days_to_100, 'days')}"
        f" ({_fmt_optional(p.completions_to_100, 'completions')})",
        f"    Trend             : {p.trend.value} (factor: {p.trend_factor:.4f})",
    ]

    lines.append("")
    lines.append("=" * 58)
    return "\n".join(lines)
