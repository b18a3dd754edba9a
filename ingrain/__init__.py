"""
INGRAIN v1.0 — Deterministic Habit-Strength Simulation Engine

Converts a habit's scheduled completion history into an automation
percentage (0–100%), tracks streak and peak statistics, and projects
future strength and milestone dates.

Architecture:
    config     — All rates, horizons and feature flags (single source of truth)
    days       — Custom day boundaries (start hour, timezone, DST-safe)
    intensity  — Intensity level → growth / decay / floor parameters
    dynamics   — Per-event strength updates shared by engine and projector
    context    — Context stability scoring (optional growth adjustment)
    oracles    — Host-supplied schedule / completion / streak interfaces
    models     — Frozen result records
    engine     — Day-by-day strength simulation over the full history
    projector  — Horizon forecasts, milestone estimates, completion trend
    pipeline   — Orchestration: oracles → simulate → project → report

Core engine is fully stateless and safe for backend/API usage.

Public API:
    compute_insight(habit, schedule, completions, streaks, cfg) → host mode
    analyze_data(data)      → dict ledger mode
    analyze(filepath)       → CLI mode
    generate_report(insight) → formatted report
"""

from ingrain.config import EngineConfig
from ingrain.days import InvalidRangeError
from ingrain.models import HabitProfile, Insight
from ingrain.pipeline import analyze, analyze_data, compute_insight, generate_report

__version__ = "1.0.0"

__all__ = [
    "EngineConfig",
    "HabitProfile",
    "Insight",
    "InvalidRangeError",
    "analyze",
    "analyze_data",
    "compute_insight",
    "generate_report",
]
