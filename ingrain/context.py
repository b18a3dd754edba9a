"""
Context stability scoring for the optional context-consistency feature.

Habits performed at the same time, place and cue form faster. Each day's
context is compared with the most recent recorded contexts; the resulting
consistency in [0, 1] scales that day's growth rate.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ingrain.config import ContextParams


@dataclass(frozen=True)
class HabitContext:
    # Seconds since local midnight
    time_of_day: Optional[float] = None
    location: Optional[str] = None
    trigger: Optional[str] = None

    def similarity(self, other: "HabitContext", time_tolerance: float = 1800.0) -> float:
        """
        Mean agreement over the attributes both contexts carry.

        Time scores linearly down to 0 at ``time_tolerance`` seconds apart;
        location and trigger score 1 on exact match. With no shared
        attributes the similarity is neutral (0.5).
        """
        scores = []
        if self.time_of_day is not None and other.time_of_day is not None:
            diff = abs(self.time_of_day - other.time_of_day)
            scores.append(max(0.0, 1.0 - diff / time_tolerance))
        if self.location is not None and other.location is not None:
            scores.append(1.0 if self.location == other.location else 0.0)
        if self.trigger is not None and other.trigger is not None:
            scores.append(1.0 if self.trigger == other.trigger else 0.0)
        if not scores:
            return 0.5
        return float(np.mean(scores))


def context_consistency(
    current: Optional[HabitContext],
    previous: Sequence[HabitContext],
    params: ContextParams,
) -> Optional[float]:
    """Mean similarity of ``current`` to the trailing ``lookback`` contexts."""
    if current is None or not previous:
        return None
    window = list(previous)[-params.lookback:]
    sims = [current.similarity(p, params.time_tolerance_seconds) for p in window]
    return float(np.mean(sims))


def context_growth_factor(consistency: Optional[float], params: ContextParams) -> float:
    if consistency is None:
        return 1.0
    if consistency > params.high_consistency:
        return 1.0 + params.stability_bonus
    if consistency < params.low_consistency:
        return 1.0 - params.variability_penalty
    return 1.0
