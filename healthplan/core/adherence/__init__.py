"""Adherence analysis and adaptive-planning decisions.

Pure functions over daily logs:

1. ``analyze_adherence`` scores a window of logs, detects per-item
   patterns (consecutive misses, miss rate, timing drift, recurring
   deviation reasons) and decides whether an adjustment is warranted.
2. ``build_adjustment_brief`` turns an analysis into instructions for
   regenerating a meal or training plan.
3. ``calculate_day_adherence`` scores a single day for the logging
   workflow.

Nothing in this package performs I/O.
"""

from healthplan.core.adherence.analyzer import analyze_adherence
from healthplan.core.adherence.brief import build_adjustment_brief
from healthplan.core.adherence.enums import (
    AdherenceLevel,
    DeviationImpact,
    DeviationReason,
    ExerciseDifficulty,
    PlanStatus,
    PlanType,
)
from healthplan.core.adherence.models import (
    AdherenceAnalysis,
    AdherencePattern,
    DailyLog,
    Deviation,
    ExerciseLog,
    MealLogEntry,
    TimingDeviation,
    TrainingLogEntry,
)
from healthplan.core.adherence.scoring import calculate_day_adherence

__all__ = [
    "AdherenceAnalysis",
    "AdherenceLevel",
    "AdherencePattern",
    "DailyLog",
    "Deviation",
    "DeviationImpact",
    "DeviationReason",
    "ExerciseDifficulty",
    "ExerciseLog",
    "MealLogEntry",
    "PlanStatus",
    "PlanType",
    "TimingDeviation",
    "TrainingLogEntry",
    "analyze_adherence",
    "build_adjustment_brief",
    "calculate_day_adherence",
]
