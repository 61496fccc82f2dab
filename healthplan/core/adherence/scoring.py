"""Completion scoring shared by the analyzer and the daily logging workflow."""

import math
from collections.abc import Iterable

from healthplan.core.adherence.constants import COMPLETION_WEIGHTS
from healthplan.core.adherence.enums import AdherenceLevel
from healthplan.core.adherence.models import MealLogEntry, TrainingLogEntry


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity.

    ``round()`` uses banker's rounding, which would score 62.5% as 62.
    """
    return math.floor(value + 0.5)


def parse_minutes(clock_time: str) -> int:
    """Convert an ``HH:MM`` string to minutes after midnight."""
    hours, minutes = clock_time.split(":")
    return int(hours) * 60 + int(minutes)


def completion_weight(level: AdherenceLevel) -> float:
    return COMPLETION_WEIGHTS[level]


def completed_weight(
    entries: Iterable[MealLogEntry | TrainingLogEntry],
) -> float:
    """Sum of completion weights over meal and/or training entries."""
    return sum(completion_weight(entry.adherence) for entry in entries)


def percent(numerator: float, denominator: int) -> int:
    """``numerator / denominator`` as a rounded percentage, 0 if empty."""
    if denominator <= 0:
        return 0
    return round_half_up(numerator / denominator * 100)


def calculate_day_adherence(
    meal_logs: Iterable[MealLogEntry],
    training_logs: Iterable[TrainingLogEntry],
    scheduled_item_count: int,
) -> int:
    """Score one day against the number of items its plans scheduled.

    Entries for items that were not on the day's plan still add their
    weight, so the result is clamped to 100.

    Args:
        meal_logs: Meal entries logged for the day.
        training_logs: Training entries logged for the day.
        scheduled_item_count: Meals plus sessions the plans expected.

    Returns:
        Integer percentage 0-100; 0 when nothing was scheduled.
    """
    weight = completed_weight(meal_logs) + completed_weight(training_logs)
    return min(percent(weight, scheduled_item_count), 100)
