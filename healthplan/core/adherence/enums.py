"""Adherence enums.

Shared vocabulary for daily logs, adherence analysis and plans.
"""

from enum import StrEnum, auto


class AdherenceLevel(StrEnum):
    """How completely a scheduled meal or session was followed."""

    full = auto()
    partial = auto()
    skipped = auto()


class DeviationReason(StrEnum):
    """Cause tag attached to a non-full adherence event."""

    time_constraint = auto()
    not_hungry = auto()
    food_unavailable = auto()
    didnt_like = auto()
    too_tired = auto()
    injury = auto()
    illness = auto()
    schedule_conflict = auto()
    lack_of_motivation = auto()
    equipment_unavailable = auto()
    other = auto()


class DeviationImpact(StrEnum):
    minor = auto()
    moderate = auto()
    significant = auto()


class ExerciseDifficulty(StrEnum):
    """Self-reported difficulty of a single exercise."""

    possible = auto()
    difficult = auto()
    could_not_do = auto()


class PlanType(StrEnum):
    meal = auto()
    training = auto()


class PlanStatus(StrEnum):
    """Lifecycle of a stored plan.

    At most one plan per user and ``PlanType`` is ``active``.
    """

    active = auto()
    inactive = auto()
    completed = auto()
    archived = auto()
