"""Adherence Pydantic models.

Pure data models for daily logs and adherence analysis. No database
dependencies; the ORM rows in ``healthplan.models`` convert to and from
these. All models are frozen: updates go through ``model_copy``.
"""

import datetime as dt
import uuid
from typing import Annotated, Final

from pydantic import BaseModel, ConfigDict, Field

from healthplan.core.adherence.enums import (
    AdherenceLevel,
    DeviationImpact,
    DeviationReason,
    ExerciseDifficulty,
    PlanType,
)

CLOCK_TIME_PATTERN: Final[str] = r"^([01]?\d|2[0-3]):[0-5]\d$"

ClockTime = Annotated[
    str,
    Field(pattern=CLOCK_TIME_PATTERN, description="Time of day as HH:MM (24h)"),
]


class Deviation(BaseModel):
    """Why a meal or session was not fully followed."""

    model_config = ConfigDict(frozen=True)

    reason: DeviationReason
    description: str | None = None
    impact: DeviationImpact | None = None


class MealLogEntry(BaseModel):
    """Completion record for one planned meal on one day."""

    model_config = ConfigDict(frozen=True)

    meal_id: str = Field(min_length=1)
    meal_type: str = Field(
        min_length=1, description="breakfast, lunch, dinner, snack"
    )
    scheduled_time: ClockTime
    actual_time: ClockTime | None = None
    adherence: AdherenceLevel
    deviations: list[Deviation] = Field(default_factory=list)
    portion_scale: float | None = Field(
        default=None,
        gt=0,
        description="0.5 = ate half, 1.5 = ate 50% more",
    )
    substitutions: list[str] = Field(default_factory=list)
    notes: str | None = None


class ExerciseLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    exercise_id: str
    exercise_name: str
    completed: bool = True
    difficulty: ExerciseDifficulty | None = None
    notes: str | None = None


class TrainingLogEntry(BaseModel):
    """Completion record for one planned training session on one day."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(min_length=1)
    session_name: str = Field(min_length=1)
    scheduled_time: ClockTime | None = None
    start_time: ClockTime | None = None
    end_time: ClockTime | None = None
    adherence: AdherenceLevel
    exercises: list[ExerciseLog] = Field(default_factory=list)
    perceived_exertion: int | None = Field(
        default=None, ge=1, le=10, description="Borg RPE, 1-10"
    )
    deviations: list[Deviation] = Field(default_factory=list)
    notes: str | None = None


class DailyLog(BaseModel):
    """Everything logged by one user on one calendar day.

    ``scheduled_item_count`` is the number of meals plus sessions the
    active plans expected that day. It is fixed when the log is created
    and is the denominator of ``overall_adherence``.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID
    date: dt.date
    meal_logs: list[MealLogEntry] = Field(default_factory=list)
    training_logs: list[TrainingLogEntry] = Field(default_factory=list)
    overall_adherence: int = Field(default=0, ge=0, le=100)
    scheduled_item_count: int = Field(default=0, ge=0)
    version: int = Field(default=0, ge=0)
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class TimingDeviation(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_delay: int = Field(
        default=0, description="Mean minutes actual minus scheduled"
    )
    consistent: bool = False


class AdherencePattern(BaseModel):
    """A recurring adherence problem for one meal type or session name."""

    model_config = ConfigDict(frozen=True)

    type: PlanType
    item_name: str
    consecutive_misses: int = Field(ge=0)
    miss_rate: float = Field(ge=0.0, le=1.0)
    common_reasons: list[DeviationReason] = Field(default_factory=list)
    timing_deviations: TimingDeviation = Field(default_factory=TimingDeviation)


class AdherenceAnalysis(BaseModel):
    """Scores and detected patterns over a window of daily logs.

    Derived on demand and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    period_start: dt.date
    period_end: dt.date
    overall_adherence: int = Field(ge=0, le=100)
    meal_adherence: int = Field(ge=0, le=100)
    training_adherence: int = Field(ge=0, le=100)
    patterns: list[AdherencePattern] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    triggers_adjustment: bool = False

    def patterns_for(self, plan_type: PlanType) -> list[AdherencePattern]:
        return [p for p in self.patterns if p.type == plan_type]
