"""Request/response schemas for the HTTP API."""

import datetime as dt

from pydantic import BaseModel, Field

from healthplan.core.adherence.enums import PlanType
from healthplan.core.adherence.models import AdherenceAnalysis, DailyLog
from healthplan.schemas.plan import Meal, Plan, TrainingSession


class ErrorResponse(BaseModel):
    """Body of every error the API returns for a planning failure."""

    detail: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")


class AdaptivePlanningResponse(BaseModel):
    """The planner's state after loading the trailing window."""

    state: str = Field(..., description="Planner state machine position")
    analysis: AdherenceAnalysis | None = None
    needs_adjustment: bool = False
    adjusting: bool = False
    adjusting_plan_types: list[PlanType] = Field(
        default_factory=list,
        description="Plan types being regenerated by any request or worker",
    )


class PlanAdjustmentResponse(BaseModel):
    """A regenerated plan and the analysis that motivated it."""

    plan: Plan
    analysis: AdherenceAnalysis


class TodayResponse(BaseModel):
    """Today's planned items alongside what has been logged so far."""

    date: dt.date
    meals: list[Meal] = Field(default_factory=list)
    sessions: list[TrainingSession] = Field(default_factory=list)
    scheduled_item_count: int = 0
    log: DailyLog | None = None


class DailyLogListResponse(BaseModel):
    logs: list[DailyLog]
    total: int
