"""Plan generation request/response schemas."""

import datetime as dt
import uuid

from pydantic import BaseModel, Field

from healthplan.core.adherence.enums import PlanType
from healthplan.core.adherence.models import AdherenceAnalysis
from healthplan.schemas.plan import Plan
from healthplan.schemas.user_profile import UserProfile


class AdjustmentContext(BaseModel):
    """Why a plan is being regenerated and what should change."""

    analysis: AdherenceAnalysis
    brief: str = Field(min_length=1)
    previous_plan_id: uuid.UUID | None = None


class PlanGenerationRequest(BaseModel):
    user_profile: UserProfile
    plan_type: PlanType
    start_date: dt.date
    duration_days: int = Field(ge=1, le=84)
    adjustment_context: AdjustmentContext | None = None


class PlanGenerationResponse(BaseModel):
    plan: Plan
    generation_notes: str | None = None
