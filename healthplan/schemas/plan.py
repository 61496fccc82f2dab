"""Meal and training plan schemas.

Plans are a tagged union on ``plan_type`` so a stored or generated plan
always parses to exactly one of ``MealPlan`` / ``TrainingPlan``.
"""

import datetime as dt
import uuid
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from healthplan.core.adherence.enums import PlanStatus
from healthplan.core.adherence.models import ClockTime


class NutritionInfo(BaseModel):
    calories: float = Field(ge=0)
    protein: float = Field(ge=0, description="grams")
    carbohydrates: float = Field(ge=0, description="grams")
    fat: float = Field(ge=0, description="grams")
    fiber: float | None = Field(default=None, ge=0)


class Ingredient(BaseModel):
    name: str
    amount: float
    unit: str
    notes: str | None = None


class Recipe(BaseModel):
    name: str
    description: str = ""
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    prep_time: int = Field(default=0, ge=0, description="minutes")
    cook_time: int = Field(default=0, ge=0, description="minutes")
    servings: int = Field(default=1, ge=1)
    nutrition: NutritionInfo | None = None
    tags: list[str] = Field(default_factory=list)


class Meal(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str = Field(description="breakfast, lunch, dinner, snack")
    scheduled_time: ClockTime
    recipe: Recipe
    notes: str | None = None


class DailyMealPlan(BaseModel):
    date: dt.date
    meals: list[Meal] = Field(default_factory=list)


class Exercise(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    description: str = ""
    type: str = "strength"
    muscle_groups: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    sets: int | None = Field(default=None, ge=1)
    reps: int | None = Field(default=None, ge=1)
    duration: int | None = Field(default=None, ge=1, description="seconds")
    intensity: str = "moderate"


class TrainingSession(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    date: dt.date
    name: str
    type: str = "mixed"
    duration: int = Field(ge=1, description="minutes")
    scheduled_time: ClockTime | None = None
    target_intensity: str = "moderate"
    exercises: list[Exercise] = Field(default_factory=list)
    notes: str | None = None


class GenerationContext(BaseModel):
    """How a plan came to be: the adjustment brief and what it replaced."""

    adjustments: str | None = None
    previous_plan_id: uuid.UUID | None = None


class _PlanBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID
    name: str
    start_date: dt.date
    end_date: dt.date
    status: PlanStatus = PlanStatus.active
    generation_context: GenerationContext | None = None
    created_at: dt.datetime | None = None

    def covers(self, day: dt.date) -> bool:
        return self.start_date <= day <= self.end_date


class MealPlan(_PlanBase):
    plan_type: Literal["meal"] = "meal"
    daily_plans: list[DailyMealPlan] = Field(default_factory=list)

    def meals_on(self, day: dt.date) -> list[Meal]:
        for daily in self.daily_plans:
            if daily.date == day:
                return list(daily.meals)
        return []


class TrainingPlan(_PlanBase):
    plan_type: Literal["training"] = "training"
    sessions: list[TrainingSession] = Field(default_factory=list)
    focus_areas: list[str] = Field(default_factory=list)

    def sessions_on(self, day: dt.date) -> list[TrainingSession]:
        return [s for s in self.sessions if s.date == day]


Plan = Annotated[MealPlan | TrainingPlan, Field(discriminator="plan_type")]

plan_adapter: TypeAdapter[MealPlan | TrainingPlan] = TypeAdapter(Plan)
