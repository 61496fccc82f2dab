"""User profile schemas.

The profile is what plan generation personalises against.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field


class BodySpecifications(BaseModel):
    height: float = Field(gt=0, description="cm")
    weight: float = Field(gt=0, description="kg")
    age: int = Field(ge=1, le=120)
    gender: str = "other"
    fitness_level: str = Field(
        default="beginner", description="beginner, intermediate, advanced, athlete"
    )
    activity_level: str = "moderately_active"


class UserPreferences(BaseModel):
    dietary_restrictions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    food_dislikes: list[str] = Field(default_factory=list)
    cuisine_preferences: list[str] = Field(default_factory=list)
    equipment_available: list[str] = Field(default_factory=list)
    workout_location: str = "home"
    max_prep_time: int | None = Field(default=None, ge=0, description="minutes")
    max_cook_time: int | None = Field(default=None, ge=0, description="minutes")


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    body: BodySpecifications | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    goals: list[str] = Field(default_factory=list)


class UserProfileUpdate(BaseModel):
    """Profile fields a client sets; the id comes from the URL."""

    name: str = Field(min_length=1, max_length=100)
    body: BodySpecifications | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    goals: list[str] = Field(default_factory=list)
