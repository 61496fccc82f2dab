"""User profile model.

A single local user owns plans and daily logs. The body specifications
and preferences used to personalise plan generation are stored as JSONB.
"""

import uuid
from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthplan.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User profile.

    Attributes:
        id: Unique user identifier (UUID)
        name: Display name
        body: Height, weight, age, fitness and activity level
        preferences: Dietary restrictions, equipment, cooking limits
        goals: Free-form goal tags (weight_loss, strength, ...)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    body: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
    )

    preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    goals: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    plans = relationship("PlanRecord", back_populates="user", cascade="all, delete-orphan")
    daily_logs = relationship(
        "DailyLogRecord", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name})>"
