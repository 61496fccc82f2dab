"""Meal and training plan model.

Both plan types share one table. The type-specific body (daily meal
plans or training sessions) lives in the JSONB ``content`` column and is
validated through ``healthplan.schemas.plan`` on the way in and out.
"""

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, Enum, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthplan.core.adherence.enums import PlanStatus, PlanType
from healthplan.models.base import Base, TimestampMixin


class PlanRecord(Base, TimestampMixin):
    """Stores one generated meal or training plan.

    A partial unique index guarantees at most one ``active`` plan per
    user and plan type.
    """

    __tablename__ = "plans"

    __table_args__ = (
        Index("ix_plans_user_type_status", "user_id", "plan_type", "status"),
        Index(
            "uq_plans_one_active_per_type",
            "user_id",
            "plan_type",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    plan_type: Mapped[PlanType] = mapped_column(
        Enum(
            PlanType,
            name="plantype",
            create_type=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[PlanStatus] = mapped_column(
        Enum(
            PlanStatus,
            name="planstatus",
            create_type=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=PlanStatus.active,
    )

    # daily_plans for meal plans; sessions + focus_areas for training plans
    content: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    generation_context: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
    )

    user = relationship("User", back_populates="plans")

    def __repr__(self) -> str:
        return (
            f"<PlanRecord(user_id={self.user_id}, type={self.plan_type}, "
            f"status={self.status}, {self.start_date} to {self.end_date})>"
        )
