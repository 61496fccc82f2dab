"""Daily log model.

One row per user per calendar day holding every meal and training
completion record logged that day.
"""

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthplan.models.base import Base, TimestampMixin


class DailyLogRecord(Base, TimestampMixin):
    """Stores a user's meal and training log for one day.

    ``version`` is incremented on every update; writers pass the version
    they read so a concurrent change is detected instead of overwritten.
    """

    __tablename__ = "daily_logs"

    __table_args__ = (
        UniqueConstraint("user_id", "log_date", name="uq_daily_logs_user_date"),
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

    log_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    meal_logs: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    training_logs: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    overall_adherence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Meals plus sessions the active plans expected that day
    scheduled_item_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    user = relationship("User", back_populates="daily_logs")

    def __repr__(self) -> str:
        return (
            f"<DailyLogRecord(user_id={self.user_id}, date={self.log_date}, "
            f"adherence={self.overall_adherence}%)>"
        )
