# Database Models
from healthplan.models.base import Base, TimestampMixin
from healthplan.models.daily_log import DailyLogRecord
from healthplan.models.plan import PlanRecord
from healthplan.models.user import User

__all__ = [
    "Base",
    "DailyLogRecord",
    "PlanRecord",
    "TimestampMixin",
    "User",
]
