# Business Logic Services
from healthplan.services.adaptive_planning import AdaptivePlanner, PlanningState
from healthplan.services.daily_logging import DailyLoggingWorkflow
from healthplan.services.locks import AdvisoryLocks, KeyedLocks
from healthplan.services.log_store import LogStore, SqlLogStore
from healthplan.services.plan_generation import AIPlanGenerationClient, PlanGenerationClient
from healthplan.services.plan_store import PlanStore, SqlPlanStore
from healthplan.services.user_profile import ProfileStore, SqlProfileStore

__all__ = [
    "AdaptivePlanner",
    "PlanningState",
    "DailyLoggingWorkflow",
    "AdvisoryLocks",
    "KeyedLocks",
    "LogStore",
    "SqlLogStore",
    "PlanGenerationClient",
    "AIPlanGenerationClient",
    "PlanStore",
    "SqlPlanStore",
    "ProfileStore",
    "SqlProfileStore",
]
