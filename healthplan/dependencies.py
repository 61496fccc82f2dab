"""FastAPI dependency providers.

Routers never construct stores, the plan generator or the planner
themselves; they ask for them here so tests can swap any piece through
``app.dependency_overrides``.
"""

import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from healthplan.config import settings
from healthplan.database import get_db
from healthplan.schemas.user_profile import UserProfile
from healthplan.services.adaptive_planning import AdaptivePlanner
from healthplan.services.ai_client import get_ai_client
from healthplan.services.daily_logging import DailyLoggingWorkflow
from healthplan.services.locks import KeyedLocks
from healthplan.services.log_store import LogStore, SqlLogStore
from healthplan.services.plan_generation import AIPlanGenerationClient, PlanGenerationClient
from healthplan.services.plan_store import PlanStore, SqlPlanStore
from healthplan.services.user_profile import ProfileStore, SqlProfileStore


def get_locks(request: Request) -> KeyedLocks:
    return request.app.state.locks


def get_log_store(db: AsyncSession = Depends(get_db)) -> LogStore:
    return SqlLogStore(db)


def get_plan_store(db: AsyncSession = Depends(get_db)) -> PlanStore:
    return SqlPlanStore(db)


def get_plan_generator(request: Request) -> PlanGenerationClient:
    """Process-wide plan generator, built from settings on first use."""
    generator = getattr(request.app.state, "plan_generator", None)
    if generator is None:
        generator = AIPlanGenerationClient(
            get_ai_client(settings), max_tokens=settings.ai_max_tokens
        )
        request.app.state.plan_generator = generator
    return generator


def get_profile_store(db: AsyncSession = Depends(get_db)) -> ProfileStore:
    return SqlProfileStore(db)


async def get_profile(
    user_id: uuid.UUID,
    profile_store: ProfileStore = Depends(get_profile_store),
) -> UserProfile:
    return await profile_store.get(user_id)


def get_planner(
    profile: UserProfile = Depends(get_profile),
    log_store: LogStore = Depends(get_log_store),
    plan_store: PlanStore = Depends(get_plan_store),
    plan_generator: PlanGenerationClient = Depends(get_plan_generator),
    locks: KeyedLocks = Depends(get_locks),
) -> AdaptivePlanner:
    return AdaptivePlanner(
        profile,
        log_store,
        plan_store,
        plan_generator,
        locks=locks,
        window_days=settings.adherence_window_days,
        meal_plan_days=settings.meal_plan_days,
        training_plan_weeks=settings.training_plan_weeks,
        generation_timeout_seconds=settings.plan_generation_timeout_seconds,
    )


def get_workflow(
    profile: UserProfile = Depends(get_profile),
    log_store: LogStore = Depends(get_log_store),
    plan_store: PlanStore = Depends(get_plan_store),
    locks: KeyedLocks = Depends(get_locks),
) -> DailyLoggingWorkflow:
    return DailyLoggingWorkflow(profile.id, log_store, plan_store, locks=locks)
