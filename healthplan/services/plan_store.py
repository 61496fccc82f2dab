"""Meal and training plan persistence.

``PlanStore`` is the interface used by the planner and the logging
workflow; ``SqlPlanStore`` stores both plan types in the ``plans`` table
with the type-specific body in a JSONB column.
"""

import abc
import datetime as dt
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from healthplan.core.adherence.enums import PlanStatus, PlanType
from healthplan.core.errors import ConcurrentUpdateError, NotFoundError, PersistenceError
from healthplan.logging_config import get_logger
from healthplan.models.plan import PlanRecord
from healthplan.schemas.plan import MealPlan, TrainingPlan, plan_adapter

logger = get_logger(__name__)

# Plan fields kept in the JSONB content column, per plan type
CONTENT_FIELDS: dict[PlanType, set[str]] = {
    PlanType.meal: {"daily_plans"},
    PlanType.training: {"sessions", "focus_areas"},
}


class PlanStore(abc.ABC):
    """Persistence interface for meal and training plans."""

    @abc.abstractmethod
    async def get_active(
        self, user_id: uuid.UUID, plan_type: PlanType
    ) -> MealPlan | TrainingPlan | None:
        """The user's single active plan of ``plan_type``, if any."""

    @abc.abstractmethod
    async def get_for_date(
        self, user_id: uuid.UUID, plan_type: PlanType, day: dt.date
    ) -> MealPlan | TrainingPlan | None:
        """The active plan of ``plan_type`` whose date range covers ``day``."""

    @abc.abstractmethod
    async def set_status(self, plan_id: uuid.UUID, status: PlanStatus) -> None:
        """Change a plan's lifecycle status."""

    @abc.abstractmethod
    async def create(self, plan: MealPlan | TrainingPlan) -> uuid.UUID:
        """Insert a plan and return its id."""

    @abc.abstractmethod
    async def replace_active(
        self,
        previous: MealPlan | TrainingPlan,
        new_plan: MealPlan | TrainingPlan,
    ) -> uuid.UUID:
        """Archive ``previous`` and insert ``new_plan`` atomically.

        Either both writes happen or neither does.

        Raises:
            ConcurrentUpdateError: ``previous`` is no longer active.
        """


def record_to_plan(record: PlanRecord) -> MealPlan | TrainingPlan:
    return plan_adapter.validate_python(
        {
            **(record.content or {}),
            "id": record.id,
            "user_id": record.user_id,
            "plan_type": PlanType(record.plan_type).value,
            "name": record.name,
            "start_date": record.start_date,
            "end_date": record.end_date,
            "status": record.status,
            "generation_context": record.generation_context,
            "created_at": record.created_at,
        }
    )


def plan_to_record(plan: MealPlan | TrainingPlan) -> PlanRecord:
    plan_type = PlanType(plan.plan_type)
    generation_context = (
        plan.generation_context.model_dump(mode="json")
        if plan.generation_context
        else None
    )
    return PlanRecord(
        id=plan.id,
        user_id=plan.user_id,
        plan_type=plan_type,
        name=plan.name,
        start_date=plan.start_date,
        end_date=plan.end_date,
        status=plan.status,
        content=plan.model_dump(mode="json", include=CONTENT_FIELDS[plan_type]),
        generation_context=generation_context,
    )


class SqlPlanStore(PlanStore):
    """PlanStore backed by the ``plans`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @asynccontextmanager
    async def _guard(self, operation: str, **fields: Any) -> AsyncIterator[None]:
        """Roll back and wrap driver errors as PersistenceError."""
        try:
            yield
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error(
                "Plan store operation failed",
                operation=operation,
                error=str(e),
                **fields,
            )
            if isinstance(e, IntegrityError):
                raise ConcurrentUpdateError(
                    f"Plan {operation} conflicts with an existing active plan"
                ) from e
            raise PersistenceError(f"Plan {operation} failed") from e

    async def _first(self, query: Any) -> MealPlan | TrainingPlan | None:
        result = await self._db.execute(query)
        record = result.scalars().first()
        return record_to_plan(record) if record else None

    async def get_active(
        self, user_id: uuid.UUID, plan_type: PlanType
    ) -> MealPlan | TrainingPlan | None:
        query = select(PlanRecord).where(
            PlanRecord.user_id == user_id,
            PlanRecord.plan_type == plan_type,
            PlanRecord.status == PlanStatus.active,
        )
        async with self._guard("lookup", user_id=str(user_id), plan_type=plan_type):
            return await self._first(query)

    async def get_for_date(
        self, user_id: uuid.UUID, plan_type: PlanType, day: dt.date
    ) -> MealPlan | TrainingPlan | None:
        query = select(PlanRecord).where(
            PlanRecord.user_id == user_id,
            PlanRecord.plan_type == plan_type,
            PlanRecord.status == PlanStatus.active,
            PlanRecord.start_date <= day,
            PlanRecord.end_date >= day,
        )
        async with self._guard("lookup", user_id=str(user_id), plan_type=plan_type):
            return await self._first(query)

    async def set_status(self, plan_id: uuid.UUID, status: PlanStatus) -> None:
        async with self._guard("status_change", plan_id=str(plan_id)):
            result = await self._db.execute(
                update(PlanRecord)
                .where(PlanRecord.id == plan_id)
                .values(status=status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._db.rollback()
                raise NotFoundError("Plan", plan_id)
            await self._db.commit()

        logger.info("Plan status changed", plan_id=str(plan_id), status=status.value)

    async def create(self, plan: MealPlan | TrainingPlan) -> uuid.UUID:
        record = plan_to_record(plan)
        async with self._guard("create", user_id=str(plan.user_id)):
            self._db.add(record)
            await self._db.commit()

        logger.info(
            "Plan created",
            plan_id=str(record.id),
            user_id=str(plan.user_id),
            plan_type=plan.plan_type,
        )
        return record.id

    async def replace_active(
        self,
        previous: MealPlan | TrainingPlan,
        new_plan: MealPlan | TrainingPlan,
    ) -> uuid.UUID:
        record = plan_to_record(new_plan)

        async with self._guard("replace", plan_id=str(previous.id)):
            archived = await self._db.execute(
                update(PlanRecord)
                .where(
                    PlanRecord.id == previous.id,
                    PlanRecord.status == PlanStatus.active,
                )
                .values(status=PlanStatus.archived)
                .execution_options(synchronize_session=False)
            )
            if archived.rowcount == 0:
                await self._db.rollback()
                raise ConcurrentUpdateError(
                    f"Plan {previous.id} is no longer active"
                )
            self._db.add(record)
            await self._db.commit()

        logger.info(
            "Active plan replaced",
            previous_plan_id=str(previous.id),
            plan_id=str(record.id),
            plan_type=new_plan.plan_type,
        )
        return record.id
