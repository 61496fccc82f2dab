"""Daily log persistence.

``LogStore`` is the interface the planner and the logging workflow depend
on; ``SqlLogStore`` implements it on the ``daily_logs`` table. Rows are
converted to and from the frozen ``DailyLog`` domain model at this
boundary so nothing above it touches ORM objects.
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

from healthplan.core.adherence.models import DailyLog
from healthplan.core.errors import ConcurrentUpdateError, NotFoundError, PersistenceError
from healthplan.logging_config import get_logger
from healthplan.models.daily_log import DailyLogRecord

logger = get_logger(__name__)

# Fields a caller may change through ``update``; id, user and date are fixed
UPDATABLE_FIELDS = frozenset({"meal_logs", "training_logs", "overall_adherence"})


class LogStore(abc.ABC):
    """Persistence interface for daily logs."""

    @abc.abstractmethod
    async def get_by_date_range(
        self,
        user_id: uuid.UUID,
        start: dt.date | None = None,
        end: dt.date | None = None,
    ) -> list[DailyLog]:
        """Logs dated within ``[start, end]``, oldest first.

        A missing bound leaves that side of the range open.
        """

    @abc.abstractmethod
    async def get_by_date(self, user_id: uuid.UUID, day: dt.date) -> DailyLog | None:
        """The log for one calendar day, if any."""

    @abc.abstractmethod
    async def create(self, log: DailyLog) -> uuid.UUID:
        """Insert a new log and return its id."""

    @abc.abstractmethod
    async def update(
        self,
        log_id: uuid.UUID,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> DailyLog:
        """Apply ``changes`` and bump the version.

        Raises:
            ConcurrentUpdateError: The stored version is not
                ``expected_version``.
            NotFoundError: No log with ``log_id`` exists.
        """


def record_to_log(record: DailyLogRecord) -> DailyLog:
    return DailyLog.model_validate(
        {
            "id": record.id,
            "user_id": record.user_id,
            "date": record.log_date,
            "meal_logs": record.meal_logs or [],
            "training_logs": record.training_logs or [],
            "overall_adherence": record.overall_adherence,
            "scheduled_item_count": record.scheduled_item_count,
            "version": record.version,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
    )


def _dump_entries(entries: list[Any]) -> list[dict[str, Any]]:
    return [
        entry.model_dump(mode="json") if hasattr(entry, "model_dump") else entry
        for entry in entries
    ]


def _column_values(changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update daily log fields: {sorted(unknown)}")

    values = dict(changes)
    for key in ("meal_logs", "training_logs"):
        if key in values:
            values[key] = _dump_entries(values[key])
    return values


class SqlLogStore(LogStore):
    """LogStore backed by the ``daily_logs`` table."""

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
                "Daily log store operation failed",
                operation=operation,
                error=str(e),
                **fields,
            )
            # Unique (user_id, log_date): another writer created the day first
            if isinstance(e, IntegrityError):
                raise ConcurrentUpdateError(
                    f"Daily log {operation} conflicts with an existing log"
                ) from e
            raise PersistenceError(f"Daily log {operation} failed") from e

    async def get_by_date_range(
        self,
        user_id: uuid.UUID,
        start: dt.date | None = None,
        end: dt.date | None = None,
    ) -> list[DailyLog]:
        query = select(DailyLogRecord).where(DailyLogRecord.user_id == user_id)
        if start is not None:
            query = query.where(DailyLogRecord.log_date >= start)
        if end is not None:
            query = query.where(DailyLogRecord.log_date <= end)
        query = query.order_by(DailyLogRecord.log_date.asc())

        async with self._guard("range_query", user_id=str(user_id)):
            result = await self._db.execute(query)
            records = result.scalars().all()

        return [record_to_log(record) for record in records]

    async def get_by_date(self, user_id: uuid.UUID, day: dt.date) -> DailyLog | None:
        async with self._guard("lookup", user_id=str(user_id), date=day.isoformat()):
            result = await self._db.execute(
                select(DailyLogRecord).where(
                    DailyLogRecord.user_id == user_id,
                    DailyLogRecord.log_date == day,
                )
            )
            record = result.scalar_one_or_none()

        return record_to_log(record) if record else None

    async def create(self, log: DailyLog) -> uuid.UUID:
        record = DailyLogRecord(
            id=log.id,
            user_id=log.user_id,
            log_date=log.date,
            meal_logs=_dump_entries(log.meal_logs),
            training_logs=_dump_entries(log.training_logs),
            overall_adherence=log.overall_adherence,
            scheduled_item_count=log.scheduled_item_count,
            version=log.version,
        )

        async with self._guard("create", user_id=str(log.user_id)):
            self._db.add(record)
            await self._db.commit()

        logger.info(
            "Daily log created",
            user_id=str(log.user_id),
            date=log.date.isoformat(),
            log_id=str(record.id),
        )
        return record.id

    async def update(
        self,
        log_id: uuid.UUID,
        changes: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> DailyLog:
        values = _column_values(changes)

        stmt = update(DailyLogRecord).where(DailyLogRecord.id == log_id)
        if expected_version is not None:
            stmt = stmt.where(DailyLogRecord.version == expected_version)
        stmt = (
            stmt.values(**values, version=DailyLogRecord.version + 1)
            .returning(DailyLogRecord)
            .execution_options(synchronize_session=False)
        )

        async with self._guard("update", log_id=str(log_id)):
            result = await self._db.execute(stmt)
            record = result.scalar_one_or_none()
            if record is None:
                await self._db.rollback()
                exists = await self._db.execute(
                    select(DailyLogRecord.id).where(DailyLogRecord.id == log_id)
                )
                if exists.scalar_one_or_none() is None:
                    raise NotFoundError("Daily log", log_id)
                logger.warning(
                    "Daily log version conflict",
                    log_id=str(log_id),
                    expected_version=expected_version,
                )
                raise ConcurrentUpdateError(
                    f"Daily log {log_id} changed since version {expected_version}"
                )
            await self._db.commit()

        return record_to_log(record)
