"""Daily logging workflow.

Records meal and training completion for today against the user's
active plans. Each call re-reads today's log, upserts the entry,
rescores the day and writes it back. In-memory state only changes after
the store accepted the write.
"""

import datetime as dt
import uuid
from collections.abc import Callable
from typing import TypeVar

from healthplan.core.adherence import calculate_day_adherence
from healthplan.core.adherence.enums import PlanType
from healthplan.core.adherence.models import DailyLog, MealLogEntry, TrainingLogEntry
from healthplan.logging_config import get_logger
from healthplan.schemas.plan import Meal, TrainingSession
from healthplan.services.locks import KeyedLocks
from healthplan.services.log_store import LogStore
from healthplan.services.plan_store import PlanStore

logger = get_logger(__name__)

Entry = TypeVar("Entry", MealLogEntry, TrainingLogEntry)


def upsert_entry(entries: list[Entry], entry: Entry, key: str) -> list[Entry]:
    """Replace the entry sharing ``key`` with ``entry``, or append it."""
    updated: list[Entry] = []
    replaced = False
    for existing in entries:
        if getattr(existing, key) == getattr(entry, key):
            updated.append(entry)
            replaced = True
        else:
            updated.append(existing)
    if not replaced:
        updated.append(entry)
    return updated


class DailyLoggingWorkflow:
    """Today's plan items and log for one user."""

    def __init__(
        self,
        user_id: uuid.UUID,
        log_store: LogStore,
        plan_store: PlanStore,
        *,
        locks: KeyedLocks,
        clock: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.user_id = user_id
        self._log_store = log_store
        self._plan_store = plan_store
        self._locks = locks
        self._clock = clock
        self._log = logger.bind(user_id=str(user_id))

        self._day: dt.date | None = None
        self._today_meals: list[Meal] = []
        self._today_sessions: list[TrainingSession] = []
        self._today_log: DailyLog | None = None

    @property
    def today_meals(self) -> list[Meal]:
        return list(self._today_meals)

    @property
    def today_sessions(self) -> list[TrainingSession]:
        return list(self._today_sessions)

    @property
    def today_log(self) -> DailyLog | None:
        return self._today_log

    @property
    def day(self) -> dt.date | None:
        """The calendar day the workflow last loaded."""
        return self._day

    @property
    def scheduled_item_count(self) -> int:
        return len(self._today_meals) + len(self._today_sessions)

    async def load(self) -> None:
        """Load today's planned meals, sessions and existing log."""
        today = self._clock()

        meal_plan = await self._plan_store.get_for_date(self.user_id, PlanType.meal, today)
        training_plan = await self._plan_store.get_for_date(
            self.user_id, PlanType.training, today
        )
        today_log = await self._log_store.get_by_date(self.user_id, today)

        self._day = today
        self._today_meals = meal_plan.meals_on(today) if meal_plan else []
        self._today_sessions = training_plan.sessions_on(today) if training_plan else []
        self._today_log = today_log

    async def _ensure_loaded(self) -> dt.date:
        today = self._clock()
        if self._day != today:
            await self.load()
        return today

    async def log_meal(self, entry: MealLogEntry) -> DailyLog:
        """Record or replace the completion entry for one meal today."""
        return await self._record("meal_logs", entry, "meal_id")

    async def log_training(self, entry: TrainingLogEntry) -> DailyLog:
        """Record or replace the completion entry for one session today."""
        return await self._record("training_logs", entry, "session_id")

    async def _record(
        self,
        field: str,
        entry: MealLogEntry | TrainingLogEntry,
        key: str,
    ) -> DailyLog:
        today = await self._ensure_loaded()

        async with self._locks.hold((self.user_id, "daily_log")):
            current = await self._log_store.get_by_date(self.user_id, today)

            if current is None:
                draft = DailyLog(
                    user_id=self.user_id,
                    date=today,
                    scheduled_item_count=self.scheduled_item_count,
                )
                entries = upsert_entry(getattr(draft, field), entry, key)
                saved = self._rescored(draft.model_copy(update={field: entries}))
                await self._log_store.create(saved)
            else:
                entries = upsert_entry(getattr(current, field), entry, key)
                rescored = self._rescored(current.model_copy(update={field: entries}))
                saved = await self._log_store.update(
                    current.id,
                    {field: entries, "overall_adherence": rescored.overall_adherence},
                    expected_version=current.version,
                )

        self._today_log = saved
        self._log.info(
            "Daily log entry recorded",
            date=today.isoformat(),
            entry_type=field,
            item_id=getattr(entry, key),
            adherence=entry.adherence.value,
            overall_adherence=saved.overall_adherence,
        )
        return saved

    @staticmethod
    def _rescored(log: DailyLog) -> DailyLog:
        return log.model_copy(
            update={
                "overall_adherence": calculate_day_adherence(
                    log.meal_logs, log.training_logs, log.scheduled_item_count
                )
            }
        )

    def get_meal_log(self, meal_id: str) -> MealLogEntry | None:
        if self._today_log is None:
            return None
        return next((m for m in self._today_log.meal_logs if m.meal_id == meal_id), None)

    def get_training_log(self, session_id: str) -> TrainingLogEntry | None:
        if self._today_log is None:
            return None
        return next(
            (t for t in self._today_log.training_logs if t.session_id == session_id),
            None,
        )
