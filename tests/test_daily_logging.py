"""Tests for the daily logging workflow."""

import datetime as dt

import pytest

from healthplan.core.adherence.enums import AdherenceLevel, DeviationReason
from healthplan.core.errors import ConcurrentUpdateError, PersistenceError
from healthplan.services.daily_logging import DailyLoggingWorkflow, upsert_entry
from tests.fakes import (
    TODAY,
    daily_log,
    make_meal_plan,
    make_training_plan,
    meal_entry,
    training_entry,
)


class _Clock:
    """Settable date source."""

    def __init__(self, today: dt.date):
        self.today = today

    def __call__(self) -> dt.date:
        return self.today


@pytest.fixture
def clock() -> _Clock:
    return _Clock(TODAY)


@pytest.fixture
def plans(user_id, plan_store):
    """Breakfast and dinner every day, one session today."""
    meal_plan = make_meal_plan(user_id, TODAY - dt.timedelta(days=2))
    training_plan = make_training_plan(user_id, TODAY)
    plan_store.plans[meal_plan.id] = meal_plan
    plan_store.plans[training_plan.id] = training_plan
    return meal_plan, training_plan


@pytest.fixture
def workflow(user_id, log_store, plan_store, locks, clock):
    return DailyLoggingWorkflow(
        user_id, log_store, plan_store, locks=locks, clock=clock
    )


class TestLoad:
    """Today's plan items and log."""

    async def test_loads_todays_items(self, workflow, plans):
        await workflow.load()

        assert [m.type for m in workflow.today_meals] == ["breakfast", "dinner"]
        assert len(workflow.today_sessions) == 1
        assert workflow.scheduled_item_count == 3
        assert workflow.today_log is None
        assert workflow.day == TODAY

    async def test_no_plans(self, workflow):
        await workflow.load()

        assert workflow.today_meals == []
        assert workflow.today_sessions == []
        assert workflow.scheduled_item_count == 0

    async def test_expired_plan_is_ignored(self, user_id, workflow, plan_store):
        old = make_meal_plan(user_id, TODAY - dt.timedelta(days=20))
        plan_store.plans[old.id] = old

        await workflow.load()

        assert workflow.today_meals == []

    async def test_loads_existing_log(self, user_id, workflow, log_store, plans):
        existing = daily_log(user_id, TODAY, meals=[meal_entry("breakfast")])
        log_store.logs[existing.id] = existing

        await workflow.load()

        assert workflow.today_log == existing


class TestLogMeal:
    """Recording meals rescores the day."""

    async def test_first_entry_creates_log(self, user_id, workflow, log_store, plans):
        await workflow.load()

        saved = await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))

        assert saved.overall_adherence == 33
        assert saved.scheduled_item_count == 3
        assert saved.date == TODAY
        assert workflow.today_log == saved
        assert list(log_store.logs.values()) == [saved]

    async def test_entries_accumulate(self, workflow, log_store, plans):
        await workflow.load()

        await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))
        await workflow.log_meal(meal_entry("dinner", AdherenceLevel.partial))
        saved = await workflow.log_training(
            training_entry("Full Body", AdherenceLevel.full, session_id="session-0-0")
        )

        assert saved.overall_adherence == 83
        assert len(saved.meal_logs) == 2
        assert len(saved.training_logs) == 1
        assert saved.version == 2
        assert len(log_store.logs) == 1

    async def test_relogging_replaces_entry(self, workflow, plans):
        await workflow.load()
        await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))

        saved = await workflow.log_meal(
            meal_entry(
                "breakfast",
                AdherenceLevel.skipped,
                reasons=(DeviationReason.not_hungry,),
            )
        )

        assert len(saved.meal_logs) == 1
        assert saved.meal_logs[0].adherence == AdherenceLevel.skipped
        assert saved.overall_adherence == 0

    async def test_logs_without_explicit_load(self, workflow, plans):
        saved = await workflow.log_meal(meal_entry("dinner", AdherenceLevel.full))

        assert workflow.day == TODAY
        assert saved.scheduled_item_count == 3

    async def test_denominator_fixed_at_creation(
        self, workflow, plan_store, plans
    ):
        _, training_plan = plans
        await workflow.load()
        await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))

        del plan_store.plans[training_plan.id]
        await workflow.load()
        assert workflow.scheduled_item_count == 2

        saved = await workflow.log_meal(meal_entry("dinner", AdherenceLevel.full))

        assert saved.scheduled_item_count == 3
        assert saved.overall_adherence == 67

    async def test_off_plan_entries_are_clamped(self, user_id, workflow, plan_store):
        plan = make_meal_plan(user_id, TODAY, meal_types=("breakfast",))
        plan_store.plans[plan.id] = plan
        await workflow.load()

        await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))
        saved = await workflow.log_meal(meal_entry("snack", AdherenceLevel.full))

        assert saved.overall_adherence == 100

    async def test_nothing_scheduled_scores_zero(self, workflow):
        saved = await workflow.log_meal(meal_entry("snack", AdherenceLevel.full))

        assert saved.scheduled_item_count == 0
        assert saved.overall_adherence == 0

    async def test_new_day_starts_new_log(self, workflow, log_store, clock, plans):
        await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))

        clock.today = TODAY + dt.timedelta(days=1)
        saved = await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.partial))

        assert saved.date == clock.today
        assert len(saved.meal_logs) == 1
        assert saved.scheduled_item_count == 2
        assert len(log_store.logs) == 2


class TestFailures:
    """Failed writes leave in-memory state untouched."""

    async def test_failed_create(self, workflow, log_store, plans):
        await workflow.load()
        log_store.fail_writes = True

        with pytest.raises(PersistenceError):
            await workflow.log_meal(meal_entry("breakfast"))

        assert workflow.today_log is None
        assert log_store.logs == {}

    async def test_failed_update_keeps_previous_log(self, workflow, log_store, plans):
        await workflow.load()
        first = await workflow.log_meal(meal_entry("breakfast"))
        log_store.fail_writes = True

        with pytest.raises(PersistenceError):
            await workflow.log_meal(meal_entry("dinner"))

        assert workflow.today_log == first
        assert workflow.get_meal_log("dinner-id") is None

    async def test_concurrent_update_propagates(self, workflow, log_store, plans):
        await workflow.load()
        first = await workflow.log_meal(meal_entry("breakfast"))
        log_store.conflict_on_update = True

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            await workflow.log_meal(meal_entry("dinner"))

        assert exc_info.value.status_code == 409
        assert workflow.today_log == first

    async def test_entry_written_elsewhere_is_kept(
        self, user_id, workflow, log_store, plans
    ):
        await workflow.load()
        other = daily_log(
            user_id,
            TODAY,
            meals=[meal_entry("dinner", AdherenceLevel.full)],
            scheduled_item_count=3,
            overall_adherence=33,
        )
        log_store.logs[other.id] = other

        saved = await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.full))

        assert {m.meal_type for m in saved.meal_logs} == {"breakfast", "dinner"}
        assert saved.overall_adherence == 67


class TestLookups:
    """Per-item lookups on today's log."""

    async def test_lookups_before_logging(self, workflow):
        assert workflow.get_meal_log("breakfast-id") is None
        assert workflow.get_training_log("session-0-0") is None

    async def test_lookups_after_logging(self, workflow, plans):
        await workflow.log_meal(meal_entry("breakfast", AdherenceLevel.partial))
        await workflow.log_training(
            training_entry("Full Body", session_id="session-0-0")
        )

        assert workflow.get_meal_log("breakfast-id").adherence == AdherenceLevel.partial
        assert workflow.get_training_log("session-0-0").session_name == "Full Body"
        assert workflow.get_meal_log("dinner-id") is None


class TestUpsertEntry:
    """Replace-or-append by key."""

    def test_append(self):
        entries = [meal_entry("breakfast")]

        result = upsert_entry(entries, meal_entry("dinner"), "meal_id")

        assert [e.meal_type for e in result] == ["breakfast", "dinner"]
        assert len(entries) == 1

    def test_replace_in_place(self):
        entries = [meal_entry("breakfast"), meal_entry("dinner")]
        replacement = meal_entry("breakfast", AdherenceLevel.skipped)

        result = upsert_entry(entries, replacement, "meal_id")

        assert result == [replacement, entries[1]]
