"""Tests for the SQL daily log store.

The AsyncSession is mocked; these tests cover row conversion, statement
shape and error mapping, not PostgreSQL itself.
"""

import datetime as dt
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from healthplan.core.adherence.enums import AdherenceLevel
from healthplan.core.errors import ConcurrentUpdateError, NotFoundError, PersistenceError
from healthplan.models.daily_log import DailyLogRecord
from healthplan.services.log_store import SqlLogStore, record_to_log
from tests.fakes import daily_log, meal_entry

DAY = dt.date(2026, 3, 10)


def _session() -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    return db


def _record(user_id: uuid.UUID, **overrides) -> DailyLogRecord:
    fields = {
        "id": uuid.uuid4(),
        "user_id": user_id,
        "log_date": DAY,
        "meal_logs": [meal_entry("breakfast").model_dump(mode="json")],
        "training_logs": [],
        "overall_adherence": 50,
        "scheduled_item_count": 2,
        "version": 0,
    }
    fields.update(overrides)
    return DailyLogRecord(**fields)


def _result(*, scalar=None, rows=None) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = rows or []
    return result


def _sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


class TestRecordConversion:
    """ORM rows become DailyLog models."""

    def test_record_to_log(self, user_id):
        record = _record(user_id)

        log = record_to_log(record)

        assert log.id == record.id
        assert log.date == DAY
        assert log.meal_logs[0].meal_type == "breakfast"
        assert log.meal_logs[0].adherence == AdherenceLevel.full
        assert log.overall_adherence == 50
        assert log.scheduled_item_count == 2


class TestReads:
    """Range and single-day lookups."""

    async def test_range_query_orders_by_date(self, user_id):
        db = _session()
        records = [_record(user_id, log_date=DAY - dt.timedelta(days=1)), _record(user_id)]
        db.execute.return_value = _result(rows=records)
        store = SqlLogStore(db)

        logs = await store.get_by_date_range(user_id, DAY - dt.timedelta(days=7), DAY)

        assert [log.date for log in logs] == [DAY - dt.timedelta(days=1), DAY]
        sql = _sql(db.execute.call_args.args[0])
        assert "daily_logs.log_date >=" in sql
        assert "daily_logs.log_date <=" in sql
        assert "ORDER BY daily_logs.log_date ASC" in sql

    async def test_open_range(self, user_id):
        db = _session()
        db.execute.return_value = _result(rows=[])
        store = SqlLogStore(db)

        assert await store.get_by_date_range(user_id) == []
        sql = _sql(db.execute.call_args.args[0])
        assert "log_date >=" not in sql
        assert "log_date <=" not in sql

    async def test_get_by_date_missing(self, user_id):
        db = _session()
        db.execute.return_value = _result(scalar=None)

        assert await SqlLogStore(db).get_by_date(user_id, DAY) is None

    async def test_read_failure_is_persistence_error(self, user_id):
        db = _session()
        db.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(PersistenceError) as exc_info:
            await SqlLogStore(db).get_by_date(user_id, DAY)

        assert not isinstance(exc_info.value, ConcurrentUpdateError)
        db.rollback.assert_awaited_once()


class TestCreate:
    """Inserting a new day."""

    async def test_create(self, user_id):
        db = _session()
        log = daily_log(user_id, DAY, meals=[meal_entry("dinner")], scheduled_item_count=2)

        log_id = await SqlLogStore(db).create(log)

        assert log_id == log.id
        record = db.add.call_args.args[0]
        assert isinstance(record, DailyLogRecord)
        assert record.log_date == DAY
        assert record.meal_logs[0]["meal_type"] == "dinner"
        assert record.scheduled_item_count == 2
        db.commit.assert_awaited_once()

    async def test_duplicate_day_is_conflict(self, user_id):
        db = _session()
        db.commit.side_effect = IntegrityError("INSERT", {}, Exception("dup"))

        with pytest.raises(ConcurrentUpdateError):
            await SqlLogStore(db).create(daily_log(user_id, DAY))

        db.rollback.assert_awaited_once()


class TestUpdate:
    """Optimistic updates keyed on version."""

    async def test_update_bumps_version(self, user_id):
        db = _session()
        updated = _record(user_id, overall_adherence=100, version=1)
        db.execute.return_value = _result(scalar=updated)
        log_id = updated.id

        log = await SqlLogStore(db).update(
            log_id,
            {"meal_logs": [meal_entry("breakfast")], "overall_adherence": 100},
            expected_version=0,
        )

        assert log.version == 1
        assert log.overall_adherence == 100
        sql = _sql(db.execute.call_args.args[0])
        assert "daily_logs.version = " in sql
        assert "daily_logs.version +" in sql
        assert "RETURNING" in sql
        db.commit.assert_awaited_once()

    async def test_stale_version_is_conflict(self, user_id):
        db = _session()
        db.execute.side_effect = [_result(scalar=None), _result(scalar=uuid.uuid4())]

        with pytest.raises(ConcurrentUpdateError):
            await SqlLogStore(db).update(
                uuid.uuid4(), {"overall_adherence": 10}, expected_version=3
            )

        db.commit.assert_not_awaited()

    async def test_missing_log(self, user_id):
        db = _session()
        db.execute.side_effect = [_result(scalar=None), _result(scalar=None)]

        with pytest.raises(NotFoundError):
            await SqlLogStore(db).update(uuid.uuid4(), {"overall_adherence": 10})

    async def test_fixed_fields_are_rejected(self, user_id):
        db = _session()

        with pytest.raises(ValueError, match="log_date"):
            await SqlLogStore(db).update(uuid.uuid4(), {"log_date": DAY})

        db.execute.assert_not_awaited()
