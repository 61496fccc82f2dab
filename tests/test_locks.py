"""Tests for in-process and Postgres advisory keyed locks."""

import asyncio
import uuid

import pytest

from healthplan.core.errors import PersistenceError
from healthplan.services.locks import (
    LOCK_NAMESPACES,
    AdvisoryLocks,
    KeyedLocks,
    LockBusyError,
    advisory_key,
)
from tests.fakes import FakeAdvisoryServer


@pytest.fixture
def key(user_id):
    return (user_id, "meal")


class TestKeyedLocks:
    """Single-process lock registry."""

    async def test_non_waiting_hold_fails_fast(self, locks, key):
        async with locks.hold(key, wait=False):
            assert await locks.is_held(key)
            with pytest.raises(LockBusyError) as exc_info:
                async with locks.hold(key, wait=False):
                    pass

        assert exc_info.value.key == key
        assert not await locks.is_held(key)

    async def test_different_keys_do_not_block(self, locks, user_id):
        async with locks.hold((user_id, "meal"), wait=False):
            async with locks.hold((user_id, "training"), wait=False):
                assert locks.locked((user_id, "meal"))
                assert locks.locked((user_id, "training"))

    async def test_entries_dropped_after_release(self, locks):
        for _ in range(50):
            async with locks.hold((uuid.uuid4(), "daily_log")):
                assert len(locks) == 1

        assert len(locks) == 0

    async def test_entry_kept_while_a_waiter_queues(self, locks, key):
        release = asyncio.Event()
        order: list[str] = []

        async def first():
            async with locks.hold(key):
                order.append("first")
                await release.wait()

        async def second():
            async with locks.hold(key):
                order.append("second")

        holder = asyncio.create_task(first())
        await asyncio.sleep(0)
        waiter = asyncio.create_task(second())
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(holder, waiter)

        assert order == ["first", "second"]
        assert len(locks) == 0

    async def test_entry_dropped_when_block_raises(self, locks, key):
        with pytest.raises(RuntimeError):
            async with locks.hold(key):
                raise RuntimeError("boom")

        assert len(locks) == 0


class TestAdvisoryKey:
    def test_maps_kind_and_user(self):
        user_id = uuid.UUID(int=2**40 + 7)

        assert advisory_key((user_id, "training")) == (
            LOCK_NAMESPACES["training"],
            (2**40 + 7) % (2**31),
        )

    def test_unknown_kind(self, user_id):
        with pytest.raises(KeyError):
            advisory_key((user_id, "sleep"))


class TestAdvisoryLocks:
    """Locks shared across worker processes through Postgres."""

    @pytest.fixture
    def server(self) -> FakeAdvisoryServer:
        return FakeAdvisoryServer()

    async def test_other_worker_is_excluded(self, server, key):
        worker_a = AdvisoryLocks(server.engine)
        worker_b = AdvisoryLocks(server.engine)

        async with worker_a.hold(key, wait=False):
            assert await worker_b.is_held(key)
            with pytest.raises(LockBusyError):
                async with worker_b.hold(key, wait=False):
                    pass

        assert not await worker_b.is_held(key)
        async with worker_b.hold(key, wait=False):
            assert server.held == {advisory_key(key)}

    async def test_released_when_block_raises(self, server, key):
        locks = AdvisoryLocks(server.engine)

        with pytest.raises(RuntimeError):
            async with locks.hold(key, wait=False):
                raise RuntimeError("boom")

        assert server.held == set()
        assert len(locks) == 0

    async def test_waiting_hold_uses_blocking_lock(self, server, key):
        locks = AdvisoryLocks(server.engine)

        async with locks.hold(key):
            assert advisory_key(key) in server.held

        assert "pg_advisory_xact_lock" in server.statements[-1]
        assert server.held == set()

    async def test_waiting_hold_queues_behind_other_worker(self, server, user_id):
        key = (user_id, "daily_log")
        worker_a = AdvisoryLocks(server.engine)
        worker_b = AdvisoryLocks(server.engine)
        release = asyncio.Event()
        order: list[str] = []

        async def first():
            async with worker_a.hold(key):
                order.append("a")
                await release.wait()

        async def second():
            async with worker_b.hold(key):
                order.append("b")

        holder = asyncio.create_task(first())
        await asyncio.sleep(0)
        waiter = asyncio.create_task(second())
        for _ in range(5):
            await asyncio.sleep(0)
        assert order == ["a"]

        release.set()
        await asyncio.gather(holder, waiter)
        assert order == ["a", "b"]

    async def test_same_process_contention_stays_local(self, server, key):
        locks = AdvisoryLocks(server.engine)

        async with locks.hold(key, wait=False):
            statements = len(server.statements)
            assert await locks.is_held(key)
            with pytest.raises(LockBusyError):
                async with locks.hold(key, wait=False):
                    pass

        assert len(server.statements) == statements

    async def test_database_unavailable(self, server, key):
        server.unavailable = True
        locks = AdvisoryLocks(server.engine)

        with pytest.raises(PersistenceError):
            async with locks.hold(key, wait=False):
                pass
        with pytest.raises(PersistenceError):
            await locks.is_held(key)

        assert len(locks) == 0
